"""
Errors raised while building, signing and dispatching account transactions.

Failures of the external collaborators (contract invocation, RPC) are not
wrapped here; they propagate unchanged.
"""


class AccountError(Exception):
    pass


class UnsupportedOverrideError(AccountError):
    """A caller tried to supply something the account computes itself (e.g. a signature)."""


class KeyMismatchError(AccountError):
    """The supplied private key does not match the public key stored in the contract."""


class CalldataEncodingError(AccountError):
    """The ABI adapter rejected the arguments of a call."""


class GuardianUnavailableError(AccountError):
    """A write transaction needs a guardian signature but no guardian key is loaded."""


class ArtifactNotFoundError(AccountError):
    """An account contract artifact could not be found locally nor downloaded."""


class ResponseDecodingError(AccountError):
    """A multicall response does not line up with the calls that produced it."""
