"""
Stark curve key material and message-hash signing.
"""
import secrets
from dataclasses import dataclass
from typing import List, Optional, Sequence

from starknet_py.constants import EC_ORDER
from starknet_py.hash.utils import message_signature, verify_message_signature
from starknet_py.net.signer.stark_curve_signer import KeyPair

from ..felt import Numeric, felt_to_hex, to_felt


@dataclass(frozen=True)
class StarkKeys:
    """A private key together with everything derived from it."""
    private_key: str
    public_key: str
    key_pair: KeyPair

    @property
    def public_key_int(self) -> int:
        return self.key_pair.public_key


def derive_keys(private_key: Numeric) -> StarkKeys:
    """
    Derive the key pair and public key of a private key.

    Args:
        private_key: Private key scalar, usually a ``0x`` hex string

    Raises:
        ValueError: If the scalar is not a valid Stark curve private key
    """
    scalar = to_felt(private_key)
    if not 0 < scalar < EC_ORDER:
        raise ValueError("Private key must be in the range [1, EC_ORDER)")

    key_pair = KeyPair.from_private_key(scalar)
    return StarkKeys(
        private_key=felt_to_hex(scalar),
        public_key=felt_to_hex(key_pair.public_key),
        key_pair=key_pair,
    )


def generate_keys(private_key: Optional[Numeric] = None) -> StarkKeys:
    """Derive keys from ``private_key``, or from a fresh random scalar if none is given."""
    if private_key is None:
        private_key = secrets.randbelow(EC_ORDER - 1) + 1
    return derive_keys(private_key)


def sign_message_hash(keys: StarkKeys, message_hash: int) -> List[int]:
    r, s = message_signature(msg_hash=message_hash, priv_key=keys.key_pair.private_key)
    return [r, s]


def verify_signature(message_hash: int, signature: Sequence[int], public_key: Numeric) -> bool:
    """Check one ``[r, s]`` pair against a public key."""
    return verify_message_signature(
        msg_hash=message_hash,
        signature=list(signature),
        public_key=to_felt(public_key),
    )
