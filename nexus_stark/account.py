"""
Account class hierarchy for StarkNet wallet contracts.

An Account routes one or more logical calls through its wallet contract's
``__execute__`` entrypoint as a single signed transaction. Subclasses define
how the message is hashed and signed for a particular wallet implementation.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Type, Union

from .artifacts import ArtifactResolver
from .calls import CallParameters, ResolvedCall, aggregate, parse_multicall_output
from .config import DEFAULT_CHAIN_ID
from .contract import ContractFactory, NonceSource, StarknetContract, StarknetRuntime, StringMap
from .errors import (
    GuardianUnavailableError,
    KeyMismatchError,
    ResponseDecodingError,
    UnsupportedOverrideError,
)
from .felt import Numeric, to_felt, to_felts
from .hashing import hash_argent_multicall, hash_multicall
from .keymanager.keys import StarkKeys, derive_keys, generate_keys, sign_message_hash

logger = logging.getLogger(__name__)

TRANSACTION_VERSION = 0
QUERY_VERSION = 2 ** 128 + TRANSACTION_VERSION


class InteractChoice(Enum):
    """Kind of interaction with the account contract."""
    INVOKE = ("invoke", TRANSACTION_VERSION, True)
    CALL = ("call", QUERY_VERSION, False)
    ESTIMATE_FEE = ("estimate_fee", QUERY_VERSION, False)

    def __init__(self, command: str, transaction_version: int, writes_state: bool):
        self.command = command
        self.transaction_version = transaction_version
        self.writes_state = writes_state


@dataclass(frozen=True)
class InteractOptions:
    max_fee: Numeric = 0
    nonce: Optional[Numeric] = None
    # always computed by the account; setting it is rejected
    signature: Optional[Sequence[Numeric]] = None
    raw_output: bool = False
    block_number: Optional[Union[int, str]] = None

    @classmethod
    def coerce(cls, options: Union["InteractOptions", Mapping[str, Any], None]) -> "InteractOptions":
        if options is None:
            return cls()
        if isinstance(options, InteractOptions):
            return options
        return cls(**options)

    def to_dispatch_options(self, signature: List[int]) -> StringMap:
        """Options passed on to the contract; the nonce travels in the calldata instead."""
        options: StringMap = {
            "signature": signature,
            "max_fee": to_felt(self.max_fee),
        }
        if self.raw_output:
            options["raw_output"] = True
        if self.block_number is not None:
            options["block_number"] = self.block_number
        return options


OptionsLike = Union[InteractOptions, Mapping[str, Any], None]


class AccountVariant(str, Enum):
    OPENZEPPELIN = "OpenZeppelin"
    ARGENT = "Argent"


class Account(ABC):
    """
    A deployed account contract together with the key that controls it.

    The public operations are coroutines: reading the nonce and dispatching
    the transaction go through the contract collaborator. Building the call
    array, hashing and signing are synchronous.

    Multicalls on the same account must not run concurrently: the nonce is
    read fresh for every transaction, so two overlapping multicalls would be
    signed with the same nonce and only one of them can be accepted.
    """

    VARIANT: AccountVariant
    ACCOUNT_TYPE_NAME: str
    ACCOUNT_ARTIFACTS_NAME: str
    VERSION: str

    def __init__(
        self,
        starknet_contract: StarknetContract,
        keys: StarkKeys,
        chain_id: str = DEFAULT_CHAIN_ID,
        nonce_source: Optional[NonceSource] = None
    ):
        """
        Args:
            starknet_contract: The deployed account contract
            keys: Signer key material
            chain_id: Chain id string of the network (e.g. "SN_GOERLI")
            nonce_source: Coroutine function returning the nonce of an address;
                the contract's ``get_nonce`` is called if not provided
        """
        self.starknet_contract = starknet_contract
        self.keys = keys
        self.chain_id = chain_id
        self._nonce_source = nonce_source

    @property
    def address(self) -> str:
        return self.starknet_contract.address

    @property
    def private_key(self) -> str:
        return self.keys.private_key

    @property
    def public_key(self) -> str:
        return self.keys.public_key

    @property
    def key_pair(self):
        return self.keys.key_pair

    # ============================================
    # Single call
    # ============================================

    async def invoke(
        self,
        to_contract: StarknetContract,
        function_name: str,
        calldata: Optional[Mapping[str, Any]] = None,
        options: OptionsLike = None
    ) -> str:
        """
        Invoke ``function_name`` on ``to_contract`` through this account.

        Returns:
            Transaction hash
        """
        call = CallParameters(to_contract=to_contract, function_name=function_name, calldata=calldata)
        return await self.multi_invoke([call], options)

    async def call(
        self,
        to_contract: StarknetContract,
        function_name: str,
        calldata: Optional[Mapping[str, Any]] = None,
        options: OptionsLike = None
    ) -> StringMap:
        """Call ``function_name`` on ``to_contract`` through this account and decode its output."""
        call = CallParameters(to_contract=to_contract, function_name=function_name, calldata=calldata)
        results = await self.multi_call([call], options)
        return results[0]

    async def estimate_fee(
        self,
        to_contract: StarknetContract,
        function_name: str,
        calldata: Optional[Mapping[str, Any]] = None,
        options: OptionsLike = None
    ) -> StringMap:
        call = CallParameters(to_contract=to_contract, function_name=function_name, calldata=calldata)
        return await self.multi_estimate_fee([call], options)

    # ============================================
    # Multicall
    # ============================================

    async def multi_call(
        self,
        call_parameters: Sequence[CallParameters],
        options: OptionsLike = None
    ) -> List[StringMap]:
        """
        Perform several calls through this account in one request.

        Returns:
            One decoded output per call, in the order of ``call_parameters``
        """
        options = InteractOptions.coerce(options)
        if self.has_raw_output():
            options = replace(options, raw_output=True)

        result = await self.multi_interact(InteractChoice.CALL, call_parameters, options)
        return parse_multicall_output(self._extract_response(result), call_parameters)

    async def multi_invoke(
        self,
        call_parameters: Sequence[CallParameters],
        options: OptionsLike = None
    ) -> str:
        """
        Perform several invokes as one transaction.

        Returns:
            Hash of the single transaction sent to the account contract
        """
        return await self.multi_interact(InteractChoice.INVOKE, call_parameters, options)

    async def multi_estimate_fee(
        self,
        call_parameters: Sequence[CallParameters],
        options: OptionsLike = None
    ) -> StringMap:
        return await self.multi_interact(InteractChoice.ESTIMATE_FEE, call_parameters, options)

    async def multi_interact(
        self,
        choice: InteractChoice,
        call_parameters: Sequence[CallParameters],
        options: OptionsLike = None
    ):
        """
        Build, hash, sign and dispatch a multicall.

        Raises:
            UnsupportedOverrideError: If ``options.signature`` is set
            CalldataEncodingError: If a call's arguments cannot be encoded
            GuardianUnavailableError: If a guardian signature is needed but missing
        """
        options = InteractOptions.coerce(options)
        if options.signature is not None:
            raise UnsupportedOverrideError(
                "Custom signature cannot be specified when using Account (it is calculated automatically)"
            )

        nonce = to_felt(options.nonce) if options.nonce is not None else await self.get_nonce()
        max_fee = to_felt(options.max_fee)

        aggregated = aggregate(call_parameters)
        message_hash = self.get_message_hash(
            self.address,
            aggregated.calls,
            nonce,
            max_fee,
            choice.transaction_version
        )
        logger.debug(f"{self.ACCOUNT_TYPE_NAME} {self.address} message hash {hex(message_hash)}")

        signature = self.get_signatures(message_hash, choice)
        args = {
            "call_array": [entry.to_dict() for entry in aggregated.call_array],
            "calldata": aggregated.calldata,
            "nonce": nonce,
        }

        interactor = getattr(self.starknet_contract, choice.command)
        logger.info(
            f"{choice.command} via {self.ACCOUNT_TYPE_NAME} {self.address}: "
            f"{len(aggregated.calls)} call(s), nonce {nonce}"
        )
        return await interactor(
            self.get_execution_function_name(),
            args,
            options.to_dispatch_options(signature)
        )

    async def get_nonce(self) -> int:
        """Current nonce of the account, read from the chain unless a nonce source was injected."""
        if self._nonce_source is not None:
            return to_felt(await self._nonce_source(self.address))
        return to_felt(await self._read_nonce())

    def _extract_response(self, result: StringMap) -> List[int]:
        response = to_felts(result["response"])
        if not self.has_raw_output():
            return response

        # raw __execute__ output: response_len followed by the response
        if not response:
            raise ResponseDecodingError("Raw multicall response is empty")
        length, body = response[0], response[1:]
        if length != len(body):
            raise ResponseDecodingError(
                f"Raw multicall response declares {length} felt(s) but carries {len(body)}"
            )
        return body

    # ============================================
    # Variant specific behaviour
    # ============================================

    @abstractmethod
    def get_message_hash(
        self,
        account_address: Numeric,
        calls: Sequence[ResolvedCall],
        nonce: int,
        max_fee: int,
        version: int
    ) -> int:
        ...

    @abstractmethod
    def get_signatures(self, message_hash: int, choice: InteractChoice = InteractChoice.INVOKE) -> List[int]:
        ...

    @abstractmethod
    def get_execution_function_name(self) -> str:
        ...

    @abstractmethod
    def has_raw_output(self) -> bool:
        """Whether the execution entrypoint's output must be requested undecoded."""

    @abstractmethod
    async def _read_nonce(self) -> Numeric:
        ...

    # ============================================
    # Lifecycle helpers
    # ============================================

    @classmethod
    async def _get_contract_factory(
        cls,
        runtime: StarknetRuntime,
        resolver: ArtifactResolver
    ) -> ContractFactory:
        contract_path = resolver.resolve(cls.ACCOUNT_TYPE_NAME, cls.ACCOUNT_ARTIFACTS_NAME, cls.VERSION)
        return await runtime.get_contract_factory(contract_path)

    @staticmethod
    def _check_public_key(expected: Numeric, keys: StarkKeys, role: str = "signer"):
        if to_felt(expected) != keys.public_key_int:
            raise KeyMismatchError(
                f"The provided {role} private key is not compatible with "
                f"the public key stored in the contract."
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "variant": self.VARIANT.value,
            "address": self.address,
            "public_key": self.public_key,
            "chain_id": self.chain_id,
        }

    def __repr__(self):
        return f"<{type(self).__name__} address={self.address} public_key={self.public_key}>"


class OpenZeppelinAccount(Account):
    """Wrapper for the OpenZeppelin account contract."""

    VARIANT = AccountVariant.OPENZEPPELIN
    ACCOUNT_TYPE_NAME = "OpenZeppelinAccount"
    ACCOUNT_ARTIFACTS_NAME = "Account"
    VERSION = "0.1.0"

    def get_message_hash(self, account_address, calls, nonce, max_fee, version) -> int:
        return hash_multicall(account_address, calls, nonce, max_fee, version)

    def get_signatures(self, message_hash: int, choice: InteractChoice = InteractChoice.INVOKE) -> List[int]:
        return sign_message_hash(self.keys, message_hash)

    def get_execution_function_name(self) -> str:
        return "__execute__"

    def has_raw_output(self) -> bool:
        return False

    async def _read_nonce(self) -> Numeric:
        result = await self.starknet_contract.call("get_nonce")
        return result["res"]

    @classmethod
    async def deploy_from_abi(
        cls,
        runtime: StarknetRuntime,
        resolver: ArtifactResolver,
        chain_id: str = DEFAULT_CHAIN_ID,
        private_key: Optional[str] = None,
        deploy_options: Optional[StringMap] = None,
        nonce_source: Optional[NonceSource] = None
    ) -> "OpenZeppelinAccount":
        """Deploy a new OpenZeppelin account, generating a signer key unless one is given."""
        contract_factory = await cls._get_contract_factory(runtime, resolver)
        signer = generate_keys(private_key)

        contract = await contract_factory.deploy({"public_key": signer.public_key_int}, deploy_options)
        logger.info(f"Deployed {cls.ACCOUNT_TYPE_NAME} at {contract.address}")

        return cls(contract, signer, chain_id=chain_id, nonce_source=nonce_source)

    @classmethod
    async def get_account_from_address(
        cls,
        address: str,
        private_key: str,
        runtime: StarknetRuntime,
        resolver: ArtifactResolver,
        chain_id: str = DEFAULT_CHAIN_ID,
        nonce_source: Optional[NonceSource] = None
    ) -> "OpenZeppelinAccount":
        """
        Bind to an already deployed OpenZeppelin account.

        Raises:
            KeyMismatchError: If ``private_key`` does not match the contract's public key
        """
        contract_factory = await cls._get_contract_factory(runtime, resolver)
        contract = contract_factory.get_contract_at(address)
        keys = derive_keys(private_key)

        result = await contract.call("get_public_key")
        cls._check_public_key(result["res"], keys)

        return cls(contract, keys, chain_id=chain_id, nonce_source=nonce_source)


class ArgentAccount(Account):
    """
    Wrapper for the Argent account contract.

    Write transactions carry two signatures over the same message hash:
    the signer's first, then the guardian's.
    """

    VARIANT = AccountVariant.ARGENT
    ACCOUNT_TYPE_NAME = "ArgentAccount"
    ACCOUNT_ARTIFACTS_NAME = "ArgentAccount"
    VERSION = "0.2.1"

    def __init__(
        self,
        starknet_contract: StarknetContract,
        keys: StarkKeys,
        guardian: Optional[StarkKeys] = None,
        chain_id: str = DEFAULT_CHAIN_ID,
        nonce_source: Optional[NonceSource] = None
    ):
        super().__init__(starknet_contract, keys, chain_id=chain_id, nonce_source=nonce_source)
        # replaced as a whole, never field by field
        self.guardian = guardian

    @property
    def guardian_private_key(self) -> Optional[str]:
        return self.guardian.private_key if self.guardian else None

    @property
    def guardian_public_key(self) -> Optional[str]:
        return self.guardian.public_key if self.guardian else None

    @property
    def guardian_key_pair(self):
        return self.guardian.key_pair if self.guardian else None

    def get_message_hash(self, account_address, calls, nonce, max_fee, version) -> int:
        return hash_argent_multicall(
            account_address,
            calls,
            nonce,
            max_fee,
            version,
            chain_id=self.chain_id,
            execution_function_name=self.get_execution_function_name(),
        )

    def get_signatures(self, message_hash: int, choice: InteractChoice = InteractChoice.INVOKE) -> List[int]:
        """
        Sign with the signer, then the guardian.

        Without a guardian key, invokes raise ``GuardianUnavailableError`` and
        queries carry ``[0, 0]`` in the guardian slot. The contract validates
        the guardian signature inside ``__execute__``, so the network rejects
        such a fee estimate.
        """
        signer_signature = sign_message_hash(self.keys, message_hash)

        if self.guardian is None:
            if choice.writes_state:
                raise GuardianUnavailableError(
                    f"Account {self.address} has no guardian key loaded; "
                    f"it can only be used for calls and fee estimation"
                )
            return signer_signature + [0, 0]

        return signer_signature + sign_message_hash(self.guardian, message_hash)

    async def set_guardian(self, new_guardian_private_key: str, options: OptionsLike = None) -> str:
        """
        Replace the guardian key and update it in the contract.

        The local guardian is swapped before the transaction is sent and is not
        restored if the transaction fails.

        Returns:
            Transaction hash of the ``change_guardian`` invoke
        """
        guardian = derive_keys(new_guardian_private_key)
        self.guardian = guardian

        call = CallParameters(
            to_contract=self.starknet_contract,
            function_name="change_guardian",
            calldata={"new_guardian": guardian.public_key_int},
        )
        try:
            return await self.multi_invoke([call], options)
        except Exception:
            logger.error(
                f"change_guardian failed for {self.address}; "
                f"the local guardian {guardian.public_key} is not set in the contract"
            )
            raise

    def get_execution_function_name(self) -> str:
        return "__execute__"

    def has_raw_output(self) -> bool:
        return True

    async def _read_nonce(self) -> Numeric:
        result = await self.starknet_contract.call("get_nonce")
        return result["nonce"]

    @classmethod
    async def deploy_from_abi(
        cls,
        runtime: StarknetRuntime,
        resolver: ArtifactResolver,
        chain_id: str = DEFAULT_CHAIN_ID,
        private_key: Optional[str] = None,
        guardian_private_key: Optional[str] = None,
        deploy_options: Optional[StringMap] = None,
        nonce_source: Optional[NonceSource] = None
    ) -> "ArgentAccount":
        """Deploy and initialize a new Argent account with a signer and a guardian."""
        contract_factory = await cls._get_contract_factory(runtime, resolver)
        signer = generate_keys(private_key)
        guardian = generate_keys(guardian_private_key)

        contract = await contract_factory.deploy({}, deploy_options)
        await contract.invoke("initialize", {
            "signer": signer.public_key_int,
            "guardian": guardian.public_key_int,
        })
        logger.info(f"Deployed {cls.ACCOUNT_TYPE_NAME} at {contract.address}")

        return cls(contract, signer, guardian=guardian, chain_id=chain_id, nonce_source=nonce_source)

    @classmethod
    async def get_account_from_address(
        cls,
        address: str,
        private_key: str,
        runtime: StarknetRuntime,
        resolver: ArtifactResolver,
        chain_id: str = DEFAULT_CHAIN_ID,
        guardian_private_key: Optional[str] = None,
        nonce_source: Optional[NonceSource] = None
    ) -> "ArgentAccount":
        """
        Bind to an already deployed Argent account.

        Without ``guardian_private_key`` the account can only be used for calls
        and fee estimation.

        Raises:
            KeyMismatchError: If a key does not match the one stored in the contract
        """
        contract_factory = await cls._get_contract_factory(runtime, resolver)
        contract = contract_factory.get_contract_at(address)
        keys = derive_keys(private_key)

        result = await contract.call("get_signer")
        cls._check_public_key(result["signer"], keys)

        guardian = None
        if guardian_private_key is not None:
            guardian = derive_keys(guardian_private_key)
            result = await contract.call("get_guardian")
            cls._check_public_key(result["guardian"], guardian, role="guardian")

        return cls(contract, keys, guardian=guardian, chain_id=chain_id, nonce_source=nonce_source)


ACCOUNT_CLASSES: Dict[AccountVariant, Type[Account]] = {
    AccountVariant.OPENZEPPELIN: OpenZeppelinAccount,
    AccountVariant.ARGENT: ArgentAccount,
}


def account_class_for(variant: Union[AccountVariant, str]) -> Type[Account]:
    """
    Raises:
        ValueError: If the variant is not supported
    """
    try:
        return ACCOUNT_CLASSES[AccountVariant(variant)]
    except ValueError:
        supported = ", ".join(v.value for v in AccountVariant)
        raise ValueError(f"Unknown account type {variant!r}. Supported: {supported}") from None
