"""
Interfaces of the external collaborators the account layer talks to.

Implementations live outside this package (a devnet client, a gateway
client, test fakes); accounts only rely on the members declared here.
"""
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Protocol, Sequence

StringMap = Dict[str, Any]

# address -> current on-chain nonce
NonceSource = Callable[[str], Awaitable[int]]


class StarknetContract(Protocol):
    address: str

    async def invoke(self, function_name: str, args: Optional[StringMap] = None,
                     options: Optional[StringMap] = None) -> str:
        """Submit a transaction, returning its hash."""

    async def call(self, function_name: str, args: Optional[StringMap] = None,
                   options: Optional[StringMap] = None) -> StringMap:
        """Run a read-only call, returning the decoded (or raw) output."""

    async def estimate_fee(self, function_name: str, args: Optional[StringMap] = None,
                           options: Optional[StringMap] = None) -> StringMap:
        """Estimate the fee of an invoke."""

    def adapt_input(self, function_name: str, args: Optional[Mapping[str, Any]]) -> List[int]:
        """Flatten named arguments into calldata."""

    def adapt_output(self, function_name: str, raw: Sequence[int]) -> StringMap:
        """Decode the flat output of ``function_name``."""

    def output_size(self, function_name: str, raw: Sequence[int]) -> int:
        """Number of felts at the start of ``raw`` that belong to the output of ``function_name``."""


class ContractFactory(Protocol):
    async def deploy(self, constructor_args: Optional[StringMap] = None,
                     options: Optional[StringMap] = None) -> StarknetContract:
        ...

    def get_contract_at(self, address: str) -> StarknetContract:
        ...


class StarknetRuntime(Protocol):
    async def get_contract_factory(self, contract_path: Path) -> ContractFactory:
        ...
