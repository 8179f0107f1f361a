"""
Flattening of logical calls into the ``__execute__`` call array, and the
reverse split of a multicall response.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from starknet_py.hash.selector import get_selector_from_name

from .contract import StarknetContract, StringMap
from .errors import CalldataEncodingError, ResponseDecodingError
from .felt import to_felt, to_felts

logger = logging.getLogger(__name__)


@dataclass
class CallParameters:
    """One call the account should perform."""
    to_contract: StarknetContract
    function_name: str
    calldata: Optional[Mapping[str, Any]] = None


@dataclass(frozen=True)
class ResolvedCall:
    """A call with its calldata already ABI encoded."""
    contract_address: int
    entrypoint: str
    calldata: List[int] = field(default_factory=list)


@dataclass(frozen=True)
class ExecuteCallParameters:
    """Entry of the call array; points into the shared calldata buffer."""
    to: int
    selector: int
    data_offset: int
    data_len: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "to": self.to,
            "selector": self.selector,
            "data_offset": self.data_offset,
            "data_len": self.data_len,
        }


@dataclass
class AggregatedCalls:
    call_array: List[ExecuteCallParameters]
    calldata: List[int]
    calls: List[ResolvedCall]


def resolve_call(call: CallParameters) -> ResolvedCall:
    """
    ABI encode the calldata of one call.

    Raises:
        CalldataEncodingError: If the contract's adapter rejects the arguments
    """
    try:
        raw = call.to_contract.adapt_input(call.function_name, call.calldata or {})
        calldata = to_felts(raw)
    except CalldataEncodingError:
        raise
    except (KeyError, ValueError, TypeError) as e:
        raise CalldataEncodingError(
            f"Cannot encode calldata of {call.function_name}: {e}"
        ) from e

    return ResolvedCall(
        contract_address=to_felt(call.to_contract.address),
        entrypoint=call.function_name,
        calldata=calldata,
    )


def aggregate(calls: Sequence[CallParameters]) -> AggregatedCalls:
    """
    Build the call array and the flat calldata of a multicall.

    Calls keep their input order: it is the execution order on chain and
    it is part of the signed message.
    """
    call_array: List[ExecuteCallParameters] = []
    calldata: List[int] = []
    resolved: List[ResolvedCall] = []

    for call in calls:
        resolved_call = resolve_call(call)
        call_array.append(ExecuteCallParameters(
            to=resolved_call.contract_address,
            selector=get_selector_from_name(resolved_call.entrypoint),
            data_offset=len(calldata),
            data_len=len(resolved_call.calldata),
        ))
        calldata.extend(resolved_call.calldata)
        resolved.append(resolved_call)

    logger.debug(f"Aggregated {len(resolved)} call(s), {len(calldata)} calldata felt(s)")
    return AggregatedCalls(call_array=call_array, calldata=calldata, calls=resolved)


def parse_multicall_output(response: Sequence[int], calls: Sequence[CallParameters]) -> List[StringMap]:
    """
    Split the concatenated output of a multicall into one decoded result per call.

    Args:
        response: Flat output of all calls, in call order, without a length prefix
        calls: The calls that produced ``response``

    Raises:
        ResponseDecodingError: If the response is shorter or longer than the calls' outputs
    """
    results: List[StringMap] = []
    offset = 0

    for call in calls:
        remaining = list(response[offset:])
        size = call.to_contract.output_size(call.function_name, remaining)
        if size > len(remaining):
            raise ResponseDecodingError(
                f"Output of {call.function_name} needs {size} felt(s), "
                f"only {len(remaining)} left in the response"
            )
        results.append(call.to_contract.adapt_output(call.function_name, remaining[:size]))
        offset += size

    if offset != len(response):
        raise ResponseDecodingError(
            f"Multicall response has {len(response) - offset} unexpected trailing felt(s)"
        )

    return results
