"""
Message hashes signed by the account contracts.

The OpenZeppelin scheme hashes every logical call on its own, the Argent
scheme hashes the flattened ``__execute__`` calldata. They are not
interchangeable.
"""
from typing import List, Sequence

from starknet_py.cairo.felt import encode_shortstring
from starknet_py.hash.selector import get_selector_from_name
from starknet_py.hash.utils import compute_hash_on_elements

from .calls import ResolvedCall
from .felt import Numeric, chain_id_to_felt, to_felt

STARKNET_TRANSACTION_PREFIX = encode_shortstring("StarkNet Transaction")
INVOKE_PREFIX = encode_shortstring("invoke")


def hash_multicall(
    account_address: Numeric,
    calls: Sequence[ResolvedCall],
    nonce: Numeric,
    max_fee: Numeric,
    version: Numeric
) -> int:
    """OpenZeppelin account message hash."""
    call_hashes = [
        compute_hash_on_elements([
            call.contract_address,
            get_selector_from_name(call.entrypoint),
            compute_hash_on_elements(call.calldata),
        ])
        for call in calls
    ]

    return compute_hash_on_elements([
        STARKNET_TRANSACTION_PREFIX,
        to_felt(account_address),
        compute_hash_on_elements(call_hashes),
        to_felt(nonce),
        to_felt(max_fee),
        to_felt(version),
    ])


def build_argent_preimage(calls: Sequence[ResolvedCall], nonce: Numeric) -> List[int]:
    """
    ``[n, (to, selector, offset, len) * n, total_len, *calldata, nonce]``

    This is the ``__execute__`` calldata exactly as the contract receives it.
    """
    preimage: List[int] = [len(calls)]
    calldata: List[int] = []

    for call in calls:
        preimage.extend([
            call.contract_address,
            get_selector_from_name(call.entrypoint),
            len(calldata),
            len(call.calldata),
        ])
        calldata.extend(call.calldata)

    preimage.append(len(calldata))
    preimage.extend(calldata)
    preimage.append(to_felt(nonce))
    return preimage


def hash_argent_multicall(
    account_address: Numeric,
    calls: Sequence[ResolvedCall],
    nonce: Numeric,
    max_fee: Numeric,
    version: Numeric,
    chain_id: str,
    execution_function_name: str = "__execute__"
) -> int:
    """Argent account message hash: the invoke transaction hash of the ``__execute__`` call."""
    calldata_hash = compute_hash_on_elements(build_argent_preimage(calls, nonce))

    return compute_hash_on_elements([
        INVOKE_PREFIX,
        to_felt(version),
        to_felt(account_address),
        get_selector_from_name(execution_function_name),
        calldata_hash,
        to_felt(max_fee),
        chain_id_to_felt(chain_id),
    ])
