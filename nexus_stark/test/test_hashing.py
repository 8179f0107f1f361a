from starknet_py.cairo.felt import encode_shortstring
from starknet_py.hash.selector import get_selector_from_name
from starknet_py.hash.utils import compute_hash_on_elements

from nexus_stark.calls import ResolvedCall
from nexus_stark.hashing import build_argent_preimage, hash_argent_multicall, hash_multicall

from conftest import ACCOUNT_ADDRESS

A = 0xA11CE
B = 0xB0B

CALLS = [
    ResolvedCall(A, "foo", [1]),
    ResolvedCall(B, "bar", []),
    ResolvedCall(A, "baz", [2, 3]),
]


def test_argent_preimage_layout():
    preimage = build_argent_preimage(CALLS, nonce=7)

    assert preimage == [
        3,
        A, get_selector_from_name("foo"), 0, 1,
        B, get_selector_from_name("bar"), 1, 0,
        A, get_selector_from_name("baz"), 1, 2,
        3, 1, 2, 3,
        7,
    ]


def test_argent_hash_matches_invoke_transaction_hash():
    expected = compute_hash_on_elements([
        encode_shortstring("invoke"),
        0,
        int(ACCOUNT_ADDRESS, 16),
        get_selector_from_name("__execute__"),
        compute_hash_on_elements(build_argent_preimage(CALLS, 7)),
        1000,
        encode_shortstring("SN_GOERLI"),
    ])

    assert hash_argent_multicall(ACCOUNT_ADDRESS, CALLS, 7, 1000, 0, "SN_GOERLI") == expected


def test_openzeppelin_hash_matches_multicall_scheme():
    call_hashes = [
        compute_hash_on_elements([c.contract_address, get_selector_from_name(c.entrypoint),
                                  compute_hash_on_elements(c.calldata)])
        for c in CALLS
    ]
    expected = compute_hash_on_elements([
        encode_shortstring("StarkNet Transaction"),
        int(ACCOUNT_ADDRESS, 16),
        compute_hash_on_elements(call_hashes),
        7,
        1000,
        0,
    ])

    assert hash_multicall(ACCOUNT_ADDRESS, CALLS, 7, 1000, 0) == expected


def test_hashes_are_deterministic():
    for _ in range(3):
        assert hash_multicall(ACCOUNT_ADDRESS, CALLS, 7, 0, 0) == hash_multicall(ACCOUNT_ADDRESS, list(CALLS), "7", "0x0", 0)
        assert (
            hash_argent_multicall(ACCOUNT_ADDRESS, CALLS, 7, 0, 0, "SN_GOERLI")
            == hash_argent_multicall(ACCOUNT_ADDRESS, list(CALLS), "0x7", 0, "0", "SN_GOERLI")
        )


def test_schemes_differ_for_the_same_input():
    assert hash_multicall(ACCOUNT_ADDRESS, CALLS, 7, 0, 0) != hash_argent_multicall(
        ACCOUNT_ADDRESS, CALLS, 7, 0, 0, "SN_GOERLI"
    )


def test_hash_inputs_are_all_bound():
    base = hash_argent_multicall(ACCOUNT_ADDRESS, CALLS, 7, 0, 0, "SN_GOERLI")

    assert hash_argent_multicall(ACCOUNT_ADDRESS, CALLS, 8, 0, 0, "SN_GOERLI") != base
    assert hash_argent_multicall(ACCOUNT_ADDRESS, CALLS, 7, 1, 0, "SN_GOERLI") != base
    assert hash_argent_multicall(ACCOUNT_ADDRESS, CALLS, 7, 0, 2 ** 128, "SN_GOERLI") != base
    assert hash_argent_multicall(ACCOUNT_ADDRESS, CALLS, 7, 0, 0, "SN_MAIN") != base
    assert hash_argent_multicall(ACCOUNT_ADDRESS, CALLS[::-1], 7, 0, 0, "SN_GOERLI") != base

    base = hash_multicall(ACCOUNT_ADDRESS, CALLS, 7, 0, 0)
    assert hash_multicall(ACCOUNT_ADDRESS, CALLS[::-1], 7, 0, 0) != base
    assert hash_multicall(ACCOUNT_ADDRESS, CALLS, 7, 0, 2 ** 128) != base
