"""
Field element helpers.

Everything that ends up in a hash preimage or in calldata goes through
``to_felt`` so ints, ``0x`` hex strings and decimal strings are all accepted.
"""
from typing import Iterable, List, Union

from eth_utils import is_0x_prefixed, is_hex, to_int
from starknet_py.cairo.felt import encode_shortstring
from starknet_py.constants import FIELD_PRIME

Numeric = Union[int, str]


def to_felt(value: Numeric) -> int:
    """
    Convert a value to a field element.

    Args:
        value: int, ``0x`` prefixed hex string or decimal string

    Returns:
        The value as an int in ``[0, FIELD_PRIME)``

    Raises:
        TypeError: If the value is not an int or a string
        ValueError: If the string is malformed or the value is out of range
    """
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise TypeError(f"Cannot convert {type(value).__name__} to a field element")

    if isinstance(value, str):
        if is_0x_prefixed(value):
            if not is_hex(value):
                raise ValueError(f"Invalid hex string: {value!r}")
            value = to_int(hexstr=value)
        else:
            value = int(value, 10)

    if not 0 <= value < FIELD_PRIME:
        raise ValueError(f"Value {value} is outside the field")

    return value


def to_felts(values: Iterable[Numeric]) -> List[int]:
    return [to_felt(value) for value in values]


def felt_to_hex(value: Numeric) -> str:
    return hex(to_felt(value))


def chain_id_to_felt(chain_id: str) -> int:
    """Interpret the chain id string (e.g. ``SN_GOERLI``) as a big-endian integer."""
    return encode_shortstring(chain_id)
