"""Unsigned 64-bit checked arithmetic.

Reserves and token amounts are u64. Python ints never wrap, so every
operation reports overflow/underflow explicitly by returning None instead
of a value outside [0, U64_MAX]. No float, no Decimal.
"""

U64_MAX = (1 << 64) - 1


def is_u64(value: int) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= U64_MAX


def checked_add(a: int, b: int) -> int | None:
    result = a + b
    return result if is_u64(result) else None


def checked_sub(a: int, b: int) -> int | None:
    """a - b, or None on underflow."""
    result = a - b
    return result if is_u64(result) else None


def checked_mul(a: int, b: int) -> int | None:
    result = a * b
    return result if is_u64(result) else None


def checked_div(a: int, b: int) -> int | None:
    """Floor division; None on division by zero."""
    if b == 0:
        return None
    return a // b


def checked_div_ceil(a: int, b: int) -> int | None:
    """Ceiling division; None on division by zero."""
    if b == 0:
        return None
    return -(-a // b)
