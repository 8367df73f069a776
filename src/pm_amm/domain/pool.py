"""Reserve pool math: constant-product curve with a 0.3% input fee.

Pure functions over u64 integers. Failures are returned as PoolError
values, never raised, so callers decide how to surface them and the math
can be exercised without a database or ledger.

Swap, with k taken before the trade:
    fee                = floor(input_amount * 3 / 1000)
    input_after_fee    = input_amount - fee
    new_input_reserve  = input_reserve + input_after_fee
    new_output_reserve = ceil(k / new_input_reserve)
    output_amount      = output_reserve - new_output_reserve

The retained output reserve rounds up, so the payout is floored and the
recorded product never drops below k. The vault is credited with the full
input_amount while the reserve records only input_after_fee; the fee stays
in custody on top of the reserve.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from src.pm_common.u64 import (
    checked_add,
    checked_div,
    checked_div_ceil,
    checked_mul,
    checked_sub,
    is_u64,
)

FEE_NUMERATOR = 3
FEE_DENOMINATOR = 1000


class PoolError(str, Enum):
    INSUFFICIENT_LIQUIDITY = "INSUFFICIENT_LIQUIDITY"
    MATH_OVERFLOW = "MATH_OVERFLOW"
    UNBALANCED_RESERVES = "UNBALANCED_RESERVES"


@dataclass(frozen=True)
class SwapQuote:
    input_amount: int
    fee: int
    input_after_fee: int
    output_amount: int
    new_input_reserve: int
    new_output_reserve: int


@dataclass(frozen=True)
class ReservePair:
    yes_reserve: int
    no_reserve: int

    @property
    def is_empty(self) -> bool:
        return self.yes_reserve == 0 and self.no_reserve == 0

    @property
    def is_balanced(self) -> bool:
        """Both zero or both positive."""
        return (self.yes_reserve == 0) == (self.no_reserve == 0)


def swap_fee(input_amount: int) -> int | None:
    scaled = checked_mul(input_amount, FEE_NUMERATOR)
    if scaled is None:
        return None
    return checked_div(scaled, FEE_DENOMINATOR)


def quote_swap(
    input_reserve: int, output_reserve: int, input_amount: int
) -> SwapQuote | PoolError:
    if not (is_u64(input_reserve) and is_u64(output_reserve) and is_u64(input_amount)):
        return PoolError.MATH_OVERFLOW
    if input_reserve == 0 or output_reserve == 0:
        return PoolError.INSUFFICIENT_LIQUIDITY

    fee = swap_fee(input_amount)
    if fee is None:
        return PoolError.MATH_OVERFLOW
    input_after_fee = checked_sub(input_amount, fee)
    if input_after_fee is None:
        return PoolError.MATH_OVERFLOW
    new_input_reserve = checked_add(input_reserve, input_after_fee)
    if new_input_reserve is None:
        return PoolError.MATH_OVERFLOW

    k = checked_mul(input_reserve, output_reserve)
    if k is None:
        return PoolError.MATH_OVERFLOW
    new_output_reserve = checked_div_ceil(k, new_input_reserve)
    if new_output_reserve is None:
        return PoolError.MATH_OVERFLOW
    output_amount = checked_sub(output_reserve, new_output_reserve)
    if output_amount is None:
        return PoolError.MATH_OVERFLOW

    return SwapQuote(
        input_amount=input_amount,
        fee=fee,
        input_after_fee=input_after_fee,
        output_amount=output_amount,
        new_input_reserve=new_input_reserve,
        new_output_reserve=new_output_reserve,
    )


def apply_deposit(
    yes_reserve: int, no_reserve: int, yes_amount: int, no_amount: int
) -> ReservePair | PoolError:
    """Grow both reserves. Ratio is not enforced; imbalanced deposits move the price."""
    if not (is_u64(yes_amount) and is_u64(no_amount)):
        return PoolError.MATH_OVERFLOW
    new_yes = checked_add(yes_reserve, yes_amount)
    new_no = checked_add(no_reserve, no_amount)
    if new_yes is None or new_no is None:
        return PoolError.MATH_OVERFLOW
    pair = ReservePair(new_yes, new_no)
    if not pair.is_balanced:
        return PoolError.UNBALANCED_RESERVES
    return pair


def apply_withdrawal(
    yes_reserve: int, no_reserve: int, yes_amount: int, no_amount: int
) -> ReservePair | PoolError:
    if not (is_u64(yes_amount) and is_u64(no_amount)):
        return PoolError.MATH_OVERFLOW
    if yes_reserve < yes_amount or no_reserve < no_amount:
        return PoolError.INSUFFICIENT_LIQUIDITY
    new_yes = checked_sub(yes_reserve, yes_amount)
    new_no = checked_sub(no_reserve, no_amount)
    if new_yes is None or new_no is None:
        return PoolError.MATH_OVERFLOW
    pair = ReservePair(new_yes, new_no)
    if not pair.is_balanced:
        return PoolError.UNBALANCED_RESERVES
    return pair


def invariant(yes_reserve: int, no_reserve: int) -> int:
    """Exact k for auditing (unbounded; may exceed u64)."""
    return yes_reserve * no_reserve


def implied_yes_price(yes_reserve: int, no_reserve: int) -> Decimal | None:
    """Marginal YES probability: no / (yes + no). None for an empty pool."""
    total = yes_reserve + no_reserve
    if total == 0:
        return None
    return Decimal(no_reserve) / Decimal(total)


def implied_no_price(yes_reserve: int, no_reserve: int) -> Decimal | None:
    total = yes_reserve + no_reserve
    if total == 0:
        return None
    return Decimal(yes_reserve) / Decimal(total)
