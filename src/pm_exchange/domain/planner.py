"""Exchange planner: pure translation of a request into an ExchangePlan.

A plan is everything an operation will do: the reserves after the
operation, the signed reserve deltas, the fee and output, and the ordered
ledger transfers. Planning validates every precondition (lifecycle,
liquidity, overflow, slippage, liquidity-provider rights) and raises before
anything is written. The market passed in is never mutated; the service
applies plan.reserves only after the ledger accepted every instruction.
"""

from dataclasses import dataclass, field

from src.pm_amm.domain.pool import (
    PoolError,
    ReservePair,
    SwapQuote,
    apply_deposit,
    apply_withdrawal,
    quote_swap,
)
from src.pm_common.enums import PoolEventType, SwapDirection
from src.pm_common.errors import (
    AppError,
    InsufficientLiquidityError,
    InvalidInputError,
    LiquidityProviderForbiddenError,
    MathOverflowError,
    SlippageExceededError,
    UnbalancedReservesError,
)
from src.pm_ledger.domain.models import Authorizer, CallerAuthorization, TransferInstruction
from src.pm_market.domain.models import Market


@dataclass(frozen=True)
class ExchangePlan:
    event_type: PoolEventType
    reserves: ReservePair
    yes_delta: int
    no_delta: int
    fee: int = 0
    output_amount: int = 0
    instructions: tuple[TransferInstruction, ...] = field(default_factory=tuple)


def pool_error_to_app_error(
    error: PoolError, reserves: ReservePair | None = None
) -> AppError:
    if error is PoolError.INSUFFICIENT_LIQUIDITY:
        return InsufficientLiquidityError()
    if error is PoolError.UNBALANCED_RESERVES and reserves is not None:
        return UnbalancedReservesError(reserves.yes_reserve, reserves.no_reserve)
    if error is PoolError.UNBALANCED_RESERVES:
        return UnbalancedReservesError(0, 0)
    return MathOverflowError()


def quote_for(market: Market, direction: SwapDirection, input_amount: int) -> SwapQuote:
    """Price a swap against the market's current reserves (no slippage check)."""
    market.require_active()
    input_reserve, output_reserve = market.oriented(direction)
    result = quote_swap(input_reserve, output_reserve, input_amount)
    if isinstance(result, PoolError):
        raise pool_error_to_app_error(result)
    return result


def _instruction(
    asset_id: str, source: str, destination: str, amount: int, authorizer: Authorizer
) -> list[TransferInstruction]:
    # The ledger rejects zero-amount transfers; a zero leg moves nothing.
    if amount == 0:
        return []
    return [
        TransferInstruction(
            asset_id=asset_id,
            source=source,
            destination=destination,
            amount=amount,
            authorizer=authorizer,
        )
    ]


def plan_swap(
    market: Market,
    trader: str,
    direction: SwapDirection,
    input_amount: int,
    min_output: int,
) -> ExchangePlan:
    if input_amount == 0:
        raise InvalidInputError("input_amount must be positive")
    quote = quote_for(market, direction, input_amount)
    if quote.output_amount < min_output:
        raise SlippageExceededError(quote.output_amount, min_output)

    if direction is SwapDirection.YES_TO_NO:
        reserves = ReservePair(quote.new_input_reserve, quote.new_output_reserve)
        in_asset, in_vault = market.yes_asset_id, market.yes_vault_id
        out_asset, out_vault = market.no_asset_id, market.no_vault_id
        event_type = PoolEventType.SWAP_YES_FOR_NO
    else:
        reserves = ReservePair(quote.new_output_reserve, quote.new_input_reserve)
        in_asset, in_vault = market.no_asset_id, market.no_vault_id
        out_asset, out_vault = market.yes_asset_id, market.yes_vault_id
        event_type = PoolEventType.SWAP_NO_FOR_YES

    # Vault receives the full input; the fee stays in custody above the reserve.
    instructions = _instruction(
        in_asset, trader, in_vault, input_amount, CallerAuthorization(trader)
    ) + _instruction(
        out_asset, out_vault, trader, quote.output_amount, market.vault_authority
    )
    return ExchangePlan(
        event_type=event_type,
        reserves=reserves,
        yes_delta=reserves.yes_reserve - market.yes_reserve,
        no_delta=reserves.no_reserve - market.no_reserve,
        fee=quote.fee,
        output_amount=quote.output_amount,
        instructions=tuple(instructions),
    )


def _require_liquidity_provider(market: Market, provider: str) -> None:
    if provider != market.creator:
        raise LiquidityProviderForbiddenError(market.id)


def _require_nonzero(yes_amount: int, no_amount: int) -> None:
    if yes_amount == 0 and no_amount == 0:
        raise InvalidInputError("yes_amount and no_amount are both zero")


def plan_add_liquidity(
    market: Market, provider: str, yes_amount: int, no_amount: int
) -> ExchangePlan:
    market.require_active()
    _require_liquidity_provider(market, provider)
    _require_nonzero(yes_amount, no_amount)

    result = apply_deposit(market.yes_reserve, market.no_reserve, yes_amount, no_amount)
    if isinstance(result, PoolError):
        raise pool_error_to_app_error(
            result,
            ReservePair(market.yes_reserve + yes_amount, market.no_reserve + no_amount),
        )

    caller = CallerAuthorization(provider)
    instructions = _instruction(
        market.yes_asset_id, provider, market.yes_vault_id, yes_amount, caller
    ) + _instruction(market.no_asset_id, provider, market.no_vault_id, no_amount, caller)
    return ExchangePlan(
        event_type=PoolEventType.ADD_LIQUIDITY,
        reserves=result,
        yes_delta=yes_amount,
        no_delta=no_amount,
        instructions=tuple(instructions),
    )


def plan_remove_liquidity(
    market: Market, provider: str, yes_amount: int, no_amount: int
) -> ExchangePlan:
    """Allowed in every lifecycle state so the provider can always exit."""
    _require_liquidity_provider(market, provider)
    _require_nonzero(yes_amount, no_amount)

    result = apply_withdrawal(market.yes_reserve, market.no_reserve, yes_amount, no_amount)
    if result is PoolError.UNBALANCED_RESERVES:
        raise UnbalancedReservesError(
            market.yes_reserve - yes_amount, market.no_reserve - no_amount
        )
    if isinstance(result, PoolError):
        raise pool_error_to_app_error(result)

    authority = market.vault_authority
    instructions = _instruction(
        market.yes_asset_id, market.yes_vault_id, provider, yes_amount, authority
    ) + _instruction(
        market.no_asset_id, market.no_vault_id, provider, no_amount, authority
    )
    return ExchangePlan(
        event_type=PoolEventType.REMOVE_LIQUIDITY,
        reserves=result,
        yes_delta=-yes_amount,
        no_delta=-no_amount,
        instructions=tuple(instructions),
    )
