# src/pm_exchange/application/schemas.py
from typing import Annotated

from pydantic import BaseModel, Field, field_validator

from src.pm_common.enums import SwapDirection
from src.pm_common.u64 import U64_MAX
from src.pm_exchange.domain.planner import ExchangePlan
from src.pm_market.domain.models import Market

# Lax mode also accepts decimal strings, for clients that cannot hold a u64.
U64 = Annotated[int, Field(ge=0, le=U64_MAX)]


class CreateMarketRequest(BaseModel):
    question: str
    yes_asset_id: str = Field(min_length=1, max_length=64)
    no_asset_id: str = Field(min_length=1, max_length=64)

    @field_validator("question")
    @classmethod
    def question_not_blank(cls, v: str) -> str:
        # The byte bound is enforced by the domain (QuestionTooLongError).
        if not v.strip():
            raise ValueError("question must not be blank")
        return v


class SwapRequest(BaseModel):
    direction: SwapDirection
    input_amount: U64
    min_output: U64 = 0


class LiquidityRequest(BaseModel):
    yes_amount: U64 = 0
    no_amount: U64 = 0


class ExchangeResult(BaseModel):
    """Outcome of a committed swap or liquidity operation."""

    market_id: str
    event_type: str
    output_amount: str
    fee: str
    yes_delta: str
    no_delta: str
    yes_reserve: str
    no_reserve: str

    @classmethod
    def from_plan(cls, market: Market, plan: ExchangePlan) -> "ExchangeResult":
        return cls(
            market_id=market.id,
            event_type=plan.event_type.value,
            output_amount=str(plan.output_amount),
            fee=str(plan.fee),
            yes_delta=str(plan.yes_delta),
            no_delta=str(plan.no_delta),
            yes_reserve=str(market.yes_reserve),
            no_reserve=str(market.no_reserve),
        )
