"""Pydantic schemas for pm_market API responses.

Cursor format for markets (VARCHAR PK, not sequential):
  {"ts": "<created_at ISO>", "id": "<market_id>"}
  Encoded as Base64 JSON string.
Pool events use their BIGSERIAL id as the cursor.

u64 quantities (reserves, k) are serialised as strings so JSON clients
never round them through a double.
"""

import base64
import json
from datetime import datetime

from pydantic import BaseModel

from src.pm_amm.domain.pool import SwapQuote
from src.pm_common.datetime_utils import isoformat_or_none
from src.pm_common.enums import SwapDirection
from src.pm_market.domain.models import Market, MarketStats, PoolEvent

# ---------------------------------------------------------------------------
# Cursor utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_market: Market) -> str:
    """Encode composite cursor from last market in page."""
    payload = {
        "ts": last_market.created_at.isoformat(),
        "id": last_market.id,
    }
    return base64.b64encode(json.dumps(payload).encode()).decode()


def cursor_decode(cursor: str | None) -> tuple[str | None, str | None]:
    """Decode composite cursor -> (ts_iso, market_id), or (None, None) on error."""
    if cursor is None:
        return None, None
    try:
        data = json.loads(base64.b64decode(cursor.encode()).decode())
        ts, market_id = data["ts"], data["id"]
        datetime.fromisoformat(ts)
    except (ValueError, KeyError, TypeError):
        return None, None
    if not isinstance(market_id, str):
        return None, None
    return ts, market_id


def _price(value: object) -> str | None:
    return None if value is None else str(value)


# ---------------------------------------------------------------------------
# Market list item
# ---------------------------------------------------------------------------


class MarketListItem(BaseModel):
    id: str
    question: str
    status: str
    yes_reserve: str
    no_reserve: str
    yes_price: str | None
    no_price: str | None
    created_at: str

    @classmethod
    def from_domain(cls, m: Market) -> "MarketListItem":
        return cls(
            id=m.id,
            question=m.question,
            status=m.status.value,
            yes_reserve=str(m.yes_reserve),
            no_reserve=str(m.no_reserve),
            yes_price=_price(m.yes_price),
            no_price=_price(m.no_price),
            created_at=m.created_at.isoformat(),
        )


class MarketListResponse(BaseModel):
    items: list[MarketListItem]
    next_cursor: str | None
    has_more: bool


# ---------------------------------------------------------------------------
# Market detail (full record minus the vault authority)
# ---------------------------------------------------------------------------


class MarketDetail(BaseModel):
    id: str
    creator: str
    question: str
    yes_asset_id: str
    no_asset_id: str
    yes_vault_id: str
    no_vault_id: str
    yes_reserve: str
    no_reserve: str
    k: str
    yes_price: str | None
    no_price: str | None
    status: str
    outcome: str | None
    created_at: str
    resolved_at: str | None
    updated_at: str | None

    @classmethod
    def from_domain(cls, m: Market) -> "MarketDetail":
        return cls(
            id=m.id,
            creator=m.creator,
            question=m.question,
            yes_asset_id=m.yes_asset_id,
            no_asset_id=m.no_asset_id,
            yes_vault_id=m.yes_vault_id,
            no_vault_id=m.no_vault_id,
            yes_reserve=str(m.yes_reserve),
            no_reserve=str(m.no_reserve),
            k=str(m.k),
            yes_price=_price(m.yes_price),
            no_price=_price(m.no_price),
            status=m.status.value,
            outcome=m.outcome.value if m.outcome else None,
            created_at=m.created_at.isoformat(),
            resolved_at=isoformat_or_none(m.resolved_at),
            updated_at=isoformat_or_none(m.updated_at),
        )


# ---------------------------------------------------------------------------
# Quote
# ---------------------------------------------------------------------------


class QuoteResponse(BaseModel):
    market_id: str
    direction: SwapDirection
    input_amount: str
    fee: str
    output_amount: str
    new_yes_reserve: str
    new_no_reserve: str

    @classmethod
    def from_quote(
        cls, market_id: str, direction: SwapDirection, quote: SwapQuote
    ) -> "QuoteResponse":
        if direction is SwapDirection.YES_TO_NO:
            new_yes, new_no = quote.new_input_reserve, quote.new_output_reserve
        else:
            new_yes, new_no = quote.new_output_reserve, quote.new_input_reserve
        return cls(
            market_id=market_id,
            direction=direction,
            input_amount=str(quote.input_amount),
            fee=str(quote.fee),
            output_amount=str(quote.output_amount),
            new_yes_reserve=str(new_yes),
            new_no_reserve=str(new_no),
        )


# ---------------------------------------------------------------------------
# Pool events
# ---------------------------------------------------------------------------


class PoolEventItem(BaseModel):
    id: int
    event_type: str
    user_id: str | None
    yes_delta: str
    no_delta: str
    fee: str
    yes_reserve_after: str
    no_reserve_after: str
    created_at: str

    @classmethod
    def from_domain(cls, e: PoolEvent) -> "PoolEventItem":
        return cls(
            id=e.id,
            event_type=e.event_type,
            user_id=e.user_id,
            yes_delta=str(e.yes_delta),
            no_delta=str(e.no_delta),
            fee=str(e.fee),
            yes_reserve_after=str(e.yes_reserve_after),
            no_reserve_after=str(e.no_reserve_after),
            created_at=e.created_at.isoformat(),
        )


class PoolEventListResponse(BaseModel):
    items: list[PoolEventItem]
    next_cursor: str | None
    has_more: bool


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


class MarketStatsResponse(BaseModel):
    market_id: str
    swap_count: int
    yes_volume: str
    no_volume: str
    total_fees: str

    @classmethod
    def from_domain(cls, s: MarketStats) -> "MarketStatsResponse":
        return cls(
            market_id=s.market_id,
            swap_count=s.swap_count,
            yes_volume=str(s.yes_volume),
            no_volume=str(s.no_volume),
            total_fees=str(s.total_fees),
        )
