"""MarketApplicationService: read side of the exchange.

All methods are read-only; no commit/rollback needed.
The caller (router) passes db session; service delegates to repository.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.enums import SwapDirection
from src.pm_common.errors import InvalidInputError, MarketNotFoundError
from src.pm_exchange.domain.planner import quote_for
from src.pm_market.application.schemas import (
    MarketDetail,
    MarketListItem,
    MarketListResponse,
    MarketStatsResponse,
    PoolEventItem,
    PoolEventListResponse,
    QuoteResponse,
    cursor_decode,
    cursor_encode,
)
from src.pm_market.domain.models import Market
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.infrastructure.persistence import MarketRepository

logger = logging.getLogger(__name__)


class MarketApplicationService:
    def __init__(self, repo: MarketRepositoryProtocol | None = None) -> None:
        self._repo: MarketRepositoryProtocol = repo or MarketRepository()

    async def _require_market(self, db: AsyncSession, market_id: str) -> Market:
        market = await self._repo.get_market_by_id(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        return market

    async def list_markets(
        self,
        db: AsyncSession,
        status: str | None,
        creator: str | None,
        cursor: str | None,
        limit: int,
    ) -> MarketListResponse:
        # status=None -> default ACTIVE; status='ALL' -> no filter
        sql_status = None if status == "ALL" else (status or "ACTIVE")
        cursor_ts, cursor_id = cursor_decode(cursor)

        # Fetch limit+1 to detect has_more without COUNT(*)
        markets = await self._repo.list_markets(
            db, sql_status, creator, cursor_ts, cursor_id, limit + 1
        )
        has_more = len(markets) > limit
        page = markets[:limit]

        items = [MarketListItem.from_domain(m) for m in page]
        next_cursor = cursor_encode(page[-1]) if has_more and page else None
        return MarketListResponse(items=items, next_cursor=next_cursor, has_more=has_more)

    async def get_market(self, db: AsyncSession, market_id: str) -> MarketDetail:
        return MarketDetail.from_domain(await self._require_market(db, market_id))

    async def quote(
        self,
        db: AsyncSession,
        market_id: str,
        direction: SwapDirection,
        input_amount: int,
    ) -> QuoteResponse:
        market = await self._require_market(db, market_id)
        quote = quote_for(market, direction, input_amount)
        logger.debug(
            "Quote market=%s %s in=%d out=%d fee=%d",
            market_id, direction.value, input_amount, quote.output_amount, quote.fee,
        )
        return QuoteResponse.from_quote(market_id, direction, quote)

    async def list_events(
        self,
        db: AsyncSession,
        market_id: str,
        cursor: str | None,
        limit: int,
    ) -> PoolEventListResponse:
        await self._require_market(db, market_id)
        cursor_id: int | None = None
        if cursor is not None:
            if not cursor.isdigit():
                raise InvalidInputError(f"bad events cursor: {cursor!r}")
            cursor_id = int(cursor)

        events = await self._repo.list_pool_events(db, market_id, cursor_id, limit + 1)
        has_more = len(events) > limit
        page = events[:limit]
        next_cursor = str(page[-1].id) if has_more and page else None
        return PoolEventListResponse(
            items=[PoolEventItem.from_domain(e) for e in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )

    async def get_stats(self, db: AsyncSession, market_id: str) -> MarketStatsResponse:
        await self._require_market(db, market_id)
        stats = await self._repo.get_market_stats(db, market_id)
        return MarketStatsResponse.from_domain(stats)
