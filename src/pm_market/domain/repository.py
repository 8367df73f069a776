# src/pm_market/domain/repository.py
"""Repository Protocol: dependency inversion for testability.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_market.domain.models import Market, MarketStats, PoolEvent


class MarketRepositoryProtocol(Protocol):
    async def insert_market(self, db: AsyncSession, market: Market) -> bool: ...

    async def get_market_by_id(
        self,
        db: AsyncSession,
        market_id: str,
        for_update: bool = False,
    ) -> Market | None: ...

    async def list_markets(
        self,
        db: AsyncSession,
        status: str | None,
        creator: str | None,
        cursor_ts: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Market]: ...

    async def list_all_markets(self, db: AsyncSession) -> list[Market]: ...

    async def save_market_state(self, db: AsyncSession, market: Market) -> None: ...

    async def insert_pool_event(
        self,
        db: AsyncSession,
        market: Market,
        event_type: str,
        user_id: str | None,
        yes_delta: int,
        no_delta: int,
        fee: int,
    ) -> PoolEvent: ...

    async def list_pool_events(
        self,
        db: AsyncSession,
        market_id: str,
        cursor_id: int | None,
        limit: int,
    ) -> list[PoolEvent]: ...

    async def get_market_stats(self, db: AsyncSession, market_id: str) -> MarketStats: ...
