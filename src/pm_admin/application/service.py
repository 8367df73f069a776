# src/pm_admin/application/service.py
"""Admin application service: trusted-resolver operations."""
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_exchange.application.service import ExchangeService, get_exchange_service
from src.pm_ledger.application.schemas import IssueResponse
from src.pm_ledger.application.service import LedgerApplicationService
from src.pm_ledger.domain.repository import LedgerProtocol
from src.pm_ledger.infrastructure.persistence import LedgerRepository
from src.pm_market.application.schemas import MarketDetail, MarketStatsResponse
from src.pm_market.application.service import MarketApplicationService
from src.pm_market.domain.invariants import check_market_invariants
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.infrastructure.persistence import MarketRepository


class AdminService:
    def __init__(
        self,
        exchange: ExchangeService | None = None,
        repo: MarketRepositoryProtocol | None = None,
        ledger: LedgerProtocol | None = None,
    ) -> None:
        self._exchange = exchange
        self._repo: MarketRepositoryProtocol = repo or MarketRepository()
        self._ledger: LedgerProtocol = ledger or LedgerRepository()
        self._markets = MarketApplicationService(self._repo)
        self._ledger_service = LedgerApplicationService(self._ledger)

    @property
    def exchange(self) -> ExchangeService:
        # Shared singleton by default so admin transitions take the same market locks.
        return self._exchange or get_exchange_service()

    async def resolve_market(
        self, market_id: str, outcome: str, resolver: str, db: AsyncSession
    ) -> dict[str, Any]:
        market = await self.exchange.resolve_market(
            db, market_id, outcome == "YES", resolver
        )
        return MarketDetail.from_domain(market).model_dump()

    async def cancel_market(
        self, market_id: str, resolver: str, db: AsyncSession
    ) -> dict[str, Any]:
        market = await self.exchange.cancel_market(db, market_id, resolver)
        return MarketDetail.from_domain(market).model_dump()

    async def issue_tokens(
        self, asset_id: str, owner_id: str, amount: int, issuer: str, db: AsyncSession
    ) -> IssueResponse:
        return await self._ledger_service.issue(db, asset_id, owner_id, amount, issuer)

    async def get_market_stats(
        self, market_id: str, db: AsyncSession
    ) -> MarketStatsResponse:
        return await self._markets.get_stats(db, market_id)

    async def verify_all_invariants(self, db: AsyncSession) -> dict[str, object]:
        """Audit every market: balanced reserves, lifecycle fields, vault custody."""
        violations: list[str] = []
        markets = await self._repo.list_all_markets(db)
        for market in markets:
            yes_balance = await self._ledger.get_balance(
                db, market.yes_vault_id, market.yes_asset_id
            )
            no_balance = await self._ledger.get_balance(
                db, market.no_vault_id, market.no_asset_id
            )
            violations.extend(check_market_invariants(market, yes_balance, no_balance))
        return {
            "ok": len(violations) == 0,
            "markets_checked": len(markets),
            "violations": violations,
        }
