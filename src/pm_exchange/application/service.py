"""ExchangeService: orchestrates every state-changing market operation.

Per operation:
  1. acquire the in-process per-market asyncio.Lock
  2. load the market row with SELECT ... FOR UPDATE
  3. build a plan (pure; raises on any failed precondition)
  4. execute the plan's ledger transfers, then persist reserves/status
     and append the pool event, all on the same session
  5. commit; on any exception roll back and re-raise

Nothing is written before step 4, and the Market object is only mutated
once every transfer has been accepted by the ledger.
"""

import asyncio
import logging
from collections import defaultdict
from collections.abc import Callable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import MarketStatus, PoolEventType, SwapDirection
from src.pm_common.errors import (
    InvalidInputError,
    MarketAlreadyExistsError,
    MarketNotFoundError,
)
from src.pm_exchange.domain.planner import (
    ExchangePlan,
    plan_add_liquidity,
    plan_remove_liquidity,
    plan_swap,
)
from src.pm_ledger.domain.models import VaultAuthority
from src.pm_ledger.domain.repository import LedgerProtocol
from src.pm_ledger.infrastructure.persistence import LedgerRepository
from src.pm_market.domain.models import (
    Market,
    derive_market_id,
    validate_question,
)
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.infrastructure.persistence import MarketRepository

logger = logging.getLogger(__name__)


class ExchangeService:
    def __init__(
        self,
        repo: MarketRepositoryProtocol | None = None,
        ledger: LedgerProtocol | None = None,
    ) -> None:
        self._repo: MarketRepositoryProtocol = repo or MarketRepository()
        self._ledger: LedgerProtocol = ledger or LedgerRepository()
        self._market_locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def _get_lock(self, market_id: str) -> asyncio.Lock:
        return self._market_locks[market_id]

    async def _load_for_update(self, db: AsyncSession, market_id: str) -> Market:
        market = await self._repo.get_market_by_id(db, market_id, for_update=True)
        if market is None:
            raise MarketNotFoundError(market_id)
        return market

    # ------------------------------------------------------------------
    # createMarket
    # ------------------------------------------------------------------

    async def create_market(
        self,
        db: AsyncSession,
        creator: str,
        question: str,
        yes_asset_id: str,
        no_asset_id: str,
    ) -> Market:
        validate_question(question)
        if yes_asset_id == no_asset_id:
            raise InvalidInputError("yes_asset_id and no_asset_id must differ")

        market_id = derive_market_id(creator, question)
        authority = VaultAuthority.generate(market_id)

        async with self._get_lock(market_id):
            try:
                if await self._repo.get_market_by_id(db, market_id) is not None:
                    raise MarketAlreadyExistsError(market_id)
                try:
                    vaults = await self._ledger.allocate_vaults(
                        db, market_id, yes_asset_id, no_asset_id, authority
                    )
                except IntegrityError as exc:
                    # Another process committed the same vault ids first.
                    raise MarketAlreadyExistsError(market_id) from exc
                market = Market(
                    id=market_id,
                    creator=creator,
                    question=question,
                    yes_asset_id=yes_asset_id,
                    no_asset_id=no_asset_id,
                    yes_vault_id=vaults.yes_vault_id,
                    no_vault_id=vaults.no_vault_id,
                    vault_authority=authority,
                    yes_reserve=0,
                    no_reserve=0,
                    status=MarketStatus.ACTIVE,
                    created_at=utc_now(),
                )
                # Unique-key race with another process: lost the insert.
                if not await self._repo.insert_market(db, market):
                    raise MarketAlreadyExistsError(market_id)
                await self._repo.insert_pool_event(
                    db, market, PoolEventType.CREATE.value, creator, 0, 0, 0
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        logger.info("Market created: %s by %s", market_id, creator)
        return market

    # ------------------------------------------------------------------
    # swap / liquidity
    # ------------------------------------------------------------------

    async def swap(
        self,
        db: AsyncSession,
        market_id: str,
        trader: str,
        input_amount: int,
        min_output: int,
        direction: SwapDirection,
    ) -> tuple[Market, ExchangePlan]:
        market, plan = await self._execute(
            db,
            market_id,
            trader,
            lambda m: plan_swap(m, trader, direction, input_amount, min_output),
        )
        logger.info(
            "Swap market=%s trader=%s %s in=%d out=%d fee=%d",
            market_id, trader, direction.value, input_amount, plan.output_amount, plan.fee,
        )
        return market, plan

    async def add_liquidity(
        self,
        db: AsyncSession,
        market_id: str,
        provider: str,
        yes_amount: int,
        no_amount: int,
    ) -> tuple[Market, ExchangePlan]:
        market, plan = await self._execute(
            db,
            market_id,
            provider,
            lambda m: plan_add_liquidity(m, provider, yes_amount, no_amount),
        )
        logger.info(
            "Liquidity added market=%s yes=%d no=%d", market_id, yes_amount, no_amount
        )
        return market, plan

    async def remove_liquidity(
        self,
        db: AsyncSession,
        market_id: str,
        provider: str,
        yes_amount: int,
        no_amount: int,
    ) -> tuple[Market, ExchangePlan]:
        market, plan = await self._execute(
            db,
            market_id,
            provider,
            lambda m: plan_remove_liquidity(m, provider, yes_amount, no_amount),
        )
        logger.info(
            "Liquidity removed market=%s yes=%d no=%d", market_id, yes_amount, no_amount
        )
        return market, plan

    async def _execute(
        self,
        db: AsyncSession,
        market_id: str,
        user_id: str,
        build_plan: Callable[[Market], ExchangePlan],
    ) -> tuple[Market, ExchangePlan]:
        async with self._get_lock(market_id):
            try:
                market = await self._load_for_update(db, market_id)
                plan = build_plan(market)
                for ins in plan.instructions:
                    await self._ledger.transfer(
                        db,
                        ins.asset_id,
                        ins.source,
                        ins.destination,
                        ins.amount,
                        ins.authorizer,
                        reference_id=market_id,
                    )
                market.apply_reserves(plan.reserves)
                await self._repo.save_market_state(db, market)
                await self._repo.insert_pool_event(
                    db,
                    market,
                    plan.event_type.value,
                    user_id,
                    plan.yes_delta,
                    plan.no_delta,
                    plan.fee,
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        return market, plan

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    async def resolve_market(
        self, db: AsyncSession, market_id: str, outcome: bool, resolver: str | None = None
    ) -> Market:
        market = await self._transition(
            db,
            market_id,
            PoolEventType.RESOLVE,
            resolver,
            lambda m: m.resolve(outcome, utc_now()),
        )
        logger.info("Market resolved: %s -> %s", market_id, market.status.value)
        return market

    async def cancel_market(
        self, db: AsyncSession, market_id: str, resolver: str | None = None
    ) -> Market:
        market = await self._transition(
            db, market_id, PoolEventType.CANCEL, resolver, lambda m: m.cancel(utc_now())
        )
        logger.info("Market cancelled: %s", market_id)
        return market

    async def _transition(
        self,
        db: AsyncSession,
        market_id: str,
        event_type: PoolEventType,
        user_id: str | None,
        apply: Callable[[Market], None],
    ) -> Market:
        async with self._get_lock(market_id):
            try:
                market = await self._load_for_update(db, market_id)
                apply(market)
                await self._repo.save_market_state(db, market)
                await self._repo.insert_pool_event(
                    db, market, event_type.value, user_id, 0, 0, 0
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        return market


_exchange_service: ExchangeService | None = None


def get_exchange_service() -> ExchangeService:
    """Process-wide singleton so every router shares one set of market locks."""
    global _exchange_service  # noqa: PLW0603
    if _exchange_service is None:
        _exchange_service = ExchangeService()
    return _exchange_service
