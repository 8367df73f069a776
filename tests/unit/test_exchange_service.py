"""Unit tests for ExchangeService using mock repository, ledger and session."""
import asyncio
import dataclasses
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from src.pm_common.enums import MarketStatus, SwapDirection
from src.pm_common.errors import (
    InsufficientLiquidityError,
    InsufficientTokenBalanceError,
    InvalidInputError,
    MarketAlreadyExistsError,
    MarketNotActiveError,
    MarketNotFoundError,
    QuestionTooLongError,
    SlippageExceededError,
)
from src.pm_exchange.application.service import ExchangeService
from src.pm_ledger.domain.models import VaultAuthority, VaultPair
from src.pm_market.domain.models import Market, derive_market_id

CREATOR = "user-creator"
TRADER = "user-trader"


def _make_market(**kwargs) -> Market:
    defaults = dict(
        id="MKT-TEST", creator=CREATOR, question="Will it rain?",
        yes_asset_id="YES-T", no_asset_id="NO-T",
        yes_vault_id="VAULT-MKT-TEST-YES", no_vault_id="VAULT-MKT-TEST-NO",
        vault_authority=VaultAuthority(market_id="MKT-TEST", key="secret"),
        yes_reserve=1000, no_reserve=1000, status=MarketStatus.ACTIVE,
        created_at=datetime.now(UTC),
    )
    defaults.update(kwargs)
    return Market(**defaults)


@pytest.fixture
def db():
    session = MagicMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


@pytest.fixture
def repo():
    r = MagicMock()
    r.get_market_by_id = AsyncMock()
    r.insert_market = AsyncMock(return_value=True)
    r.save_market_state = AsyncMock()
    r.insert_pool_event = AsyncMock()
    return r


@pytest.fixture
def ledger():
    lg = MagicMock()
    lg.transfer = AsyncMock()
    lg.allocate_vaults = AsyncMock(
        side_effect=lambda db, mid, y, n, auth: VaultPair(f"VAULT-{mid}-YES", f"VAULT-{mid}-NO")
    )
    return lg


@pytest.fixture
def svc(repo, ledger):
    return ExchangeService(repo=repo, ledger=ledger)


class TestCreateMarket:
    async def test_creates_active_empty_market(self, svc, repo, ledger, db) -> None:
        repo.get_market_by_id.return_value = None

        market = await svc.create_market(db, CREATOR, "Will it rain?", "YES-T", "NO-T")

        assert market.id == derive_market_id(CREATOR, "Will it rain?")
        assert market.status is MarketStatus.ACTIVE
        assert (market.yes_reserve, market.no_reserve) == (0, 0)
        assert market.resolved_at is None
        assert market.yes_vault_id == f"VAULT-{market.id}-YES"
        authority = ledger.allocate_vaults.call_args.args[4]
        assert authority is market.vault_authority
        assert authority.market_id == market.id
        repo.insert_market.assert_awaited_once()
        db.commit.assert_awaited_once()

    async def test_duplicate_key_rejected(self, svc, repo, ledger, db) -> None:
        repo.get_market_by_id.return_value = _make_market()

        with pytest.raises(MarketAlreadyExistsError):
            await svc.create_market(db, CREATOR, "Will it rain?", "YES-T", "NO-T")

        ledger.allocate_vaults.assert_not_awaited()
        db.rollback.assert_awaited_once()

    async def test_lost_insert_race_rejected(self, svc, repo, db) -> None:
        repo.get_market_by_id.return_value = None
        repo.insert_market.return_value = False

        with pytest.raises(MarketAlreadyExistsError):
            await svc.create_market(db, CREATOR, "Q?", "YES-T", "NO-T")
        db.commit.assert_not_awaited()
        db.rollback.assert_awaited_once()

    async def test_vault_collision_maps_to_already_exists(self, svc, repo, ledger, db) -> None:
        repo.get_market_by_id.return_value = None
        ledger.allocate_vaults = AsyncMock(
            side_effect=IntegrityError("INSERT INTO vaults", {}, Exception("duplicate key"))
        )

        with pytest.raises(MarketAlreadyExistsError) as exc_info:
            await svc.create_market(db, CREATOR, "Will it rain?", "YES-T", "NO-T")

        assert (exc_info.value.code, exc_info.value.http_status) == (3003, 409)
        repo.insert_market.assert_not_awaited()
        db.commit.assert_not_awaited()
        db.rollback.assert_awaited_once()

    async def test_question_too_long(self, svc, ledger, db) -> None:
        with pytest.raises(QuestionTooLongError):
            await svc.create_market(db, CREATOR, "x" * 513, "YES-T", "NO-T")
        ledger.allocate_vaults.assert_not_awaited()

    async def test_same_assets_rejected(self, svc, db) -> None:
        with pytest.raises(InvalidInputError):
            await svc.create_market(db, CREATOR, "Q?", "TOKEN", "TOKEN")


class TestSwap:
    async def test_swap_commits_and_updates_reserves(self, svc, repo, ledger, db) -> None:
        market = _make_market()
        repo.get_market_by_id.return_value = market

        result, plan = await svc.swap(db, "MKT-TEST", TRADER, 1000, 499, SwapDirection.YES_TO_NO)

        assert plan.output_amount == 499
        assert (result.yes_reserve, result.no_reserve) == (1997, 501)
        repo.get_market_by_id.assert_awaited_once_with(db, "MKT-TEST", for_update=True)
        assert ledger.transfer.await_count == 2
        first, second = ledger.transfer.await_args_list
        assert first.args[1:5] == ("YES-T", TRADER, "VAULT-MKT-TEST-YES", 1000)
        assert second.args[1:5] == ("NO-T", "VAULT-MKT-TEST-NO", TRADER, 499)
        repo.save_market_state.assert_awaited_once_with(db, market)
        event_args = repo.insert_pool_event.await_args.args
        assert event_args[2:] == ("SWAP_YES_FOR_NO", TRADER, 997, -499, 3)
        db.commit.assert_awaited_once()

    async def test_slippage_leaves_everything_untouched(self, svc, repo, ledger, db) -> None:
        market = _make_market()
        repo.get_market_by_id.return_value = market

        with pytest.raises(SlippageExceededError):
            await svc.swap(db, "MKT-TEST", TRADER, 1000, 500, SwapDirection.YES_TO_NO)

        assert (market.yes_reserve, market.no_reserve) == (1000, 1000)
        ledger.transfer.assert_not_awaited()
        repo.save_market_state.assert_not_awaited()
        db.commit.assert_not_awaited()
        db.rollback.assert_awaited_once()

    async def test_ledger_failure_rolls_back_without_mutation(self, svc, repo, ledger, db) -> None:
        market = _make_market()
        repo.get_market_by_id.return_value = market
        ledger.transfer.side_effect = InsufficientTokenBalanceError(TRADER, "YES-T", 1000)

        with pytest.raises(InsufficientTokenBalanceError):
            await svc.swap(db, "MKT-TEST", TRADER, 1000, 0, SwapDirection.YES_TO_NO)

        assert (market.yes_reserve, market.no_reserve) == (1000, 1000)
        repo.save_market_state.assert_not_awaited()
        db.rollback.assert_awaited_once()

    async def test_resolved_market_rejects_swap(self, svc, repo, db) -> None:
        repo.get_market_by_id.return_value = _make_market(
            status=MarketStatus.RESOLVED_YES, resolved_at=datetime.now(UTC)
        )
        with pytest.raises(MarketNotActiveError):
            await svc.swap(db, "MKT-TEST", TRADER, 1000, 0, SwapDirection.YES_TO_NO)

    async def test_unknown_market(self, svc, repo, db) -> None:
        repo.get_market_by_id.return_value = None
        with pytest.raises(MarketNotFoundError):
            await svc.swap(db, "MKT-NOPE", TRADER, 1000, 0, SwapDirection.YES_TO_NO)
        db.rollback.assert_awaited_once()


class TestLiquidity:
    async def test_add_then_remove_restores_reserves(self, svc, repo, ledger, db) -> None:
        market = _make_market()
        repo.get_market_by_id.return_value = market

        await svc.add_liquidity(db, "MKT-TEST", CREATOR, 300, 200)
        assert (market.yes_reserve, market.no_reserve) == (1300, 1200)
        await svc.remove_liquidity(db, "MKT-TEST", CREATOR, 300, 200)
        assert (market.yes_reserve, market.no_reserve) == (1000, 1000)
        assert ledger.transfer.await_count == 4
        assert db.commit.await_count == 2

    async def test_over_withdrawal_fails_with_reserves_untouched(
        self, svc, repo, ledger, db
    ) -> None:
        market = _make_market()
        repo.get_market_by_id.return_value = market

        with pytest.raises(InsufficientLiquidityError):
            await svc.remove_liquidity(db, "MKT-TEST", CREATOR, 1001, 1)

        assert (market.yes_reserve, market.no_reserve) == (1000, 1000)
        ledger.transfer.assert_not_awaited()
        db.rollback.assert_awaited_once()


class TestLifecycle:
    @pytest.mark.parametrize("outcome", [True, False])
    async def test_resolve_then_resolve_again_fails(self, svc, repo, ledger, db, outcome) -> None:
        market = _make_market()
        repo.get_market_by_id.return_value = market

        await svc.resolve_market(db, "MKT-TEST", True, "admin")
        assert market.status is MarketStatus.RESOLVED_YES
        with pytest.raises(MarketNotActiveError):
            await svc.resolve_market(db, "MKT-TEST", outcome, "admin")
        assert market.status is MarketStatus.RESOLVED_YES
        ledger.transfer.assert_not_awaited()
        assert db.commit.await_count == 1

    async def test_cancel(self, svc, repo, db) -> None:
        market = _make_market()
        repo.get_market_by_id.return_value = market

        await svc.cancel_market(db, "MKT-TEST", "admin")

        assert market.status is MarketStatus.CANCELLED
        assert market.resolved_at is not None
        assert repo.insert_pool_event.await_args.args[2] == "CANCEL"


class TestLocks:
    def test_one_lock_per_market(self, svc) -> None:
        assert svc._get_lock("MKT-A") is svc._get_lock("MKT-A")
        assert svc._get_lock("MKT-A") is not svc._get_lock("MKT-B")

    async def test_concurrent_swaps_on_one_market_are_serialized(
        self, svc, repo, ledger, db
    ) -> None:
        stored = {"market": _make_market()}

        async def load(session, market_id, for_update=False):
            await asyncio.sleep(0)
            return dataclasses.replace(stored["market"])

        async def save(session, market):
            stored["market"] = dataclasses.replace(market)

        async def slow_transfer(*args, **kwargs):
            await asyncio.sleep(0)

        repo.get_market_by_id = AsyncMock(side_effect=load)
        repo.save_market_state = AsyncMock(side_effect=save)
        ledger.transfer = AsyncMock(side_effect=slow_transfer)

        results = await asyncio.gather(
            svc.swap(db, "MKT-TEST", TRADER, 1000, 499, SwapDirection.YES_TO_NO),
            svc.swap(db, "MKT-TEST", TRADER, 1000, 499, SwapDirection.YES_TO_NO),
            return_exceptions=True,
        )

        # The second swap is priced against the first one's reserves.
        outputs = [r if isinstance(r, Exception) else r[1].output_amount for r in results]
        assert outputs[0] == 499
        assert isinstance(outputs[1], SlippageExceededError)
        final = stored["market"]
        assert (final.yes_reserve, final.no_reserve) == (1997, 501)
        assert db.commit.await_count == 1
        assert db.rollback.await_count == 1
