# tests/unit/test_market_persistence.py
"""Unit tests for MarketRepository using MagicMock AsyncSession."""
from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.pm_common.enums import MarketStatus
from src.pm_ledger.domain.models import VaultAuthority
from src.pm_market.domain.models import Market
from src.pm_market.infrastructure.persistence import MarketRepository


def _make_market_row(**kwargs):
    """Build a mock DB row with all required fields (NUMERIC comes back as Decimal)."""
    row = MagicMock()
    row.id = kwargs.get("id", "MKT-TEST")
    row.creator = kwargs.get("creator", "user-1")
    row.question = kwargs.get("question", "Will it rain?")
    row.yes_asset_id = "YES-T"
    row.no_asset_id = "NO-T"
    row.yes_vault_id = f"VAULT-{row.id}-YES"
    row.no_vault_id = f"VAULT-{row.id}-NO"
    row.vault_authority_key = "secret"
    row.yes_reserve = Decimal(kwargs.get("yes_reserve", 18446744073709551615))
    row.no_reserve = Decimal(kwargs.get("no_reserve", 7))
    row.status = kwargs.get("status", "ACTIVE")
    row.created_at = datetime.now(UTC)
    row.resolved_at = None
    row.updated_at = datetime.now(UTC)
    return row


def _result(row=None, rows=None):
    result = MagicMock()
    result.fetchone.return_value = row
    result.fetchall.return_value = rows or []
    return result


@pytest.fixture
def db():
    return MagicMock()


class TestGetMarketById:
    @pytest.mark.asyncio
    async def test_maps_row_to_domain(self, db):
        db.execute = AsyncMock(return_value=_result(_make_market_row(id="MKT-BTC")))

        market = await MarketRepository().get_market_by_id(db, "MKT-BTC")

        assert market is not None
        assert market.id == "MKT-BTC"
        assert market.yes_reserve == 18446744073709551615
        assert isinstance(market.yes_reserve, int)
        assert market.status is MarketStatus.ACTIVE
        assert market.vault_authority == VaultAuthority("MKT-BTC", "secret")

    @pytest.mark.asyncio
    async def test_returns_none_when_missing(self, db):
        db.execute = AsyncMock(return_value=_result(None))
        assert await MarketRepository().get_market_by_id(db, "MKT-X") is None

    @pytest.mark.asyncio
    async def test_for_update_locks_row(self, db):
        db.execute = AsyncMock(return_value=_result(_make_market_row()))
        await MarketRepository().get_market_by_id(db, "MKT-TEST", for_update=True)
        sql = str(db.execute.call_args.args[0])
        assert "FOR UPDATE" in sql


class TestInsertAndSave:
    def _market(self) -> Market:
        return Market(
            id="MKT-NEW", creator="u", question="Q?", yes_asset_id="Y", no_asset_id="N",
            yes_vault_id="VY", no_vault_id="VN",
            vault_authority=VaultAuthority("MKT-NEW", "key-1"),
            yes_reserve=0, no_reserve=0, status=MarketStatus.ACTIVE,
            created_at=datetime.now(UTC),
        )

    @pytest.mark.asyncio
    async def test_insert_returns_false_on_conflict(self, db):
        db.execute = AsyncMock(return_value=_result(None))
        assert await MarketRepository().insert_market(db, self._market()) is False

    @pytest.mark.asyncio
    async def test_insert_persists_authority_key(self, db):
        db.execute = AsyncMock(return_value=_result(MagicMock(id="MKT-NEW")))
        assert await MarketRepository().insert_market(db, self._market()) is True
        params = db.execute.call_args.args[1]
        assert params["vault_authority_key"] == "key-1"
        assert params["status"] == "ACTIVE"

    @pytest.mark.asyncio
    async def test_save_state_writes_reserves_and_status(self, db):
        db.execute = AsyncMock()
        m = self._market()
        m.yes_reserve, m.no_reserve = 10, 20
        m.resolve(False, datetime.now(UTC))

        await MarketRepository().save_market_state(db, m)

        params = db.execute.call_args.args[1]
        assert params["yes_reserve"] == 10
        assert params["no_reserve"] == 20
        assert params["status"] == "RESOLVED_NO"
        assert params["resolved_at"] is not None


class TestListMarkets:
    @pytest.mark.asyncio
    async def test_cursor_timestamp_parsed_to_datetime(self, db):
        db.execute = AsyncMock(return_value=_result(rows=[_make_market_row()]))
        ts = datetime.now(UTC).isoformat()

        markets = await MarketRepository().list_markets(db, "ACTIVE", None, ts, "MKT-A", 21)

        assert len(markets) == 1
        params = db.execute.call_args.args[1]
        assert isinstance(params["cursor_ts"], datetime)
        assert params["limit"] == 21


class TestStats:
    @pytest.mark.asyncio
    async def test_stats_converted_to_int(self, db):
        row = MagicMock(
            swap_count=4, yes_volume=Decimal(3000), no_volume=Decimal(1000),
            total_fees=Decimal(12),
        )
        db.execute = AsyncMock(return_value=_result(row))

        stats = await MarketRepository().get_market_stats(db, "MKT-TEST")

        assert stats.swap_count == 4
        assert stats.yes_volume == 3000
        assert stats.total_fees == 12
