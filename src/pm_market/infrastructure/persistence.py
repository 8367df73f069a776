"""MarketRepository: concrete implementation of MarketRepositoryProtocol.

All queries use raw text() SQL (no ORM).
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.
Reserves are NUMERIC(20,0) (u64 does not fit BIGINT); rows are converted
back to int in the mappers.
"""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.enums import MarketStatus, PoolEventType
from src.pm_ledger.domain.models import VaultAuthority
from src.pm_market.domain.models import Market, MarketStats, PoolEvent

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_MARKET_COLUMNS = """
    id, creator, question, yes_asset_id, no_asset_id,
    yes_vault_id, no_vault_id, vault_authority_key,
    yes_reserve, no_reserve, status,
    created_at, resolved_at, updated_at
"""

_INSERT_MARKET_SQL = text("""
    INSERT INTO markets
        (id, creator, question, yes_asset_id, no_asset_id,
         yes_vault_id, no_vault_id, vault_authority_key,
         yes_reserve, no_reserve, status, created_at)
    VALUES
        (:id, :creator, :question, :yes_asset_id, :no_asset_id,
         :yes_vault_id, :no_vault_id, :vault_authority_key,
         :yes_reserve, :no_reserve, :status, :created_at)
    ON CONFLICT (id) DO NOTHING
    RETURNING id
""")

_GET_MARKET_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE id = :market_id
""")

_GET_MARKET_FOR_UPDATE_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE id = :market_id
    FOR UPDATE
""")

_LIST_MARKETS_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE
        (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
        AND (CAST(:creator AS TEXT) IS NULL OR creator = CAST(:creator AS TEXT))
        AND (
            CAST(:cursor_ts AS TIMESTAMPTZ) IS NULL
            OR created_at < CAST(:cursor_ts AS TIMESTAMPTZ)
            OR (
                created_at = CAST(:cursor_ts AS TIMESTAMPTZ)
                AND id < CAST(:cursor_id AS TEXT)
            )
        )
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_LIST_ALL_MARKETS_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    ORDER BY created_at, id
""")

_UPDATE_MARKET_STATE_SQL = text("""
    UPDATE markets
    SET yes_reserve = :yes_reserve,
        no_reserve  = :no_reserve,
        status      = :status,
        resolved_at = :resolved_at,
        updated_at  = NOW()
    WHERE id = :id
""")

_INSERT_POOL_EVENT_SQL = text("""
    INSERT INTO pool_events
        (market_id, event_type, user_id, yes_delta, no_delta, fee,
         yes_reserve_after, no_reserve_after)
    VALUES
        (:market_id, :event_type, :user_id, :yes_delta, :no_delta, :fee,
         :yes_reserve_after, :no_reserve_after)
    RETURNING id, created_at
""")

_LIST_POOL_EVENTS_SQL = text("""
    SELECT id, market_id, event_type, user_id, yes_delta, no_delta, fee,
           yes_reserve_after, no_reserve_after, created_at
    FROM pool_events
    WHERE market_id = :market_id
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < CAST(:cursor_id AS BIGINT))
    ORDER BY id DESC
    LIMIT :limit
""")

_MARKET_STATS_SQL = text("""
    SELECT
        COUNT(*) FILTER (
            WHERE event_type IN ('SWAP_YES_FOR_NO', 'SWAP_NO_FOR_YES')
        ) AS swap_count,
        COALESCE(SUM(yes_delta + fee) FILTER (
            WHERE event_type = 'SWAP_YES_FOR_NO'
        ), 0) AS yes_volume,
        COALESCE(SUM(no_delta + fee) FILTER (
            WHERE event_type = 'SWAP_NO_FOR_YES'
        ), 0) AS no_volume,
        COALESCE(SUM(fee), 0) AS total_fees
    FROM pool_events
    WHERE market_id = :market_id
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------

def _row_to_market(row: object) -> Market:
    return Market(
        id=row.id,  # type: ignore[attr-defined]
        creator=row.creator,  # type: ignore[attr-defined]
        question=row.question,  # type: ignore[attr-defined]
        yes_asset_id=row.yes_asset_id,  # type: ignore[attr-defined]
        no_asset_id=row.no_asset_id,  # type: ignore[attr-defined]
        yes_vault_id=row.yes_vault_id,  # type: ignore[attr-defined]
        no_vault_id=row.no_vault_id,  # type: ignore[attr-defined]
        vault_authority=VaultAuthority(
            market_id=row.id,  # type: ignore[attr-defined]
            key=row.vault_authority_key,  # type: ignore[attr-defined]
        ),
        yes_reserve=int(row.yes_reserve),  # type: ignore[attr-defined]
        no_reserve=int(row.no_reserve),  # type: ignore[attr-defined]
        status=MarketStatus(row.status),  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        resolved_at=row.resolved_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_pool_event(row: object) -> PoolEvent:
    return PoolEvent(
        id=row.id,  # type: ignore[attr-defined]
        market_id=row.market_id,  # type: ignore[attr-defined]
        event_type=row.event_type,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        yes_delta=int(row.yes_delta),  # type: ignore[attr-defined]
        no_delta=int(row.no_delta),  # type: ignore[attr-defined]
        fee=int(row.fee),  # type: ignore[attr-defined]
        yes_reserve_after=int(row.yes_reserve_after),  # type: ignore[attr-defined]
        no_reserve_after=int(row.no_reserve_after),  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------

class MarketRepository:
    """Concrete repository. Writes run in the caller's transaction."""

    async def insert_market(self, db: AsyncSession, market: Market) -> bool:
        """Insert a new market row. Returns False if the id already exists."""
        result = await db.execute(
            _INSERT_MARKET_SQL,
            {
                "id": market.id,
                "creator": market.creator,
                "question": market.question,
                "yes_asset_id": market.yes_asset_id,
                "no_asset_id": market.no_asset_id,
                "yes_vault_id": market.yes_vault_id,
                "no_vault_id": market.no_vault_id,
                "vault_authority_key": market.vault_authority.key,
                "yes_reserve": market.yes_reserve,
                "no_reserve": market.no_reserve,
                "status": market.status.value,
                "created_at": market.created_at,
            },
        )
        return result.fetchone() is not None

    async def get_market_by_id(
        self, db: AsyncSession, market_id: str, for_update: bool = False
    ) -> Market | None:
        sql = _GET_MARKET_FOR_UPDATE_SQL if for_update else _GET_MARKET_SQL
        result = await db.execute(sql, {"market_id": market_id})
        row = result.fetchone()
        return _row_to_market(row) if row else None

    async def list_markets(
        self,
        db: AsyncSession,
        status: str | None,
        creator: str | None,
        cursor_ts: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Market]:
        # asyncpg requires a real datetime object for TIMESTAMPTZ parameters,
        # not an ISO string.  Parse the cursor timestamp here.
        cursor_ts_dt: datetime | None = None
        if cursor_ts is not None:
            cursor_ts_dt = datetime.fromisoformat(cursor_ts)

        result = await db.execute(
            _LIST_MARKETS_SQL,
            {
                "status": status,
                "creator": creator,
                "cursor_ts": cursor_ts_dt,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_market(row) for row in result.fetchall()]

    async def list_all_markets(self, db: AsyncSession) -> list[Market]:
        result = await db.execute(_LIST_ALL_MARKETS_SQL)
        return [_row_to_market(row) for row in result.fetchall()]

    async def save_market_state(self, db: AsyncSession, market: Market) -> None:
        """Flush the mutable part of the record (reserves + lifecycle)."""
        await db.execute(
            _UPDATE_MARKET_STATE_SQL,
            {
                "id": market.id,
                "yes_reserve": market.yes_reserve,
                "no_reserve": market.no_reserve,
                "status": market.status.value,
                "resolved_at": market.resolved_at,
            },
        )

    async def insert_pool_event(
        self,
        db: AsyncSession,
        market: Market,
        event_type: str,
        user_id: str | None,
        yes_delta: int,
        no_delta: int,
        fee: int,
    ) -> PoolEvent:
        params = {
            "market_id": market.id,
            "event_type": PoolEventType(event_type).value,
            "user_id": user_id,
            "yes_delta": yes_delta,
            "no_delta": no_delta,
            "fee": fee,
            "yes_reserve_after": market.yes_reserve,
            "no_reserve_after": market.no_reserve,
        }
        row = (await db.execute(_INSERT_POOL_EVENT_SQL, params)).fetchone()
        return PoolEvent(
            id=row.id,  # type: ignore[union-attr]
            market_id=market.id,
            event_type=params["event_type"],
            user_id=user_id,
            yes_delta=yes_delta,
            no_delta=no_delta,
            fee=fee,
            yes_reserve_after=market.yes_reserve,
            no_reserve_after=market.no_reserve,
            created_at=row.created_at,  # type: ignore[union-attr]
        )

    async def list_pool_events(
        self,
        db: AsyncSession,
        market_id: str,
        cursor_id: int | None,
        limit: int,
    ) -> list[PoolEvent]:
        result = await db.execute(
            _LIST_POOL_EVENTS_SQL,
            {"market_id": market_id, "cursor_id": cursor_id, "limit": limit},
        )
        return [_row_to_pool_event(row) for row in result.fetchall()]

    async def get_market_stats(self, db: AsyncSession, market_id: str) -> MarketStats:
        row = (await db.execute(_MARKET_STATS_SQL, {"market_id": market_id})).fetchone()
        return MarketStats(
            market_id=market_id,
            swap_count=int(row.swap_count) if row else 0,
            yes_volume=int(row.yes_volume) if row else 0,
            no_volume=int(row.no_volume) if row else 0,
            total_fees=int(row.total_fees) if row else 0,
        )
