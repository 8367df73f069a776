"""003: create pool_events table

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE pool_events (
            id                  BIGSERIAL       PRIMARY KEY,
            market_id           VARCHAR(64)     NOT NULL REFERENCES markets(id),
            event_type          VARCHAR(32)     NOT NULL,
            user_id             VARCHAR(128),
            yes_delta           NUMERIC(21, 0)  NOT NULL DEFAULT 0,
            no_delta            NUMERIC(21, 0)  NOT NULL DEFAULT 0,
            fee                 NUMERIC(20, 0)  NOT NULL DEFAULT 0,
            yes_reserve_after   NUMERIC(20, 0)  NOT NULL,
            no_reserve_after    NUMERIC(20, 0)  NOT NULL,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_pool_events_type CHECK (
                event_type IN (
                    'CREATE', 'SWAP_YES_FOR_NO', 'SWAP_NO_FOR_YES',
                    'ADD_LIQUIDITY', 'REMOVE_LIQUIDITY', 'RESOLVE', 'CANCEL'
                )
            ),
            CONSTRAINT ck_pool_events_fee CHECK (fee >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_pool_events_market ON pool_events (market_id, id DESC);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS pool_events;")
