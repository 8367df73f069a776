"""001: create common functions and markets table

Revision ID: 001
Revises: 
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# u64 does not fit BIGINT (signed), so reserves are NUMERIC(20,0) with range CHECKs.
U64_MAX = "18446744073709551615"


def upgrade() -> None:
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_update_timestamp()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute(f"""
        CREATE TABLE markets (
            id                      VARCHAR(64)     PRIMARY KEY,
            creator                 VARCHAR(128)    NOT NULL,
            question                TEXT            NOT NULL,
            yes_asset_id            VARCHAR(64)     NOT NULL,
            no_asset_id             VARCHAR(64)     NOT NULL,
            yes_vault_id            VARCHAR(128)    NOT NULL,
            no_vault_id             VARCHAR(128)    NOT NULL,
            vault_authority_key     VARCHAR(128)    NOT NULL,
            yes_reserve             NUMERIC(20, 0)  NOT NULL DEFAULT 0,
            no_reserve              NUMERIC(20, 0)  NOT NULL DEFAULT 0,
            status                  VARCHAR(20)     NOT NULL DEFAULT 'ACTIVE',
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            resolved_at             TIMESTAMPTZ,
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_markets_creation_key UNIQUE (creator, question),
            CONSTRAINT ck_markets_question_len CHECK (
                octet_length(question) BETWEEN 1 AND 512
            ),
            CONSTRAINT ck_markets_assets_distinct CHECK (yes_asset_id <> no_asset_id),
            CONSTRAINT ck_markets_yes_reserve_u64 CHECK (
                yes_reserve >= 0 AND yes_reserve <= {U64_MAX}
            ),
            CONSTRAINT ck_markets_no_reserve_u64 CHECK (
                no_reserve >= 0 AND no_reserve <= {U64_MAX}
            ),
            CONSTRAINT ck_markets_reserves_balanced CHECK (
                (yes_reserve = 0) = (no_reserve = 0)
            ),
            CONSTRAINT ck_markets_status CHECK (
                status IN ('ACTIVE', 'RESOLVED_YES', 'RESOLVED_NO', 'CANCELLED')
            ),
            CONSTRAINT ck_markets_resolved_at CHECK (
                (status = 'ACTIVE') = (resolved_at IS NULL)
            )
        );
    """)
    op.execute("CREATE INDEX idx_markets_status_created ON markets (status, created_at DESC, id DESC);")
    op.execute("CREATE INDEX idx_markets_creator ON markets (creator);")
    op.execute("""
        CREATE TRIGGER trg_markets_updated_at
            BEFORE UPDATE ON markets
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE markets IS 'Binary YES/NO market: reserve pool state + lifecycle';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS markets CASCADE;")
    op.execute("DROP FUNCTION IF EXISTS fn_update_timestamp();")
