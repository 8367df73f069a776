"""002: create reference ledger tables (vaults, token_balances, token_transfers)

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

U64_MAX = "18446744073709551615"


def upgrade() -> None:
    op.execute("""
        CREATE TABLE vaults (
            id                  VARCHAR(128)    PRIMARY KEY,
            market_id           VARCHAR(64)     NOT NULL REFERENCES markets(id) DEFERRABLE INITIALLY DEFERRED,
            asset_id            VARCHAR(64)     NOT NULL,
            authority_key       VARCHAR(128)    NOT NULL,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_vaults_market_asset UNIQUE (market_id, asset_id)
        );
    """)
    op.execute(f"""
        CREATE TABLE token_balances (
            owner_id            VARCHAR(128)    NOT NULL,
            asset_id            VARCHAR(64)     NOT NULL,
            balance             NUMERIC(20, 0)  NOT NULL DEFAULT 0,
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            PRIMARY KEY (owner_id, asset_id),
            CONSTRAINT ck_token_balances_u64 CHECK (
                balance >= 0 AND balance <= {U64_MAX}
            )
        );
    """)
    op.execute(f"""
        CREATE TABLE token_transfers (
            id                  BIGSERIAL       PRIMARY KEY,
            asset_id            VARCHAR(64)     NOT NULL,
            source              VARCHAR(128),
            destination         VARCHAR(128)    NOT NULL,
            amount              NUMERIC(20, 0)  NOT NULL,
            reference_id        VARCHAR(128),
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_token_transfers_amount CHECK (
                amount > 0 AND amount <= {U64_MAX}
            )
        );
    """)
    op.execute("CREATE INDEX idx_token_transfers_reference ON token_transfers (reference_id);")
    op.execute("COMMENT ON TABLE token_transfers IS 'Append-only journal; source IS NULL for issuance';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS token_transfers;")
    op.execute("DROP TABLE IF EXISTS token_balances;")
    op.execute("DROP TABLE IF EXISTS vaults;")
