"""LedgerRepository: PostgreSQL reference implementation of LedgerProtocol.

Balances are u64 stored as NUMERIC(20,0) (asyncpg hands them back as
Decimal, converted to int at the boundary). Debits use an atomic
UPDATE ... WHERE balance >= :amount RETURNING; zero rows means the source
cannot cover the amount.

Transaction ownership: the CALLER (ExchangeService / AdminService) owns
the transaction and commits or rolls back.
"""

import logging

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.errors import (
    InsufficientTokenBalanceError,
    InvalidInputError,
    MathOverflowError,
    UnauthorizedTransferError,
    VaultNotFoundError,
)
from src.pm_common.u64 import is_u64
from src.pm_ledger.domain.models import (
    Authorizer,
    CallerAuthorization,
    TokenTransfer,
    VaultAuthority,
    VaultPair,
    vault_id_for,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_INSERT_VAULT_SQL = text("""
    INSERT INTO vaults (id, market_id, asset_id, authority_key)
    VALUES (:id, :market_id, :asset_id, :authority_key)
""")

_INIT_BALANCE_SQL = text("""
    INSERT INTO token_balances (owner_id, asset_id, balance)
    VALUES (:owner_id, :asset_id, 0)
    ON CONFLICT (owner_id, asset_id) DO NOTHING
""")

_GET_VAULT_SQL = text("""
    SELECT id, market_id, asset_id, authority_key
    FROM vaults
    WHERE id = :vault_id
""")

_DEBIT_SQL = text("""
    UPDATE token_balances
    SET balance = balance - :amount,
        updated_at = NOW()
    WHERE owner_id = :owner_id AND asset_id = :asset_id AND balance >= :amount
    RETURNING balance
""")

_CREDIT_SQL = text("""
    INSERT INTO token_balances (owner_id, asset_id, balance)
    VALUES (:owner_id, :asset_id, :amount)
    ON CONFLICT (owner_id, asset_id) DO UPDATE
    SET balance = token_balances.balance + :amount,
        updated_at = NOW()
    RETURNING balance
""")

_INSERT_TRANSFER_SQL = text("""
    INSERT INTO token_transfers (asset_id, source, destination, amount, reference_id)
    VALUES (:asset_id, :source, :destination, :amount, :reference_id)
    RETURNING id, created_at
""")

_GET_BALANCE_SQL = text("""
    SELECT balance
    FROM token_balances
    WHERE owner_id = :owner_id AND asset_id = :asset_id
""")


class LedgerRepository:
    """Concrete ledger: every method runs inside the caller's transaction."""

    async def allocate_vaults(
        self,
        db: AsyncSession,
        market_id: str,
        yes_asset_id: str,
        no_asset_id: str,
        authority: VaultAuthority,
    ) -> VaultPair:
        if authority.market_id != market_id:
            raise UnauthorizedTransferError(market_id)
        pair = VaultPair(
            yes_vault_id=vault_id_for(market_id, "YES"),
            no_vault_id=vault_id_for(market_id, "NO"),
        )
        for vault_id, asset_id in (
            (pair.yes_vault_id, yes_asset_id),
            (pair.no_vault_id, no_asset_id),
        ):
            await db.execute(
                _INSERT_VAULT_SQL,
                {
                    "id": vault_id,
                    "market_id": market_id,
                    "asset_id": asset_id,
                    "authority_key": authority.key,
                },
            )
            await db.execute(
                _INIT_BALANCE_SQL, {"owner_id": vault_id, "asset_id": asset_id}
            )
        logger.debug("Allocated vaults for market=%s: %s", market_id, pair)
        return pair

    async def transfer(
        self,
        db: AsyncSession,
        asset_id: str,
        source: str,
        destination: str,
        amount: int,
        authorizer: Authorizer,
        reference_id: str | None = None,
    ) -> TokenTransfer:
        if not is_u64(amount) or amount == 0:
            raise InvalidInputError(f"transfer amount must be in 1..2^64-1, got {amount}")
        if source == destination:
            raise InvalidInputError("transfer source and destination are the same account")

        await self._authorize(db, asset_id, source, authorizer)
        await self._check_destination(db, asset_id, destination)

        debit = await db.execute(
            _DEBIT_SQL, {"owner_id": source, "asset_id": asset_id, "amount": amount}
        )
        if debit.fetchone() is None:
            raise InsufficientTokenBalanceError(source, asset_id, amount)

        await self._credit(db, asset_id, destination, amount)
        return await self._journal(db, asset_id, source, destination, amount, reference_id)

    async def issue(
        self,
        db: AsyncSession,
        asset_id: str,
        owner_id: str,
        amount: int,
        reference_id: str | None = None,
    ) -> TokenTransfer:
        """Create new outcome tokens in owner_id's account (admin only)."""
        if not is_u64(amount) or amount == 0:
            raise InvalidInputError(f"issue amount must be in 1..2^64-1, got {amount}")
        await self._check_destination(db, asset_id, owner_id)
        await self._credit(db, asset_id, owner_id, amount)
        return await self._journal(db, asset_id, None, owner_id, amount, reference_id)

    async def get_balance(self, db: AsyncSession, owner_id: str, asset_id: str) -> int:
        result = await db.execute(
            _GET_BALANCE_SQL, {"owner_id": owner_id, "asset_id": asset_id}
        )
        balance = result.scalar_one_or_none()
        return int(balance) if balance is not None else 0

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    async def _authorize(
        self, db: AsyncSession, asset_id: str, source: str, authorizer: Authorizer
    ) -> None:
        vault = (await db.execute(_GET_VAULT_SQL, {"vault_id": source})).fetchone()

        if isinstance(authorizer, CallerAuthorization):
            # Callers may only spend from their own, non-vault account.
            if vault is not None or authorizer.user_id != source:
                raise UnauthorizedTransferError(source)
            return

        if vault is None:
            raise VaultNotFoundError(source)
        if vault.market_id != authorizer.market_id or vault.authority_key != authorizer.key:
            raise UnauthorizedTransferError(source)
        if vault.asset_id != asset_id:
            raise InvalidInputError(f"vault {source} holds {vault.asset_id}, not {asset_id}")

    async def _check_destination(
        self, db: AsyncSession, asset_id: str, destination: str
    ) -> None:
        vault = (await db.execute(_GET_VAULT_SQL, {"vault_id": destination})).fetchone()
        if vault is not None and vault.asset_id != asset_id:
            raise InvalidInputError(
                f"vault {destination} holds {vault.asset_id}, not {asset_id}"
            )

    async def _credit(
        self, db: AsyncSession, asset_id: str, owner_id: str, amount: int
    ) -> None:
        try:
            await db.execute(
                _CREDIT_SQL, {"owner_id": owner_id, "asset_id": asset_id, "amount": amount}
            )
        except IntegrityError as exc:
            # ck_token_balances_u64 rejected the new balance
            raise MathOverflowError(f"{asset_id} balance overflow for {owner_id}") from exc

    async def _journal(
        self,
        db: AsyncSession,
        asset_id: str,
        source: str | None,
        destination: str,
        amount: int,
        reference_id: str | None,
    ) -> TokenTransfer:
        row = (
            await db.execute(
                _INSERT_TRANSFER_SQL,
                {
                    "asset_id": asset_id,
                    "source": source,
                    "destination": destination,
                    "amount": amount,
                    "reference_id": reference_id,
                },
            )
        ).fetchone()
        return TokenTransfer(
            id=row.id,  # type: ignore[union-attr]
            asset_id=asset_id,
            source=source,
            destination=destination,
            amount=amount,
            reference_id=reference_id,
            created_at=row.created_at,  # type: ignore[union-attr]
        )
