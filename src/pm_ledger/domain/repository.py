"""Ledger Protocol: the custody collaborator the exchange core depends on.

Unit tests inject an AsyncMock that conforms to this Protocol.
infrastructure/persistence.py provides the PostgreSQL reference ledger.
All calls run inside the caller's transaction; the caller commits.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_ledger.domain.models import Authorizer, TokenTransfer, VaultAuthority, VaultPair


class LedgerProtocol(Protocol):
    async def allocate_vaults(
        self,
        db: AsyncSession,
        market_id: str,
        yes_asset_id: str,
        no_asset_id: str,
        authority: VaultAuthority,
    ) -> VaultPair: ...

    async def transfer(
        self,
        db: AsyncSession,
        asset_id: str,
        source: str,
        destination: str,
        amount: int,
        authorizer: Authorizer,
        reference_id: str | None = None,
    ) -> TokenTransfer: ...

    async def issue(
        self,
        db: AsyncSession,
        asset_id: str,
        owner_id: str,
        amount: int,
        reference_id: str | None = None,
    ) -> TokenTransfer: ...

    async def get_balance(
        self, db: AsyncSession, owner_id: str, asset_id: str
    ) -> int: ...
