"""LedgerApplicationService: balance queries and admin issuance."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_ledger.application.schemas import BalanceResponse, IssueResponse
from src.pm_ledger.domain.repository import LedgerProtocol
from src.pm_ledger.infrastructure.persistence import LedgerRepository

logger = logging.getLogger(__name__)


class LedgerApplicationService:
    def __init__(self, ledger: LedgerProtocol | None = None) -> None:
        self._ledger: LedgerProtocol = ledger or LedgerRepository()

    async def get_balance(
        self, db: AsyncSession, owner_id: str, asset_id: str
    ) -> BalanceResponse:
        balance = await self._ledger.get_balance(db, owner_id, asset_id)
        return BalanceResponse(owner_id=owner_id, asset_id=asset_id, balance=str(balance))

    async def issue(
        self, db: AsyncSession, asset_id: str, owner_id: str, amount: int, issuer: str
    ) -> IssueResponse:
        try:
            transfer = await self._ledger.issue(
                db, asset_id, owner_id, amount, reference_id=f"ISSUE:{issuer}"
            )
            balance = await self._ledger.get_balance(db, owner_id, asset_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Issued %d %s to %s (by %s)", amount, asset_id, owner_id, issuer)
        return IssueResponse(
            transfer_id=transfer.id,
            owner_id=owner_id,
            asset_id=asset_id,
            amount=str(amount),
            balance=str(balance),
        )
