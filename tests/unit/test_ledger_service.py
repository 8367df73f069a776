"""Unit tests for LedgerApplicationService."""
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.pm_common.errors import InsufficientTokenBalanceError, VaultNotFoundError
from src.pm_ledger.application.service import LedgerApplicationService
from src.pm_ledger.domain.models import TokenTransfer


def _make_ledger(balance: int = 0) -> MagicMock:
    ledger = MagicMock()
    ledger.get_balance = AsyncMock(return_value=balance)
    ledger.issue = AsyncMock(
        return_value=TokenTransfer(
            id=7, asset_id="YES-T", source=None, destination="alice", amount=500
        )
    )
    return ledger


@pytest.mark.asyncio
async def test_balance_rendered_as_string() -> None:
    svc = LedgerApplicationService(_make_ledger(balance=2**64 - 1))
    result = await svc.get_balance(AsyncMock(), "alice", "YES-T")
    assert result.balance == "18446744073709551615"
    assert result.owner_id == "alice"


@pytest.mark.asyncio
async def test_issue_commits_and_reports_new_balance() -> None:
    db = AsyncMock()
    ledger = _make_ledger(balance=1500)
    svc = LedgerApplicationService(ledger)

    result = await svc.issue(db, "YES-T", "alice", 500, "admin")

    ledger.issue.assert_awaited_once_with(
        db, "YES-T", "alice", 500, reference_id="ISSUE:admin"
    )
    db.commit.assert_awaited_once()
    db.rollback.assert_not_awaited()
    assert result.transfer_id == 7
    assert (result.amount, result.balance) == ("500", "1500")


@pytest.mark.asyncio
async def test_issue_rolls_back_on_ledger_error() -> None:
    db = AsyncMock()
    ledger = _make_ledger()
    ledger.issue = AsyncMock(side_effect=VaultNotFoundError("VAULT-X"))
    svc = LedgerApplicationService(ledger)

    with pytest.raises(VaultNotFoundError):
        await svc.issue(db, "YES-T", "alice", 500, "admin")

    db.rollback.assert_awaited_once()
    db.commit.assert_not_awaited()


def test_insufficient_balance_error_shape() -> None:
    err = InsufficientTokenBalanceError("alice", "YES-T", 10)
    assert (err.code, err.http_status) == (7001, 422)
