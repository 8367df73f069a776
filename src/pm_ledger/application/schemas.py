"""Pydantic schemas for pm_ledger API."""

from pydantic import BaseModel, Field

from src.pm_common.u64 import U64_MAX


class BalanceResponse(BaseModel):
    owner_id: str
    asset_id: str
    balance: str


class IssueRequest(BaseModel):
    asset_id: str = Field(min_length=1, max_length=64)
    owner_id: str = Field(min_length=1, max_length=128)
    amount: int = Field(gt=0, le=U64_MAX)


class IssueResponse(BaseModel):
    transfer_id: int
    owner_id: str
    asset_id: str
    amount: str
    balance: str
