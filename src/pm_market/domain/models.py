"""Domain models for pm_market: the Market record and its lifecycle.

Lifecycle:
    ACTIVE --resolve(True)--> RESOLVED_YES
    ACTIVE --resolve(False)-> RESOLVED_NO
    ACTIVE --cancel()-------> CANCELLED
Terminal states never change; resolved_at is set exactly once, on the
transition out of ACTIVE.
"""

import hashlib
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from src.pm_amm.domain.pool import (
    ReservePair,
    implied_no_price,
    implied_yes_price,
    invariant,
)
from src.pm_common.enums import MarketStatus, Outcome, SwapDirection
from src.pm_common.errors import InvalidInputError, MarketNotActiveError, QuestionTooLongError
from src.pm_ledger.domain.models import VaultAuthority

QUESTION_MAX_BYTES = 512


def validate_question(question: str) -> None:
    size = len(question.encode("utf-8"))
    if size > QUESTION_MAX_BYTES:
        raise QuestionTooLongError(size, QUESTION_MAX_BYTES)
    if not question.strip():
        raise InvalidInputError("question must not be empty")


def derive_market_id(creator: str, question: str) -> str:
    """Deterministic id from the creation key (creator, question)."""
    digest = hashlib.sha256(
        creator.encode("utf-8") + b"\x00" + question.encode("utf-8")
    ).hexdigest()
    return f"MKT-{digest[:24]}"


@dataclass
class Market:
    id: str
    creator: str
    question: str
    yes_asset_id: str
    no_asset_id: str
    yes_vault_id: str
    no_vault_id: str
    vault_authority: VaultAuthority = field(repr=False)
    yes_reserve: int
    no_reserve: int
    status: MarketStatus
    created_at: datetime
    resolved_at: datetime | None = None
    updated_at: datetime | None = None

    # -- lifecycle -----------------------------------------------------

    @property
    def is_active(self) -> bool:
        return self.status is MarketStatus.ACTIVE

    def require_active(self) -> None:
        if not self.is_active:
            raise MarketNotActiveError(self.id, self.status.value)

    def resolve(self, outcome: bool, now: datetime) -> None:
        self.require_active()
        self.status = (
            MarketStatus.RESOLVED_YES if outcome else MarketStatus.RESOLVED_NO
        )
        self.resolved_at = now

    def cancel(self, now: datetime) -> None:
        self.require_active()
        self.status = MarketStatus.CANCELLED
        self.resolved_at = now

    @property
    def outcome(self) -> Outcome | None:
        if self.status is MarketStatus.RESOLVED_YES:
            return Outcome.YES
        if self.status is MarketStatus.RESOLVED_NO:
            return Outcome.NO
        return None

    # -- pool view -----------------------------------------------------

    @property
    def reserves(self) -> ReservePair:
        return ReservePair(self.yes_reserve, self.no_reserve)

    def apply_reserves(self, pair: ReservePair) -> None:
        self.yes_reserve = pair.yes_reserve
        self.no_reserve = pair.no_reserve

    def oriented(self, direction: SwapDirection) -> tuple[int, int]:
        """(input_reserve, output_reserve) for a swap direction."""
        if direction is SwapDirection.YES_TO_NO:
            return self.yes_reserve, self.no_reserve
        return self.no_reserve, self.yes_reserve

    @property
    def yes_price(self) -> Decimal | None:
        return implied_yes_price(self.yes_reserve, self.no_reserve)

    @property
    def no_price(self) -> Decimal | None:
        return implied_no_price(self.yes_reserve, self.no_reserve)

    @property
    def k(self) -> int:
        return invariant(self.yes_reserve, self.no_reserve)


@dataclass
class PoolEvent:
    """One committed exchange operation, as recorded in pool_events."""

    id: int                      # BIGSERIAL
    market_id: str
    event_type: str              # PoolEventType value
    user_id: str | None
    yes_delta: int               # signed change of yes_reserve
    no_delta: int                # signed change of no_reserve
    fee: int
    yes_reserve_after: int
    no_reserve_after: int
    created_at: datetime


@dataclass
class MarketStats:
    market_id: str
    swap_count: int
    yes_volume: int              # YES paid in by traders
    no_volume: int               # NO paid in by traders
    total_fees: int
