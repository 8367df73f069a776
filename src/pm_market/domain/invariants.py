"""Market invariant verification (read-only audit).

balanced: yes_reserve and no_reserve are both zero or both positive
lifecycle: resolved_at is set iff the market has left ACTIVE
custody: each vault holds at least the recorded reserve (swap fees make
         the vault balance exceed it)
"""

import logging

from src.pm_common.u64 import is_u64
from src.pm_market.domain.models import Market

logger = logging.getLogger(__name__)


def check_market_invariants(
    market: Market, yes_vault_balance: int, no_vault_balance: int
) -> list[str]:
    """Return violation strings for one market; empty when every invariant holds."""
    violations: list[str] = []
    mid = market.id

    if not (is_u64(market.yes_reserve) and is_u64(market.no_reserve)):
        violations.append(
            f"{mid}: reserves out of u64 range "
            f"(yes={market.yes_reserve}, no={market.no_reserve})"
        )
    if not market.reserves.is_balanced:
        violations.append(
            f"{mid}: reserves unbalanced (yes={market.yes_reserve}, no={market.no_reserve})"
        )
    if market.is_active != (market.resolved_at is None):
        violations.append(
            f"{mid}: status={market.status.value} inconsistent with "
            f"resolved_at={market.resolved_at}"
        )
    if yes_vault_balance < market.yes_reserve:
        violations.append(
            f"{mid}: YES vault holds {yes_vault_balance} < reserve {market.yes_reserve}"
        )
    if no_vault_balance < market.no_reserve:
        violations.append(
            f"{mid}: NO vault holds {no_vault_balance} < reserve {market.no_reserve}"
        )

    if not violations:
        logger.debug(
            "Invariants OK: market=%s yes=%d no=%d",
            mid, market.yes_reserve, market.no_reserve,
        )
    return violations
