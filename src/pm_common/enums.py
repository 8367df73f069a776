"""Global enums: must match DB CHECK constraints exactly.

See alembic/versions/001_create_markets.py and 003_create_pool_events.py.
"""

from enum import Enum


class MarketStatus(str, Enum):
    ACTIVE = "ACTIVE"
    RESOLVED_YES = "RESOLVED_YES"
    RESOLVED_NO = "RESOLVED_NO"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self is not MarketStatus.ACTIVE


class Outcome(str, Enum):
    YES = "YES"
    NO = "NO"

    @classmethod
    def from_bool(cls, outcome: bool) -> "Outcome":
        return cls.YES if outcome else cls.NO


class SwapDirection(str, Enum):
    """Which reserve receives the input: YES_TO_NO pays YES, receives NO."""
    YES_TO_NO = "YES_TO_NO"
    NO_TO_YES = "NO_TO_YES"


class PoolEventType(str, Enum):
    CREATE = "CREATE"
    SWAP_YES_FOR_NO = "SWAP_YES_FOR_NO"
    SWAP_NO_FOR_YES = "SWAP_NO_FOR_YES"
    ADD_LIQUIDITY = "ADD_LIQUIDITY"
    REMOVE_LIQUIDITY = "REMOVE_LIQUIDITY"
    RESOLVE = "RESOLVE"
    CANCEL = "CANCEL"
