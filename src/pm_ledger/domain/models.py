"""Domain models for pm_ledger: pure dataclasses, no SQLAlchemy dependency."""

import secrets
from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class VaultAuthority:
    """Opaque capability that lets a market move tokens out of its own vaults.

    Generated once when the market is created; the ledger stores the key on
    both vault rows and compares it on every outbound transfer. The key is
    excluded from repr so it never lands in logs.
    """

    market_id: str
    key: str = field(repr=False)

    @classmethod
    def generate(cls, market_id: str) -> "VaultAuthority":
        return cls(market_id=market_id, key=secrets.token_urlsafe(32))


@dataclass(frozen=True)
class CallerAuthorization:
    """The authenticated caller, allowed to move tokens out of its own account."""

    user_id: str


Authorizer = VaultAuthority | CallerAuthorization


@dataclass(frozen=True)
class VaultPair:
    yes_vault_id: str
    no_vault_id: str


@dataclass(frozen=True)
class TransferInstruction:
    """One token movement the ledger must execute inside the operation's transaction."""

    asset_id: str
    source: str
    destination: str
    amount: int
    authorizer: Authorizer


@dataclass
class TokenTransfer:
    id: int                      # BIGSERIAL
    asset_id: str
    source: str | None           # None for issuance
    destination: str
    amount: int
    reference_id: str | None = None
    created_at: datetime | None = None


def vault_id_for(market_id: str, side: str) -> str:
    """Vault account id for one side ("YES"/"NO") of a market."""
    return f"VAULT-{market_id}-{side}"
