"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth
  3xxx: Market
  6xxx: AMM / reserve pool
  7xxx: Ledger (outcome-token custody)
  9xxx: System / input validation

Every exchange operation validates before it commits, so any of these
leaves the market row untouched.
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Auth ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid or expired credentials", 401)


class AdminRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(1006, "Admin (resolver) account required", 403)


# --- 3xxx: Market ---

class MarketNotFoundError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3001, f"Market not found: {market_id}", 404)


class MarketNotActiveError(AppError):
    def __init__(self, market_id: str, status: str | None = None) -> None:
        detail = f"Market is not active: {market_id}"
        if status is not None:
            detail += f" (status={status})"
        super().__init__(3002, detail, 422)


class MarketAlreadyExistsError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3003, f"Market already exists: {market_id}", 409)


class QuestionTooLongError(AppError):
    def __init__(self, length: int, limit: int) -> None:
        super().__init__(
            3004, f"Question too long: {length} bytes (max {limit})", 422
        )


# --- 6xxx: AMM ---

class InsufficientLiquidityError(AppError):
    def __init__(self, detail: str = "Insufficient liquidity in the pool") -> None:
        super().__init__(6001, detail, 422)


class MathOverflowError(AppError):
    def __init__(self, detail: str = "Math overflow") -> None:
        super().__init__(6002, detail, 422)


class SlippageExceededError(AppError):
    def __init__(self, output_amount: int, min_output: int) -> None:
        super().__init__(
            6003,
            f"Slippage tolerance exceeded: output {output_amount} < min_output {min_output}",
            422,
        )


class UnbalancedReservesError(AppError):
    def __init__(self, yes_reserve: int, no_reserve: int) -> None:
        super().__init__(
            6004,
            "Reserves must be both zero or both positive: "
            f"yes={yes_reserve}, no={no_reserve}",
            422,
        )


class LiquidityProviderForbiddenError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(
            6005, f"Only the market creator may provide liquidity: {market_id}", 403
        )


# --- 7xxx: Ledger ---

class InsufficientTokenBalanceError(AppError):
    def __init__(self, owner_id: str, asset_id: str, required: int) -> None:
        super().__init__(
            7001,
            f"Insufficient {asset_id} balance for {owner_id}: required {required}",
            422,
        )


class UnauthorizedTransferError(AppError):
    def __init__(self, source: str) -> None:
        super().__init__(7002, f"Transfer from {source} is not authorized", 403)


class VaultNotFoundError(AppError):
    def __init__(self, vault_id: str) -> None:
        super().__init__(7003, f"Vault not found: {vault_id}", 404)


# --- 9xxx: System ---

class InvalidInputError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(9003, f"Invalid input: {detail}", 422)
