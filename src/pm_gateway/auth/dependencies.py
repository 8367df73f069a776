"""FastAPI dependencies: get_current_user_id, require_admin.

Usage in any protected router:
    from src.pm_gateway.auth.dependencies import get_current_user_id

    @router.post("/protected")
    async def protected(user_id: str = Depends(get_current_user_id)):
        ...
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from config.settings import settings
from src.pm_common.errors import AdminRequiredError, InvalidCredentialsError
from src.pm_gateway.auth.jwt_handler import decode_token

# Tokens come from the identity service; tokenUrl only feeds Swagger UI.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token")

# Reusable 401 exception with WWW-Authenticate header (OAuth2 standard)
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


async def get_current_user_id(token: str = Depends(oauth2_scheme)) -> str:
    """Validate the Bearer token and return its subject (the caller id).

    Raises HTTP 401 if the token is missing, invalid, or expired.
    """
    try:
        payload = decode_token(token, expected_type="access")
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None

    user_id: str | None = payload.get("sub")
    if not user_id:
        raise _CREDENTIALS_EXCEPTION
    return user_id


async def require_admin(user_id: str = Depends(get_current_user_id)) -> str:
    """Verify the caller is the trusted resolver account.

    Raises AdminRequiredError (1006, HTTP 403) for everyone else.
    """
    if user_id != settings.ADMIN_USER_ID:
        raise AdminRequiredError()
    return user_id
