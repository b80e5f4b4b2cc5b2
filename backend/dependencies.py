"""FastAPI dependencies."""
import logging

import jwt
from fastapi import Depends, Header, HTTPException, Request
from jwt import DecodeError, ExpiredSignatureError, InvalidTokenError
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from backend.config import get_settings
from backend.database import get_db
from backend.models.user import User

logger = logging.getLogger(__name__)


settings = get_settings()


def decode_access_token(token: str) -> dict:
    """Decode and verify an access token issued by the auth service."""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])


async def get_current_user(
        request: Request,
        authorization: str | None = Header(default=None, alias="Authorization"),
        db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the current authenticated user via JWT access token.

    Checks for access token in the following order:
    1. HTTP-only cookie (preferred, secure)
    2. Authorization header (API clients)
    """

    # Try to get token from cookie first (preferred method)
    token = request.cookies.get(settings.access_token_cookie_name)
    token_source = "cookie"

    # Fall back to Authorization header if no cookie
    if not token and authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token:
            raise HTTPException(status_code=401, detail="invalid_authorization_header")
        token_source = "header"

    # If still no token found
    if not token:
        raise HTTPException(status_code=401, detail="missing_credentials")

    try:
        payload = decode_access_token(token)
        user_id = UUID(str(payload.get("sub")))
    except ExpiredSignatureError as exc:
        raise HTTPException(status_code=401, detail="token_expired") from exc
    except (InvalidTokenError, DecodeError, ValueError) as exc:
        raise HTTPException(status_code=401, detail="invalid_token") from exc

    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=401, detail="invalid_token")

    logger.debug(f"Authenticated user via JWT {token_source}: {user.user_id}")
    return user
