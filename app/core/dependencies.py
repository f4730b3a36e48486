# app/core/dependencies.py
import hmac
import logging
from uuid import UUID

from fastapi import Depends, Header, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.security import SupabaseAuthenticator
from app.database import get_db
from app.domains.user.service import UserService
from app.exceptions.base import AppPermissionError, AuthenticationError, RateLimitExceededError
from app.shared.rate_limit import SlidingWindowRateLimiter, rate_limit_key
from models import User

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)
auth = SupabaseAuthenticator()


async def validate_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> dict:
    """Validate and decode the Supabase access token.

    Returns:
        dict: Decoded token payload

    Raises:
        AuthenticationError: If the token is missing, invalid or expired
    """
    if not credentials or not credentials.credentials:
        raise AuthenticationError("Authentication token is required")
    return auth.verify_token(credentials.credentials)


async def get_current_user(
    request: Request,
    payload: dict = Depends(validate_token),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Load the user row matching the token subject.

    Raises:
        AuthenticationError: If the subject is not a user id
        AppPermissionError: If no user row exists for the subject
    """
    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError as e:
        raise AuthenticationError("Invalid token payload - missing user ID") from e

    user = await UserService(db).get_user_by_id(user_id)
    if not user:
        raise AppPermissionError("Failed to verify user role.")

    # Add user info to request state for logging
    request.state.user_id = user.id
    return user


def get_chat_rate_limiter(request: Request) -> SlidingWindowRateLimiter:
    return request.app.state.chat_rate_limiter


def get_summary_rate_limiter(request: Request) -> SlidingWindowRateLimiter:
    return request.app.state.summary_rate_limiter


def _enforce(limiter: SlidingWindowRateLimiter, request: Request, user: User) -> None:
    decision = limiter.allow(rate_limit_key(request, user.id))
    if not decision.ok:
        logger.warning(f"Rate limit exceeded for user {user.id} on {request.url.path}")
        raise RateLimitExceededError("Too many requests", retry_after=decision.retry_after or 1)


async def enforce_chat_rate_limit(
    request: Request,
    current_user: User = Depends(get_current_user),
    limiter: SlidingWindowRateLimiter = Depends(get_chat_rate_limiter),
) -> None:
    _enforce(limiter, request, current_user)


async def enforce_summary_rate_limit(
    request: Request,
    current_user: User = Depends(get_current_user),
    limiter: SlidingWindowRateLimiter = Depends(get_summary_rate_limiter),
) -> None:
    _enforce(limiter, request, current_user)


async def require_admin_token(x_admin_token: str | None = Header(None)) -> None:
    """Guard operator endpoints with the shared backfill token."""
    expected = settings.backfill_admin_token
    if not expected:
        raise AppPermissionError("Backfill endpoint is disabled")
    if not x_admin_token or not hmac.compare_digest(x_admin_token, expected):
        raise AuthenticationError("Invalid admin token")
