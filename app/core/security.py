"""Security related functions."""

import logging

import jwt
from jwt import ExpiredSignatureError, InvalidTokenError

from app.core.config import settings
from app.exceptions.base import AuthenticationError, BaseAppException

logger = logging.getLogger(__name__)


class SupabaseAuthenticator:
    """
    Verifies Supabase access tokens.

    Supabase signs user access tokens with the project's JWT secret (HS256)
    and sets the audience to ``authenticated``. The ``sub`` claim is the id of
    the user row.

    :ivar secret_key: The secret used to verify JWT signatures.
    :type secret_key: str
    """

    def __init__(self, secret_key: str | None = None, audience: str | None = None):
        self.secret_key = secret_key or settings.supabase_jwt_secret
        self.audience = audience or settings.supabase_jwt_audience
        self.algorithm = settings.jwt_algorithm

    def verify_token(self, token: str) -> dict:
        """
        Decode ``token`` and validate signature, expiry and audience.

        :param token: The bearer token sent by the client.
        :return: The decoded payload.
        :raises AuthenticationError: If the token is missing, expired or invalid.
        """
        if not self.secret_key:
            logger.error("SUPABASE_JWT_SECRET is not configured")
            raise BaseAppException("Authentication is not configured", error_code="AUTH_NOT_CONFIGURED")
        if not token:
            raise AuthenticationError("Authentication token is required")

        try:
            payload = jwt.decode(
                token,
                key=self.secret_key,
                algorithms=[self.algorithm],
                audience=self.audience,
                options={"require": ["sub", "exp"]},
            )
        except ExpiredSignatureError as e:
            raise AuthenticationError("Authentication token has expired") from e
        except InvalidTokenError as e:
            logger.info(f"Rejected access token: {str(e)}")
            raise AuthenticationError("Invalid authentication token") from e
        return payload
