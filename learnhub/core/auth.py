"""
Supabase JWT validation OR dev-mode bypass. Controlled by FF_USE_AUTH flag.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Optional

import httpx
from jose import jwt, JWTError

from .config import get_settings
from .errors import AuthError
from .flags import get_flags

logger = logging.getLogger(__name__)


@dataclass
class AuthenticatedUser:
    user_id: str
    email: str = ""
    role: str = ""
    claims: dict = field(default_factory=dict)


# Dev-mode user: returned when FF_USE_AUTH=false
DEV_USER = AuthenticatedUser(
    user_id="dev-user",
    email="dev@local",
    role="authenticated",
)


class SupabaseAuthClient:
    """
    Validates Supabase access tokens.

    HS* tokens are checked against the project JWT secret. Asymmetric
    tokens (RS256/ES256) are checked against the project JWKS, cached.
    """

    def __init__(self):
        self._jwks: Optional[dict] = None
        self._jwks_fetched_at: float = 0
        self._jwks_ttl: int = 600  # 10 minutes

    async def _get_jwks(self, supabase_url: str) -> dict:
        now = time.time()
        if self._jwks and (now - self._jwks_fetched_at) < self._jwks_ttl:
            return self._jwks

        url = f"{supabase_url.rstrip('/')}/auth/v1/.well-known/jwks.json"
        async with httpx.AsyncClient() as client:
            resp = await client.get(url, timeout=10)
            resp.raise_for_status()
            self._jwks = resp.json()
            self._jwks_fetched_at = now
            return self._jwks

    async def _signing_key(self, token: str, algorithm: str):
        settings = get_settings()
        if algorithm.upper().startswith("HS"):
            if not settings.supabase_jwt_secret:
                raise JWTError("SUPABASE_JWT_SECRET is not configured")
            return settings.supabase_jwt_secret

        jwks = await self._get_jwks(settings.supabase_url)
        unverified_header = jwt.get_unverified_header(token)
        for key in jwks.get("keys", []):
            if key.get("kid") == unverified_header.get("kid"):
                return key
        raise JWTError("Unable to find matching key in JWKS")

    async def verify_token(self, token: str) -> AuthenticatedUser:
        settings = get_settings()
        algorithm = settings.supabase_jwt_algorithm

        key = await self._signing_key(token, algorithm)
        payload = jwt.decode(
            token,
            key,
            algorithms=[algorithm],
            audience=settings.supabase_jwt_audience,
        )

        return AuthenticatedUser(
            user_id=payload.get("sub", ""),
            email=payload.get("email", ""),
            role=payload.get("role", ""),
            claims=payload,
        )


# Singleton
_auth_client = SupabaseAuthClient()


async def get_current_user(authorization: str = "") -> AuthenticatedUser:
    """
    Resolve the current user from the Authorization header.
    If FF_USE_AUTH is false, returns a dev user.
    """
    flags = get_flags()

    if not flags.use_auth:
        return DEV_USER

    if not authorization:
        raise AuthError("Missing Authorization header")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise AuthError("Invalid Authorization header. Use: Bearer <token>")

    try:
        user = await _auth_client.verify_token(token)
    except (JWTError, httpx.HTTPError) as e:
        logger.warning("Token rejected: %s", e)
        raise AuthError("Unauthorized")

    if not user.user_id:
        raise AuthError("Token missing sub claim")

    return user
