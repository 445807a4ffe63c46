"""Password hashing and access token issuance/verification."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt

from saber.core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class TokenClaims:
    id: int
    email: str
    name: str


@dataclass
class TokenResult:
    """Outcome of a token check: either `claims` or an `error` reason is set."""

    claims: TokenClaims | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.claims is not None


# bcrypt only looks at the first 72 bytes and recent releases reject anything longer
MAX_PASSWORD_BYTES = 72


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(password: str, hashed: str) -> bool:
    if len(password.encode()) > MAX_PASSWORD_BYTES:
        return False
    return bcrypt.checkpw(password.encode(), hashed.encode())


def create_access_token(claims: TokenClaims) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        # PyJWT requires "sub" to be a string, so the id travels in its own claim
        "id": claims.id,
        "email": claims.email,
        "name": claims.name,
        "iat": now,
        "exp": now + timedelta(minutes=settings.jwt_expire_minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_access_token(token: str) -> TokenResult:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        return TokenResult(error="Token has expired")
    except jwt.InvalidTokenError as e:
        logger.debug(f"Token verification failed: {e}")
        return TokenResult(error="Invalid token")

    try:
        claims = TokenClaims(
            id=int(payload["id"]),
            email=str(payload["email"]),
            name=str(payload.get("name") or "User"),
        )
    except (KeyError, TypeError, ValueError):
        return TokenResult(error="Invalid token")
    return TokenResult(claims=claims)
