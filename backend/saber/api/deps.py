"""Shared request dependencies."""

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from saber.core.database import get_session
from saber.core.errors import AuthError, InvalidToken
from saber.core.security import TokenClaims, verify_access_token
from saber.services.repository import ConversationRepository

bearer = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
) -> TokenClaims:
    if credentials is None:
        raise AuthError("Access denied: no token provided.")
    result = verify_access_token(credentials.credentials)
    if not result.ok:
        raise InvalidToken(f"{result.error}.")
    return result.claims  # type: ignore[return-value]


def get_repository(session: Session = Depends(get_session)) -> ConversationRepository:
    return ConversationRepository(session)
