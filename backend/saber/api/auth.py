"""Registration, login and token verification."""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, Field, field_validator
from sqlmodel import Session

from saber.api.deps import get_current_user
from saber.core.database import get_session
from saber.core.errors import AuthError, Conflict
from saber.core.security import (
    MAX_PASSWORD_BYTES,
    TokenClaims,
    create_access_token,
    hash_password,
    verify_password,
)
from saber.services.repository import UserRepository

router = APIRouter()
logger = logging.getLogger(__name__)


class RegisterRequest(BaseModel):
    name: str
    email: EmailStr
    password: str = Field(min_length=8)

    @field_validator("name")
    @classmethod
    def name_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required.")
        return v

    @field_validator("password")
    @classmethod
    def password_fits_hash(cls, v: str) -> str:
        if len(v.encode()) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")
        return v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


def _user_json(user) -> dict:
    return {"id": user.id, "name": user.name, "email": user.email}


@router.post("/register", status_code=201)
async def register(body: RegisterRequest, session: Session = Depends(get_session)):
    users = UserRepository(session)
    email = body.email.lower()
    if users.get_by_email(email):
        raise Conflict("This email is already registered.")

    user = users.create(body.name, email, hash_password(body.password))
    logger.info(f"Registered user {user.id}")
    return {"message": "User registered successfully", "user": _user_json(user)}


@router.post("/login")
async def login(body: LoginRequest, session: Session = Depends(get_session)):
    email = body.email.lower()
    user = UserRepository(session).get_by_email(email)
    if user is None or not verify_password(body.password, user.password_hash):
        raise AuthError("Invalid credentials.")

    token = create_access_token(TokenClaims(id=user.id, email=user.email, name=user.name))  # type: ignore[arg-type]
    logger.info(f"Successful login for user {user.id}")
    return {"message": "Login successful", "token": token, "user": _user_json(user)}


@router.get("/verify-token")
async def verify_token(user: TokenClaims = Depends(get_current_user)):
    return {"id": user.id, "email": user.email, "name": user.name}
