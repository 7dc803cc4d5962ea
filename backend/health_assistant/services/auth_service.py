from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

from fastapi import Depends, Request, Response
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from loguru import logger
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession

from health_assistant.config import SESSION_TTL_DAYS, Settings
from health_assistant.db import get_db
from health_assistant.errors import AuthError, ConflictError, ValidationError
from health_assistant.models import User
from health_assistant.services import user_store

COOKIE_NAME = "token"
SESSION_TTL = timedelta(days=SESSION_TTL_DAYS)
MIN_PASSWORD_LENGTH = 8
INVALID_CREDENTIALS = "Invalid email or password"

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/login", auto_error=False)


class AuthService:
    """Password hashing, session tokens and the session cookie."""

    def __init__(self, settings: Settings):
        self.secret_key = settings.secret_key
        self.algorithm = settings.algorithm
        self.cookie_secure = settings.cookie_secure
        self.pwd_context = CryptContext(
            schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.bcrypt_rounds
        )

    def hash_password(self, password: str) -> str:
        if not isinstance(password, (str, bytes)):
            raise TypeError("Password must be a string or bytes.")
        return self.pwd_context.hash(password)

    def verify_password(self, plain_password: str, password_hash: str) -> bool:
        return self.pwd_context.verify(plain_password, password_hash)

    def create_access_token(self, user: User, expires_delta: Optional[timedelta] = None) -> str:
        now = datetime.now(timezone.utc)
        to_encode = {
            "userId": user.id,
            "email": user.email,
            "iat": now,
            "exp": now + (expires_delta or SESSION_TTL),
        }
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def decode_access_token(self, token: str) -> Dict[str, Any]:
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as e:
            raise AuthError("Could not validate credentials") from e
        if payload.get("userId") is None:
            raise AuthError("Could not validate credentials")
        return payload

    def set_session_cookie(self, response: Response, token: str) -> None:
        response.set_cookie(
            COOKIE_NAME,
            token,
            max_age=int(SESSION_TTL.total_seconds()),
            httponly=True,
            secure=self.cookie_secure,
            samesite="strict",
        )

    def clear_session_cookie(self, response: Response) -> None:
        response.delete_cookie(
            COOKIE_NAME,
            httponly=True,
            secure=self.cookie_secure,
            samesite="strict",
        )

    async def register(self, db: AsyncSession, email: Optional[str], password: Optional[str]) -> Tuple[User, str]:
        normalized = user_store.normalize_email(email or "")
        if not normalized or not password:
            raise ValidationError("Email and password are required")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        if await user_store.get_user_by_email(db, normalized):
            raise ConflictError(user_store.EMAIL_IN_USE)

        user = await user_store.create_user(
            db,
            email=normalized,
            password_hash=self.hash_password(password),
        )
        logger.info("Registered user id={}", user.id)
        return user, self.create_access_token(user)

    async def login(self, db: AsyncSession, email: Optional[str], password: Optional[str]) -> Tuple[User, str]:
        normalized = user_store.normalize_email(email or "")
        if not normalized or not password:
            raise ValidationError("Email and password are required")

        user = await user_store.get_user_by_email(db, normalized)
        # same message for an unknown email and a wrong password
        if not user or not self.verify_password(password, user.password_hash):
            raise AuthError(INVALID_CREDENTIALS)
        return user, self.create_access_token(user)

    async def user_from_token(self, db: AsyncSession, token: str) -> User:
        payload = self.decode_access_token(token)
        try:
            user_id = int(payload["userId"])
        except (TypeError, ValueError) as e:
            raise AuthError("Could not validate credentials") from e
        user = await user_store.get_user_by_id(db, user_id)
        if user is None:
            raise AuthError("Could not validate credentials")
        return user


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth


def _request_token(request: Request, bearer: Optional[str]) -> Optional[str]:
    return request.cookies.get(COOKIE_NAME) or bearer


async def get_current_user(
    request: Request,
    bearer: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
) -> User:
    """Resolve the user from the session cookie (or a Bearer header); 401 otherwise."""
    token = _request_token(request, bearer)
    if not token:
        raise AuthError("Not authenticated")
    return await auth.user_from_token(db, token)


async def get_optional_user(
    request: Request,
    bearer: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
) -> Optional[User]:
    token = _request_token(request, bearer)
    if not token:
        return None
    try:
        return await auth.user_from_token(db, token)
    except AuthError:
        return None
