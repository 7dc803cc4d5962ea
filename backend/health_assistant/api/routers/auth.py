from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Tuple

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from health_assistant.db import get_db
from health_assistant.errors import AppError, ServerError
from health_assistant.models import User
from health_assistant.schemas import AuthResponse, LogoutResponse, UserProfile, UserPublic
from health_assistant.services.auth_service import AuthService, get_auth_service, get_current_user

router = APIRouter(tags=["auth"])


@dataclass
class Credentials:
    email: Optional[str]
    password: Optional[str]


def _as_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


async def read_credentials(request: Request) -> Credentials:
    """Accept credentials as JSON or as a url-encoded/multipart form."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            data = await request.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
    else:
        data = await request.form()
    return Credentials(email=_as_str(data.get("email")), password=_as_str(data.get("password")))


async def _run(label: str, op: Callable[[], Awaitable[Tuple[User, str]]]) -> Tuple[User, str]:
    try:
        return await op()
    except AppError:
        raise
    except Exception as e:
        logger.exception("{} error", label)
        raise ServerError() from e


def _auth_response(auth: AuthService, user: User, token: str, status_code: int) -> JSONResponse:
    public = UserPublic.model_validate(user)
    if not public.name:
        public.name = user.email.split("@")[0]
    body = AuthResponse(token=token, user=public)
    response = JSONResponse(body.model_dump(), status_code=status_code)
    auth.set_session_cookie(response, token)
    return response


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=AuthResponse)
async def register(
    creds: Credentials = Depends(read_credentials),
    db: AsyncSession = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    user, token = await _run("Register", lambda: auth.register(db, creds.email, creds.password))
    return _auth_response(auth, user, token, status.HTTP_201_CREATED)


@router.post("/login", response_model=AuthResponse)
async def login(
    creds: Credentials = Depends(read_credentials),
    db: AsyncSession = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    user, token = await _run("Login", lambda: auth.login(db, creds.email, creds.password))
    return _auth_response(auth, user, token, status.HTTP_200_OK)


@router.post("/logout", response_model=LogoutResponse)
async def logout(auth: AuthService = Depends(get_auth_service)):
    response = JSONResponse(LogoutResponse().model_dump())
    auth.clear_session_cookie(response)
    return response


@router.get("/me", response_model=UserProfile)
async def get_my_info(current_user: User = Depends(get_current_user)):
    """Profile and wellness metrics of the signed-in user."""
    return current_user
