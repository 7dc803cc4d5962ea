from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends

from health_assistant.models import User
from health_assistant.schemas import ChatbotPageView, PageView, UserPublic, compose_view
from health_assistant.services.auth_service import get_optional_user

router = APIRouter(tags=["pages"])

HOME_PAGES = ["/", "/dashboard", "/booking", "/tools", "/environmental", "/wellness", "/connect", "/subscription"]


def _public(user: Optional[User]) -> Optional[UserPublic]:
    return UserPublic.model_validate(user) if user else None


async def home_page(user: Optional[User] = Depends(get_optional_user)):
    return PageView(page="home", user=_public(user))


for path in HOME_PAGES:
    router.add_api_route(path, home_page, methods=["GET"], response_model=PageView)


@router.get("/chatbot", response_model=ChatbotPageView)
async def chatbot_page(user: Optional[User] = Depends(get_optional_user)):
    return ChatbotPageView(user=_public(user), **compose_view())
