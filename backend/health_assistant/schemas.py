from __future__ import annotations
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class UserPublic(BaseModel):
    """Fields of a user that may leave the server."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: Optional[str] = None
    email: str


class AuthResponse(BaseModel):
    """/register, /login response. The token is also set as a cookie."""
    success: bool = True
    token: str
    user: UserPublic


class LogoutResponse(BaseModel):
    success: bool = True
    message: str = "Logged out successfully"


class UserProfile(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    name: Optional[str] = None
    email: str
    wellness_score: int = Field(serialization_alias="wellnessScore")
    scores: Dict[str, int]
    goals: List[Dict[str, Any]] = []
    activities: List[Dict[str, Any]] = []
    medications: List[Dict[str, Any]] = []


class ChatView(BaseModel):
    """
    The view-model every media route returns.
    All fields are always present; unset ones are "" or [].
    """
    chatReply: str = ""
    fromVoice: str = ""
    visionAnalysis: str = ""
    audioUrl: str = ""
    generatedImage: str = ""
    recommendations: List[Any] = []
    error: str = ""


class PageView(BaseModel):
    page: str
    user: Optional[UserPublic] = None


class ChatbotPageView(ChatView):
    page: str = "chatbot"
    user: Optional[UserPublic] = None


def compose_view(**fields: Any) -> Dict[str, Any]:
    """Merge `fields` over the view-model defaults. None values fall back to the default."""
    given = {k: v for k, v in fields.items() if v is not None}
    return ChatView(**given).model_dump()
