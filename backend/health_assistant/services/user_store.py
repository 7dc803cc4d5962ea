from __future__ import annotations
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from health_assistant.errors import ConflictError
from health_assistant.models import User

EMAIL_IN_USE = "Email already in use"


def normalize_email(email: str) -> str:
    return email.strip().lower()


def display_name_for(email: str) -> str:
    # "rahul@gmail.com" -> "Rahul"; the rest of the local-part keeps its case
    local = email.split("@")[0]
    return local[:1].upper() + local[1:]


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    res = await db.execute(select(User).where(User.email == email))
    return res.scalar_one_or_none()


async def get_user_by_id(db: AsyncSession, user_id: int) -> Optional[User]:
    return await db.get(User, user_id)


async def create_user(db: AsyncSession, *, email: str, password_hash: str, name: Optional[str] = None) -> User:
    """
    Insert a new user. The unique index on `email` is the final word on duplicates:
    a concurrent registration that passed the caller's pre-check still ends here
    as ConflictError.
    """
    user = User(email=email, password_hash=password_hash, name=name or display_name_for(email))
    db.add(user)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError(EMAIL_IN_USE) from e
    await db.refresh(user)
    return user
