from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, BigInteger, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from health_assistant.db import Base

DEFAULT_WELLNESS_SCORE = 88
DEFAULT_SCORES = {"activity": 92, "sleep": 85, "stress": 79, "nutrition": 95}


class User(Base):
    """
    Account record. `goals`, `activities` and `medications` are ordered lists of
    small dicts:
      - goals:       {name, target, current, type}
      - activities:  {metric, value, date, type}
      - medications: {name, dosage, frequency, adherence}
    """
    __tablename__ = "users"

    # BigInteger only autoincrements on SQLite when mapped to INTEGER
    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True
    )
    email: Mapped[str] = mapped_column(String, unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    wellness_score: Mapped[int] = mapped_column(Integer, default=DEFAULT_WELLNESS_SCORE, nullable=False)
    scores: Mapped[Dict[str, int]] = mapped_column(JSON, default=lambda: dict(DEFAULT_SCORES), nullable=False)
    goals: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    activities: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    medications: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)

    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
