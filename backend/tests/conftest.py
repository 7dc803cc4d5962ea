import asyncio
import os
from contextlib import contextmanager
from typing import Callable, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import create_async_engine

from health_assistant.config import Settings
from health_assistant.main import create_app
from health_assistant.models import User
from health_assistant.services.stability_client import StabilityClient


class FakeLLM:
    """Stands in for LLMClient: records every prompt and answers from a queue."""

    def __init__(self, replies: Optional[List[str]] = None, error: Optional[Exception] = None):
        self.replies = list(replies or [])
        self.error = error
        self.calls = []

    async def generate(self, contents):
        self.calls.append(list(contents))
        if self.error:
            raise self.error
        return self.replies.pop(0) if self.replies else ""


class FakeTTS:
    def __init__(self, audio: bytes = b"ID3-fake-mp3", error: Optional[Exception] = None):
        self.audio = audio
        self.error = error
        self.calls = []

    async def synthesize(self, text):
        self.calls.append(text)
        if self.error:
            raise self.error
        return self.audio

    async def aclose(self):
        pass


def stability_with(handler: Callable[[httpx.Request], httpx.Response], api_key: str = "sk-test") -> StabilityClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return StabilityClient(api_key, host="https://stability.test", http=http)


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        public_dir=str(tmp_path / "public"),
        upload_dir=str(tmp_path / "uploads"),
        secret_key="test-secret",
        bcrypt_rounds=4,
        log_level="WARNING",
    )


@pytest.fixture()
def llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture()
def tts() -> FakeTTS:
    return FakeTTS()


@pytest.fixture()
def build_client(settings, llm, tts):
    @contextmanager
    def _build(images: Optional[StabilityClient] = None, **overrides):
        images = images or stability_with(lambda request: httpx.Response(500, text="unused"))
        app = create_app(
            settings,
            llm=overrides.get("llm", llm),
            tts=overrides.get("tts", tts),
            images=images,
        )
        with TestClient(app) as c:
            yield c

    return _build


@pytest.fixture()
def client(build_client):
    with build_client() as c:
        yield c


def count_users(settings: Settings) -> int:
    async def _count():
        engine = create_async_engine(settings.database_url)
        try:
            async with engine.connect() as conn:
                return (await conn.execute(select(func.count(User.id)))).scalar_one()
        finally:
            await engine.dispose()

    return asyncio.run(_count())


def uploads_left(settings: Settings) -> List[str]:
    return os.listdir(settings.upload_dir)
