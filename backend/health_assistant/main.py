# /backend/health_assistant/main.py

from __future__ import annotations
import os
import secrets
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from loguru import logger
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from health_assistant.api.routers import auth, media, pages
from health_assistant.config import Settings, get_settings
from health_assistant.db import create_engine, create_session_maker, get_db, init_models
from health_assistant.errors import AppError
from health_assistant.log import configure_logging
from health_assistant.services.auth_service import AuthService
from health_assistant.services.elevenlabs_client import ElevenLabsClient
from health_assistant.services.media_relay import MediaRelay
from health_assistant.services.openai_client import LLMClient
from health_assistant.services.stability_client import StabilityClient


def create_app(
    settings: Optional[Settings] = None,
    *,
    llm: Optional[LLMClient] = None,
    tts: Optional[ElevenLabsClient] = None,
    images: Optional[StabilityClient] = None,
) -> FastAPI:
    """
    Build the application. Service clients are constructed here (or passed in)
    and kept on `app.state`; handlers receive them through dependencies.

    Serve with: uvicorn health_assistant.main:create_app --factory
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    if not settings.secret_key:
        logger.warning("SECRET_KEY is not set; using a random key, sessions will not survive a restart")
        settings.secret_key = secrets.token_urlsafe(32)

    os.makedirs(settings.public_dir, exist_ok=True)
    os.makedirs(settings.upload_dir, exist_ok=True)

    llm = llm or LLMClient(
        settings.openai_api_key,
        model=settings.openai_model,
        audio_model=settings.openai_audio_model,
        timeout=settings.openai_timeout_s,
    )
    tts = tts or ElevenLabsClient(
        settings.eleven_api_key, voice_id=settings.eleven_voice_id, base=settings.eleven_base
    )
    images = images or StabilityClient(settings.stability_api_key, host=settings.stability_host)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = create_engine(settings.database_url)
        app.state.engine = engine
        app.state.session_maker = create_session_maker(engine)
        if settings.db_auto_create:
            await init_models(engine)
        logger.info("Serving generated media from: {}", os.path.abspath(settings.public_dir))
        try:
            yield
        finally:
            await tts.aclose()
            await images.aclose()
            await engine.dispose()

    app = FastAPI(title="Health AI Assistant API", lifespan=lifespan)
    app.state.settings = settings
    app.state.auth = AuthService(settings)
    app.state.relay = MediaRelay(
        llm, tts, images, public_dir=settings.public_dir, upload_dir=settings.upload_dir
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return JSONResponse({"message": exc.message}, status_code=exc.status_code)

    app.include_router(auth.router)
    app.include_router(media.router)
    app.include_router(pages.router)

    @app.get("/health")
    async def health():
        return {"ok": True}

    @app.get("/db-health")
    async def db_health(db: AsyncSession = Depends(get_db)):
        result = await db.execute(text("SELECT 1"))
        return {"db": "ok", "result": result.scalar_one()}

    # generated audio/images; mounted last so it only sees paths no route claimed
    app.mount("/", StaticFiles(directory=settings.public_dir), name="public")
    return app
