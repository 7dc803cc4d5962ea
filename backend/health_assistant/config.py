# backend/health_assistant/config.py
from __future__ import annotations
import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

DEFAULT_DB_URL = "sqlite+aiosqlite:///./health_assistant.db"
SESSION_TTL_DAYS = 7


def _split_csv(raw: str) -> List[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    # server
    app_env: str = "development"
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"])
    log_level: str = "INFO"

    # storage
    database_url: str = DEFAULT_DB_URL
    db_auto_create: bool = True
    public_dir: str = "public"
    upload_dir: str = "uploads"

    # auth
    secret_key: str = ""
    algorithm: str = "HS256"
    bcrypt_rounds: int = 12

    # LLM (OpenAI)
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_audio_model: str = "gpt-4o-audio-preview"
    openai_timeout_s: float = 60.0

    # speech synthesis (ElevenLabs)
    eleven_api_key: str = ""
    eleven_base: str = "https://api.elevenlabs.io"
    eleven_voice_id: str = "JBFqnCBsd6RMkjVDRZzb"

    # image generation (Stability)
    stability_api_key: str = ""
    stability_host: str = "https://api.stability.ai"

    @property
    def cookie_secure(self) -> bool:
        return self.app_env == "production"


def get_settings() -> Settings:
    """Build settings from the process environment (and .env, if present)."""
    load_dotenv()
    defaults = Settings()
    return Settings(
        app_env=os.getenv("APP_ENV", defaults.app_env),
        cors_origins=_split_csv(os.getenv("CORS_ORIGINS", "")) or defaults.cors_origins,
        log_level=os.getenv("LOG_LEVEL", defaults.log_level),
        database_url=os.getenv("ASYNC_DATABASE_URL") or defaults.database_url,
        db_auto_create=_env_bool("DB_AUTO_CREATE", defaults.db_auto_create),
        public_dir=os.getenv("PUBLIC_DIR", defaults.public_dir),
        upload_dir=os.getenv("UPLOAD_DIR", defaults.upload_dir),
        secret_key=os.getenv("SECRET_KEY", ""),
        algorithm=os.getenv("ALGORITHM", defaults.algorithm),
        bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", str(defaults.bcrypt_rounds))),
        openai_api_key=os.getenv("OPENAI_API_KEY", ""),
        openai_model=os.getenv("OPENAI_MODEL", defaults.openai_model),
        openai_audio_model=os.getenv("OPENAI_AUDIO_MODEL", defaults.openai_audio_model),
        openai_timeout_s=float(os.getenv("OPENAI_TIMEOUT_S", str(defaults.openai_timeout_s))),
        eleven_api_key=os.getenv("ELEVEN_API_KEY", ""),
        eleven_base=os.getenv("ELEVEN_BASE", defaults.eleven_base),
        eleven_voice_id=os.getenv("ELEVEN_VOICE_ID", defaults.eleven_voice_id),
        stability_api_key=os.getenv("STABILITY_API_KEY", ""),
        stability_host=os.getenv("API_HOST", defaults.stability_host),
    )
