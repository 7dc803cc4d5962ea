from __future__ import annotations
from typing import Dict, Optional

import httpx
from httpx import Timeout
from loguru import logger

from health_assistant.errors import ConfigError, UpstreamError

TTS_PATH_TPL = "/v1/text-to-speech/{voice_id}/stream"
MODEL_ID = "eleven_multilingual_v2"
OUTPUT_FORMAT = "mp3_44100_128"

DEFAULT_TIMEOUT = Timeout(10.0, read=120.0)


class ElevenLabsClient:
    """Text-to-speech over the ElevenLabs REST API."""

    def __init__(
        self,
        api_key: str,
        *,
        voice_id: str,
        base: str = "https://api.elevenlabs.io",
        http: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.voice_id = voice_id
        self.base = base.rstrip("/")
        self._http = http or httpx.AsyncClient(timeout=DEFAULT_TIMEOUT)

    def _headers(self) -> Dict[str, str]:
        if not self.api_key:
            raise ConfigError("ELEVEN_API_KEY is not set")
        key = self.api_key.replace("Bearer ", "").strip().strip('"').strip("'")
        return {
            "xi-api-key": key,
            "Accept": "audio/mpeg",
            "Content-Type": "application/json",
        }

    async def synthesize(self, text: str) -> bytes:
        """Stream the spoken rendition of `text` and return the joined audio bytes."""
        url = f"{self.base}{TTS_PATH_TPL.format(voice_id=self.voice_id)}"
        payload = {"text": text, "model_id": MODEL_ID}

        chunks = []
        async with self._http.stream(
            "POST",
            url,
            params={"output_format": OUTPUT_FORMAT},
            headers=self._headers(),
            json=payload,
        ) as r:
            if r.status_code >= 400:
                body = (await r.aread()).decode("utf-8", errors="replace")
                logger.error("ElevenLabs TTS failed {}: {}", r.status_code, body[:200])
                raise UpstreamError(f"ElevenLabs TTS failed {r.status_code}: {body}", detail=body)
            async for chunk in r.aiter_bytes():
                chunks.append(chunk)
        audio = b"".join(chunks)
        if not audio:
            raise UpstreamError("ElevenLabs returned no audio.")
        return audio

    async def aclose(self) -> None:
        await self._http.aclose()
