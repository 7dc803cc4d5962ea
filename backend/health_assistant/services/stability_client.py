from __future__ import annotations
import base64
import binascii
import json
from typing import Any, Dict, Optional

import httpx
from httpx import Timeout
from loguru import logger

from health_assistant.errors import ConfigError, UpstreamError

ENGINE_ID = "stable-diffusion-xl-1024-v1-0"
GENERATE_PATH_TPL = "/v1/generation/{engine_id}/text-to-image"

DEFAULT_TIMEOUT = Timeout(10.0, read=180.0)


def build_payload(prompt: str) -> Dict[str, Any]:
    return {
        "cfg_scale": 7,
        "steps": 30,
        "samples": 1,
        "height": 1024,
        "width": 1024,
        "text_prompts": [{"text": prompt}],
    }


class StabilityClient:
    """SDXL text-to-image over the Stability REST API."""

    def __init__(
        self,
        api_key: str,
        *,
        host: str = "https://api.stability.ai",
        http: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.host = host.rstrip("/")
        self._http = http or httpx.AsyncClient(timeout=DEFAULT_TIMEOUT)

    async def text_to_image(self, prompt: str) -> bytes:
        """Return the PNG bytes of the first generated artifact."""
        if not self.api_key:
            raise ConfigError("Missing Stability API key.")

        url = f"{self.host}{GENERATE_PATH_TPL.format(engine_id=ENGINE_ID)}"
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        r = await self._http.post(url, headers=headers, json=build_payload(prompt))
        if r.status_code >= 400:
            logger.error("Stability request failed {}: {}", r.status_code, r.text[:200])
            raise UpstreamError(f"Stability API Error: {r.text}", detail=r.text)

        try:
            data = r.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise UpstreamError(f"Stability API returned non-JSON body: {r.text!r}", detail=r.text) from e

        artifacts = data.get("artifacts") if isinstance(data, dict) else None
        first = artifacts[0] if isinstance(artifacts, list) and artifacts else None
        image_b64 = first.get("base64") if isinstance(first, dict) else None
        if not image_b64:
            raise UpstreamError("Image not returned.")
        try:
            return base64.b64decode(image_b64)
        except (binascii.Error, ValueError) as e:
            raise UpstreamError("Image not returned.") from e

    async def aclose(self) -> None:
        await self._http.aclose()
