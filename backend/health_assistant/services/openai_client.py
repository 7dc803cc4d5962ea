from __future__ import annotations
import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union

from loguru import logger
from openai import OpenAI, OpenAIError

from health_assistant.errors import ConfigError, UpstreamError, ValidationError

# input_audio only accepts these two container formats
AUDIO_FORMATS = {
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/wave": "wav",
}


@dataclass
class InlineMedia:
    """Base64 payload plus its MIME type, sent inline with a prompt."""
    mime_type: str
    data: str

    @property
    def is_audio(self) -> bool:
        return self.mime_type.startswith("audio/")


Content = Union[str, InlineMedia]


def _to_part(item: Content) -> Dict[str, Any]:
    if isinstance(item, str):
        return {"type": "text", "text": item}
    if item.is_audio:
        fmt = AUDIO_FORMATS.get(item.mime_type.lower())
        if fmt is None:
            raise ValidationError(f"Unsupported audio type: {item.mime_type}. Use mp3 or wav.")
        return {"type": "input_audio", "input_audio": {"data": item.data, "format": fmt}}
    return {"type": "image_url", "image_url": {"url": f"data:{item.mime_type};base64,{item.data}"}}


def _message_content(contents: Sequence[Content]) -> Union[str, List[Dict[str, Any]]]:
    # a lone text item goes over as plain content
    if len(contents) == 1 and isinstance(contents[0], str):
        return contents[0]
    return [_to_part(c) for c in contents]


def collect_text(resp: Any) -> str:
    """Concatenate every text segment of a chat completion."""
    segments = []
    for choice in getattr(resp, "choices", None) or []:
        message = getattr(choice, "message", None)
        content = getattr(message, "content", None)
        if content:
            segments.append(content)
    return "".join(segments)


class LLMClient:
    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gpt-4o-mini",
        audio_model: str = "gpt-4o-audio-preview",
        timeout: float = 60.0,
        client: Optional[OpenAI] = None,
    ):
        self.model = model
        self.audio_model = audio_model
        self.timeout = timeout
        # the key is checked on first use so the app can start without one
        self._client = client
        self._api_key = api_key

    def _get_client(self) -> OpenAI:
        if self._client is None:
            if not self._api_key:
                raise ConfigError("OPENAI_API_KEY is not set")
            self._client = OpenAI(api_key=self._api_key)
        return self._client

    async def generate(self, contents: Sequence[Content]) -> str:
        """
        Send `contents` as one user message and return the concatenated reply text
        ("" when the model returned none). Audio parts switch to the audio-capable model.
        """
        content = _message_content(contents)
        model = self.audio_model if any(isinstance(c, InlineMedia) and c.is_audio for c in contents) else self.model
        client = self._get_client()

        def _call():
            return client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": content}],
                timeout=self.timeout,
            )

        try:
            resp = await asyncio.to_thread(_call)
        except OpenAIError as e:
            logger.error("OpenAI request failed (model={}): {}", model, e)
            raise UpstreamError(f"OpenAI error: {e}") from e
        return collect_text(resp)
