from __future__ import annotations
import asyncio
import base64
import os
import secrets
import shutil
import time
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

from fastapi import Request, UploadFile
from loguru import logger

from health_assistant.errors import ValidationError
from health_assistant.services.elevenlabs_client import ElevenLabsClient
from health_assistant.services.openai_client import InlineMedia, LLMClient
from health_assistant.services.stability_client import StabilityClient

MAX_IMAGES = 5
DEFAULT_VISION_PROMPT = "Describe these images."
TRANSCRIBE_PROMPT = "Transcribe this audio. Reply with the transcript only."


@dataclass
class StagedUpload:
    path: str
    mime_type: str
    filename: str

    def _encode(self) -> str:
        with open(self.path, "rb") as fh:
            return base64.b64encode(fh.read()).decode("ascii")

    async def read_base64(self) -> InlineMedia:
        data = await asyncio.to_thread(self._encode)
        return InlineMedia(mime_type=self.mime_type, data=data)


def _copy_to(upload: UploadFile, path: str) -> None:
    with open(path, "wb") as fh:
        shutil.copyfileobj(upload.file, fh)


@asynccontextmanager
async def staged_upload(upload: UploadFile, upload_dir: str) -> AsyncIterator[StagedUpload]:
    """Copy an upload into the transient directory; the copy is removed on exit, whatever happened."""
    path = os.path.join(upload_dir, uuid.uuid4().hex)
    try:
        await asyncio.to_thread(_copy_to, upload, path)
        yield StagedUpload(
            path=path,
            mime_type=upload.content_type or "application/octet-stream",
            filename=upload.filename or "",
        )
    finally:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass


def is_present(upload: Optional[UploadFile]) -> bool:
    # browsers send an empty part when the file input is left blank
    return upload is not None and bool(upload.filename)


def _write_bytes(path: str, data: bytes) -> None:
    with open(path, "wb") as fh:
        fh.write(data)


def output_filename(prefix: str, ext: str) -> str:
    return f"{prefix}_{int(time.time() * 1000)}_{secrets.token_hex(4)}.{ext}"


class MediaRelay:
    """
    Request-scoped pipelines between uploads and the AI APIs. Each method returns
    the view-model fields it sets; errors propagate to the router.
    """

    def __init__(
        self,
        llm: LLMClient,
        tts: ElevenLabsClient,
        images: StabilityClient,
        *,
        public_dir: str,
        upload_dir: str,
    ):
        self.llm = llm
        self.tts = tts
        self.images = images
        self.public_dir = public_dir
        self.upload_dir = upload_dir

    async def save_output(self, data: bytes, prefix: str, ext: str) -> str:
        """Write generated media under the public directory and return its URL path."""
        filename = output_filename(prefix, ext)
        await asyncio.to_thread(_write_bytes, os.path.join(self.public_dir, filename), data)
        return "/" + filename

    async def text_chat(self, text: Optional[str]) -> Dict[str, Any]:
        text = (text or "").strip()
        if not text:
            raise ValidationError("Enter a message.")

        reply = await self.llm.generate([text]) or "No response received."
        return {"chatReply": reply}

    async def voice_chat(self, audio: Optional[UploadFile]) -> Dict[str, Any]:
        if not is_present(audio):
            raise ValidationError("Upload an audio file.")

        async with staged_upload(audio, self.upload_dir) as staged:
            # 1) speech -> text
            media = await staged.read_base64()
            transcript = await self.llm.generate([media, TRANSCRIBE_PROMPT]) or "Could not transcribe."

            # 2) text -> reply
            reply = await self.llm.generate([transcript]) or "No reply available."

            # 3) reply -> speech
            audio_bytes = await self.tts.synthesize(reply)
            audio_url = await self.save_output(audio_bytes, "tts", "mp3")

        logger.info("Voice reply saved to {}", audio_url)
        return {"chatReply": reply, "fromVoice": transcript, "audioUrl": audio_url}

    async def vision_chat(self, images: Optional[Sequence[UploadFile]], prompt: Optional[str] = None) -> Dict[str, Any]:
        uploads = [u for u in (images or []) if is_present(u)]
        if not uploads:
            raise ValidationError("Upload at least one image.")
        if len(uploads) > MAX_IMAGES:
            raise ValidationError(f"Upload at most {MAX_IMAGES} images.")

        parts: List[InlineMedia] = []
        for upload in uploads:
            async with staged_upload(upload, self.upload_dir) as staged:
                parts.append(await staged.read_base64())

        prompt = prompt or DEFAULT_VISION_PROMPT
        vision_text = await self.llm.generate([prompt, *parts]) or "No result."
        return {"chatReply": vision_text, "visionAnalysis": vision_text}

    async def generate_image(self, prompt: Optional[str]) -> Dict[str, Any]:
        prompt = (prompt or "").strip()
        if not prompt:
            raise ValidationError("Prompt cannot be empty.")

        png = await self.images.text_to_image(prompt)
        return {"generatedImage": await self.save_output(png, "sdxl", "png")}


def get_media_relay(request: Request) -> MediaRelay:
    return request.app.state.relay
