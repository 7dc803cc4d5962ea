from __future__ import annotations
from typing import Any, Awaitable, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from loguru import logger

from health_assistant.errors import AppError
from health_assistant.schemas import ChatView, compose_view
from health_assistant.services.media_relay import MediaRelay, get_media_relay

router = APIRouter(tags=["media"])


async def _render(label: str, pending: Awaitable[Dict[str, Any]]) -> Dict[str, Any]:
    # media routes always answer 200 with the full view-model; failures go to `error`
    try:
        return compose_view(**(await pending))
    except AppError as e:
        logger.warning("{} failed: {}", label, e.message)
        return compose_view(error=e.message)
    except Exception as e:
        logger.exception("{} error", label)
        return compose_view(error=str(e) or "Something went wrong.")


@router.post("/chat", response_model=ChatView)
async def chat(
    text: Optional[str] = Form(None),
    relay: MediaRelay = Depends(get_media_relay),
):
    return await _render("Chat", relay.text_chat(text))


@router.post("/voice-chat", response_model=ChatView)
async def voice_chat(
    audio: Optional[UploadFile] = File(None),
    relay: MediaRelay = Depends(get_media_relay),
):
    return await _render("Voice-chat", relay.voice_chat(audio))


@router.post("/vision-chat", response_model=ChatView)
async def vision_chat(
    images: Optional[List[UploadFile]] = File(None),
    prompt: Optional[str] = Form(None),
    relay: MediaRelay = Depends(get_media_relay),
):
    return await _render("Vision-chat", relay.vision_chat(images, prompt))


@router.post("/image-generate", response_model=ChatView)
async def image_generate(
    prompt: Optional[str] = Form(None),
    relay: MediaRelay = Depends(get_media_relay),
):
    return await _render("Image-generate", relay.generate_image(prompt))
