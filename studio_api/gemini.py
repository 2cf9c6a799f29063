from __future__ import annotations

import asyncio
import base64
import logging
import os
from typing import Any, List, Optional

from google import genai
from google.genai import types

from studio.workflow.errors import (
    Err,
    NoImageReturned,
    Ok,
    ProviderConfig,
    ProviderFailure,
    RateLimited,
    Result,
    StudioError,
)
from studio.workflow.images import DEFAULT_MIME, GeneratedImage, guess_mime_from_data_url, strip_data_url_prefix
from studio_api.validate import GeneratePayload, validate_generate_payload

log = logging.getLogger("studio_api.gemini")

DEFAULT_MODEL = "gemini-2.5-flash-image"
REQUEST_TIMEOUT_S = 60


def _must_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise ProviderConfig(f"missing env {name}")
    return value


def _is_rate_limited(message: str) -> bool:
    m = message.lower()
    return "429" in m or "rate" in m


def _build_parts(payload: GeneratePayload) -> List[types.Part]:
    parts = [types.Part.from_text(text=payload.prompt)]
    for img in payload.images:
        mime = guess_mime_from_data_url(img) or DEFAULT_MIME
        parts.append(types.Part.from_bytes(data=base64.b64decode(strip_data_url_prefix(img)), mime_type=mime))
    return parts


def _safety(response: Any) -> Optional[Any]:
    feedback = getattr(response, "prompt_feedback", None)
    if feedback is None:
        return None
    if hasattr(feedback, "model_dump"):
        return feedback.model_dump(mode="json", exclude_none=True)
    return feedback


def _extract_image(response: Any, model_name: str) -> GeneratedImage:
    candidates = getattr(response, "candidates", None) or []
    content = getattr(candidates[0], "content", None) if candidates else None
    parts = (getattr(content, "parts", None) or []) if content else []

    for part in parts:
        inline = getattr(part, "inline_data", None)
        if inline is not None and inline.data:
            data = inline.data
            b64 = data if isinstance(data, str) else base64.b64encode(data).decode("ascii")
            return GeneratedImage(
                base64=b64,
                mime=inline.mime_type or DEFAULT_MIME,
                model_used=model_name,
                safety=_safety(response),
            )

    text = next((p.text for p in parts if getattr(p, "text", None)), None)
    raise NoImageReturned(text or "model did not return image data")


async def generate_image(payload: GeneratePayload) -> GeneratedImage:
    """Send one prompt (+ reference images) to Gemini and return the first image."""
    api_key = _must_env("GEMINI_API_KEY")
    model_name = os.getenv("GEMINI_IMAGE_MODEL") or DEFAULT_MODEL

    log.info(
        "gemini_generate_call model=%s prompt_len=%s images=%s",
        model_name,
        len(payload.prompt),
        len(payload.images),
    )

    client = None
    try:
        client = genai.Client(api_key=api_key)
        response = await asyncio.wait_for(
            client.aio.models.generate_content(
                model=model_name,
                contents=[types.Content(role="user", parts=_build_parts(payload))],
                config=types.GenerateContentConfig(response_modalities=["IMAGE", "TEXT"]),
            ),
            timeout=REQUEST_TIMEOUT_S,
        )
    except asyncio.TimeoutError as e:
        log.warning("gemini_generate_timeout model=%s", model_name)
        raise ProviderFailure(f"Gemini request aborted after {REQUEST_TIMEOUT_S}s") from e
    except Exception as e:
        msg = str(e) or e.__class__.__name__
        log.warning("gemini_generate_error model=%s error=%s", model_name, msg)
        if _is_rate_limited(msg):
            raise RateLimited("Gemini rate limited") from e
        raise ProviderFailure(msg) from e
    finally:
        if client is not None:
            await client.aio.aclose()

    image = _extract_image(response, model_name)
    log.info("gemini_generate_ok model=%s mime=%s b64_len=%s", model_name, image.mime, len(image.base64))
    return image


async def generate_result(prompt: str, images: List[str]) -> Result:
    """Runner-facing provider: same validation as the HTTP boundary, errors as values."""
    try:
        payload = validate_generate_payload({"prompt": prompt, "images": images})
        return Ok(await generate_image(payload))
    except StudioError as e:
        return Err(e)
