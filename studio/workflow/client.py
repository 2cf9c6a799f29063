from __future__ import annotations

import logging
from typing import List

import httpx

from studio.workflow.errors import Err, Ok, ProviderFailure, Result
from studio.workflow.images import GeneratedImage
from studio.workflow.runner import ImageProvider

log = logging.getLogger("studio.workflow.client")


def http_provider(base_url: str, timeout: float = 90.0) -> ImageProvider:
    """Provider that calls a running studio API's POST /api/generate."""
    url = f"{base_url.rstrip('/')}/api/generate"

    async def _generate(prompt: str, images: List[str]) -> Result:
        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                r = await client.post(url, json={"prompt": prompt, "images": images})
            data = r.json()
        except (httpx.HTTPError, ValueError) as e:
            log.warning("http_provider_error url=%s error=%s", url, e)
            return Err(ProviderFailure(f"request to {url} failed: {e}"))

        if not isinstance(data, dict):
            data = {}
        if r.status_code != 200 or not data.get("ok"):
            return Err(ProviderFailure(data.get("error") or f"image request failed with HTTP {r.status_code}"))
        b64 = data.get("imageBase64")
        if not isinstance(b64, str) or not b64:
            return Err(ProviderFailure("image response without imageBase64"))
        return Ok(
            GeneratedImage(
                base64=b64,
                mime=data.get("mimeType") or "image/png",
                model_used=data.get("modelUsed"),
                safety=data.get("safety"),
            )
        )

    return _generate
