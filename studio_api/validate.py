from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from studio.workflow.errors import InvalidPayload
from studio.workflow.images import strip_data_url_prefix

MAX_PROMPT_CHARS = 20000
MAX_IMAGES = 8
MAX_IMAGE_BYTES = 6_000_000  # ~6MB per image


@dataclass
class GeneratePayload:
    prompt: str
    images: List[str] = field(default_factory=list)  # data URLs or bare base64
    module: Optional[Any] = None
    selectors: Dict[str, Any] = field(default_factory=dict)


def approx_base64_bytes(b64: str) -> int:
    # Padding is not accounted for
    return math.ceil(len(b64) * 3 / 4)


def validate_generate_payload(body: Any) -> GeneratePayload:
    if not isinstance(body, dict):
        raise InvalidPayload("body must be JSON object")

    prompt = body.get("prompt")
    if not isinstance(prompt, str) or not prompt.strip():
        raise InvalidPayload("prompt is required")
    if len(prompt) > MAX_PROMPT_CHARS:
        raise InvalidPayload("prompt too large")

    images: List[str] = []
    raw_images = body.get("images")
    if isinstance(raw_images, list):
        images = [i for i in raw_images if isinstance(i, str)][:MAX_IMAGES]

    for img in images:
        if approx_base64_bytes(strip_data_url_prefix(img)) > MAX_IMAGE_BYTES:
            raise InvalidPayload("image too large")

    return GeneratePayload(
        prompt=prompt.strip(),
        images=images,
        module=body.get("module"),
        selectors=body.get("selectors") if body.get("selectors") is not None else {},
    )
