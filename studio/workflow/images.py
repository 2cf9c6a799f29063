import re
from dataclasses import dataclass
from typing import Any, Optional

DEFAULT_MIME = "image/png"

_DATA_URL_RE = re.compile(r"^data:([^;]+);base64,")
_BASE64_MARKER = "base64,"


@dataclass
class GeneratedImage:
    base64: str
    mime: str = DEFAULT_MIME
    model_used: Optional[str] = None
    safety: Optional[Any] = None

    @property
    def data_url(self) -> str:
        return to_data_url(self.base64, self.mime)


def to_data_url(b64: str, mime: Optional[str] = None) -> str:
    return f"data:{mime or DEFAULT_MIME};base64,{b64}"


def strip_data_url_prefix(value: str) -> str:
    idx = value.find(_BASE64_MARKER)
    return value[idx + len(_BASE64_MARKER):] if idx >= 0 else value


def guess_mime_from_data_url(value: str) -> Optional[str]:
    if not value.startswith("data:"):
        return None
    m = _DATA_URL_RE.match(value)
    return m.group(1) if m else None
