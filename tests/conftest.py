import os
import sys
import tempfile
import warnings
from types import SimpleNamespace
from typing import Any, List, Optional

import pytest
from fastapi.testclient import TestClient


# Ensure project root is on sys.path for `from studio...` imports
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

# The module-level app in studio_api.main must never touch the real state dir or Gemini
os.environ.setdefault("STUDIO_STATE_DIR", tempfile.mkdtemp(prefix="studio-tests-"))
os.environ.setdefault("USE_MOCK_GENERATION", "true")

from studio.workflow.store import MemoryStore, StudioState  # noqa: E402
from studio_api.main import create_app  # noqa: E402


PNG_1x1 = "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mP8/x8AAwMB/axuE9sAAAAASUVORK5CYII="


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def studio(store) -> StudioState:
    return StudioState(store)


@pytest.fixture
def client(store):
    app = create_app(store=store, force_mock=True, mock_delay_ms=(0, 0))
    with TestClient(app) as c:
        yield c


# ---- Fake google-genai client (only the async generate_content path) ----


def image_response(data: bytes = b"\x89PNG fake", mime: str = "image/png", text: Optional[str] = None):
    parts: List[Any] = []
    if text:
        parts.append(SimpleNamespace(inline_data=None, text=text))
    if data:
        parts.append(SimpleNamespace(inline_data=SimpleNamespace(data=data, mime_type=mime), text=None))
    return SimpleNamespace(
        candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))],
        prompt_feedback=None,
    )


class FakeGenai:
    """Records calls and returns `response` (or raises `error`)."""

    def __init__(self, response: Any = None, error: Optional[Exception] = None):
        self.response = response if response is not None else image_response()
        self.error = error
        self.calls: List[dict] = []
        self.api_keys: List[str] = []
        self.closed = 0
        self.aio = SimpleNamespace(
            models=SimpleNamespace(generate_content=self._generate_content),
            aclose=self._aclose,
        )

    async def _generate_content(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response

    async def _aclose(self):
        self.closed += 1

    def factory(self, api_key: str = "", **kwargs):
        self.api_keys.append(api_key)
        return self


@pytest.fixture
def fake_genai(monkeypatch):
    import studio_api.gemini as gemini

    fake = FakeGenai()
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    monkeypatch.delenv("GEMINI_IMAGE_MODEL", raising=False)
    monkeypatch.setattr(gemini.genai, "Client", fake.factory, raising=True)
    return fake


# Suppress deprecation warnings coming from third-party libs during tests
warnings.filterwarnings("ignore", category=DeprecationWarning)
