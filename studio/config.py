import os
import tomllib
from dataclasses import dataclass
from typing import Optional

from studio.workflow.store import STORAGE_KEY


@dataclass
class StudioConfig:
    state_dir: str = ".studio"
    storage_key: str = STORAGE_KEY
    server_url: Optional[str] = None
    timeout: int = 90
    output_dir: str = "outputs"
    force_mock: bool = False


def _truthy(value: Optional[str]) -> bool:
    return str(value or "").strip().lower() in {"1", "true", "yes"}


def load_config(path: str = "config.toml") -> StudioConfig:
    data = {}
    if os.path.exists(path):
        with open(path, "rb") as f:
            data = tomllib.load(f)

    studio = data.get("studio", {})
    server = data.get("server", {})
    defaults = data.get("defaults", {})

    # Prefer config values; fall back to the same env vars the API reads
    state_dir = studio.get("state_dir") or os.environ.get("STUDIO_STATE_DIR", ".studio")
    storage_key = studio.get("storage_key") or os.environ.get("STUDIO_STORAGE_KEY", STORAGE_KEY)
    force_mock = bool(studio.get("force_mock", False)) or _truthy(os.environ.get("USE_MOCK_GENERATION"))
    server_url = server.get("url") or os.environ.get("STUDIO_SERVER_URL")
    timeout = int(server.get("timeout", 90))
    output_dir = defaults.get("output_dir", "outputs")

    return StudioConfig(
        state_dir=state_dir,
        storage_key=storage_key,
        server_url=server_url,
        timeout=timeout,
        output_dir=output_dir,
        force_mock=force_mock,
    )
