import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from studio.workflow.store import STORAGE_KEY

load_dotenv()


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes"}


@dataclass
class Settings:
    # Runtime
    app_name: str = "listing-studio-api"
    env: str = os.getenv("ENV", "dev")
    log_level: str = os.getenv("LOG_LEVEL", "info")

    # Local state document
    state_dir: str = os.getenv("STUDIO_STATE_DIR", ".studio")
    storage_key: str = os.getenv("STUDIO_STORAGE_KEY", STORAGE_KEY)

    # Generation. GEMINI_API_KEY / GEMINI_IMAGE_MODEL are read per call in studio_api.gemini
    force_mock: bool = _env_flag("USE_MOCK_GENERATION")
    mock_delay_ms: tuple = field(
        default_factory=lambda: (
            int(os.getenv("MOCK_DELAY_MIN_MS", "650")),
            int(os.getenv("MOCK_DELAY_MAX_MS", "1300")),
        )
    )


settings = Settings()
