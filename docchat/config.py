"""Application configuration with environment variable loading.

Pydantic-based settings for the answer providers, the streaming engine
and the upload endpoint.
"""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

# Load environment variables from .env file
load_dotenv()


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() not in {"0", "false", "no", "off"}


def _env_optional_int(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return int(raw)


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None:
        return default
    items = [item.strip() for item in raw.split(",") if item.strip()]
    return items or default


class AppConfig(BaseModel):
    """Configuration for the document chat service.

    Attributes:
        api_base_url: Base URL of the real QA backend.
        use_mock: Serve answers from the packaged fixtures instead of the backend.
        demo_mode: With use_mock, rotate through the recorded demo transcript.
        timeout: Request timeout for backend calls, in seconds.
        stream_speed: Delay between reveal ticks, in seconds.
        max_completed_sessions: Remembered answers per chat session (None = unbounded).
        max_upload_mb: Maximum accepted PDF size in megabytes.
        cors_origins: Browser origins allowed to call the API.
    """

    api_base_url: str = Field(
        default_factory=lambda: os.getenv("DOCCHAT_API_URL", "http://localhost:8000"),
        description="Base URL of the QA backend",
    )
    use_mock: bool = Field(
        default_factory=lambda: _env_flag("DOCCHAT_USE_MOCK", True),
        description="Use a fixture-backed answer provider instead of the backend",
    )
    demo_mode: bool = Field(
        default_factory=lambda: _env_flag("DOCCHAT_DEMO_MODE", False),
        description="Rotate through the recorded demo transcript (mock only)",
    )
    timeout: float = Field(
        default_factory=lambda: float(os.getenv("DOCCHAT_TIMEOUT", "60")),
        gt=0.0,
        description="Backend request timeout in seconds",
    )
    stream_speed: float = Field(
        default_factory=lambda: float(os.getenv("DOCCHAT_STREAM_SPEED", "0.03")),
        gt=0.0,
        le=5.0,
        description="Seconds between reveal ticks",
    )
    max_completed_sessions: int | None = Field(
        default_factory=lambda: _env_optional_int("DOCCHAT_MAX_COMPLETED"),
        ge=1,
        description="Maximum remembered completed answers",
    )
    max_upload_mb: int = Field(
        default_factory=lambda: int(os.getenv("DOCCHAT_MAX_UPLOAD_MB", "10")),
        ge=1,
        le=50,
        description="Maximum PDF upload size in MB",
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: _env_list("DOCCHAT_CORS_ORIGINS", ["*"]),
        min_length=1,
        description="Origins allowed to call the API from a browser",
    )

    @field_validator("api_base_url")
    @classmethod
    def validate_api_base_url(cls, v: str) -> str:
        """Require an http(s) URL and drop the trailing slash."""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("DOCCHAT_API_URL must start with http:// or https://")
        return v.rstrip("/")

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024


def get_app_config() -> AppConfig:
    """Create application configuration from environment.

    Returns:
        Configured AppConfig instance.

    Raises:
        ValueError: If an environment value is invalid.
    """
    return AppConfig()
