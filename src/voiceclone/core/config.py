"""Configuration management using pydantic-settings."""

from pathlib import Path
from typing import Any, Dict, Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="VOICECLONE_",
        case_sensitive=False,
        extra="forbid",
        validate_assignment=True,
    )

    # Backend settings
    api_base_url: str = Field(
        default="http://localhost:8080/api",
        description="Base URL of the voice synthesis backend"
    )
    clone_path: str = Field(
        default="/app/voice/clone",
        description="Endpoint path for voice clone submission"
    )
    status_path: str = Field(
        default="/app/voice/clone/{task_id}",
        description="Endpoint path template for job status queries"
    )
    request_timeout: float = Field(
        default=60.0,
        gt=0.0,
        le=600.0,
        description="Transport timeout for a single HTTP request (seconds)"
    )

    # Job resolution settings
    poll_interval: float = Field(
        default=3.0,
        gt=0.0,
        le=60.0,
        description="Delay between job status polls (seconds)"
    )
    poll_timeout: float = Field(
        default=300.0,
        ge=0.0,
        le=3600.0,
        description="Maximum time spent polling a pending job (seconds)"
    )
    max_poll_failures: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Consecutive poll transport failures before giving up"
    )
    submit_retries: int = Field(
        default=0,
        ge=0,
        le=10,
        description="Retries of the initial submission on transport errors"
    )

    # Input limits
    max_audio_bytes: int = Field(
        default=10 * 1024 * 1024,
        ge=1,
        description="Maximum reference audio size in bytes"
    )
    max_text_length: int = Field(
        default=5000,
        ge=1,
        le=50000,
        description="Maximum length of the text to synthesize"
    )

    # Request defaults
    default_language: str = Field(
        default="zh-CN",
        description="Language used when none is selected"
    )
    default_model: Optional[str] = Field(
        default=None,
        description="Synthesis model variant sent when none is selected"
    )

    # Output
    download_dir: Path = Field(
        default_factory=lambda: Path.cwd() / "voiceclone-output",
        description="Directory generated audio is downloaded into",
    )

    # Logging settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level"
    )
    log_format: Literal["json", "structured", "simple"] = Field(
        default="structured",
        description="Log format style"
    )

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalise the base URL so paths can be appended."""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"api_base_url must be an http(s) URL: {v}")
        return v.rstrip("/")

    @field_validator("clone_path", "status_path")
    @classmethod
    def ensure_leading_slash(cls, v: str) -> str:
        """Endpoint paths are always absolute below the base URL."""
        v = v.strip()
        return v if v.startswith("/") else f"/{v}"

    @field_validator("download_dir", mode="before")
    @classmethod
    def expand_path(cls, v: str | Path) -> Path:
        """Expand user home directory in paths."""
        if isinstance(v, str):
            v = Path(v)
        return v.expanduser().resolve()

    @model_validator(mode="after")
    def validate_status_template(self) -> "Settings":
        """The status path must carry the task id placeholder."""
        if "{task_id}" not in self.status_path:
            raise ValueError("status_path must contain the '{task_id}' placeholder")
        return self

    def get_backend_config(self) -> Dict[str, Any]:
        """Get backend connection configuration."""
        return {
            "api_base_url": self.api_base_url,
            "clone_path": self.clone_path,
            "status_path": self.status_path,
            "request_timeout": self.request_timeout,
        }

    def get_polling_config(self) -> Dict[str, Any]:
        """Get job resolution configuration."""
        return {
            "poll_interval": self.poll_interval,
            "poll_timeout": self.poll_timeout,
            "max_poll_failures": self.max_poll_failures,
            "submit_retries": self.submit_retries,
        }


# Global settings instance
settings = Settings()
