"""Configuration management for apple-mcp"""

from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

ALL_BACKENDS = [
    "contacts",
    "notes",
    "messages",
    "mail",
    "reminders",
    "calendar",
    "maps",
    "webSearch",
]


def get_config_path() -> Path:
    """Return the path to config.yaml used for both loading and saving."""
    return Path.home() / ".apple-mcp" / "config.yaml"


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Application
    app_name: str = "Apple MCP tools"
    debug: bool = Field(default=False, alias="APPLE_MCP_DEBUG")

    # Backend loading
    eager_loading: bool = Field(default=True, alias="APPLE_MCP_EAGER_LOADING")
    startup_timeout: float = Field(default=5.0, alias="APPLE_MCP_STARTUP_TIMEOUT")
    enabled_backends: List[str] = Field(
        default_factory=lambda: list(ALL_BACKENDS), alias="APPLE_MCP_ENABLED_BACKENDS"
    )

    # Automation
    automation_timeout: float = Field(default=60.0, alias="APPLE_MCP_AUTOMATION_TIMEOUT")
    messages_db_path: str = Field(
        default="~/Library/Messages/chat.db", alias="APPLE_MCP_MESSAGES_DB"
    )
    default_notes_folder: str = Field(default="Claude", alias="APPLE_MCP_NOTES_FOLDER")

    # Web search
    web_search_user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/91.0.4472.114 Safari/537.36"
        ),
        alias="APPLE_MCP_USER_AGENT",
    )
    web_fetch_timeout: float = Field(default=15.0, alias="APPLE_MCP_WEB_FETCH_TIMEOUT")
    web_max_results: int = Field(default=3, alias="APPLE_MCP_WEB_MAX_RESULTS")

    # Logging & Observability
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=False, alias="LOG_JSON")
    log_pii_redact: bool = Field(default=True, alias="LOG_PII_REDACT")
    log_file: Optional[str] = Field(default=None, alias="APPLE_MCP_LOG_FILE")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        populate_by_name = True

    @field_validator("enabled_backends")
    @classmethod
    def _known_backends(cls, value: List[str]) -> List[str]:
        unknown = [name for name in value if name not in ALL_BACKENDS]
        if unknown:
            raise ValueError(f"Unknown backends: {', '.join(unknown)}")
        return value

    @field_validator("startup_timeout", "automation_timeout", "web_fetch_timeout")
    @classmethod
    def _positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeouts must be positive")
        return value

    @classmethod
    def from_file(cls, path: str) -> "Settings":
        """Load settings from YAML file"""
        with open(path, "r") as f:
            config = yaml.safe_load(f) or {}
        return cls(**config)

    def to_file(self, path: str):
        """Save settings to YAML file. Creates parent directory if needed."""
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        with open(p, "w") as f:
            yaml.dump(self.model_dump(), f, default_flow_style=False)


def load_settings(path: Optional[str] = None) -> Settings:
    """Settings from an explicit file, the default config file, or the environment."""
    config_file = Path(path).expanduser() if path else get_config_path()
    if config_file.exists():
        return Settings.from_file(str(config_file))
    if path:
        raise FileNotFoundError(f"Config file not found: {config_file}")
    return Settings()
