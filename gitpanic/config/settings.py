"""Configuration settings models using Pydantic."""

from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)


class HistoryConfig(BaseModel):
    """Configuration for the action history."""

    max_actions: int = Field(default=50, ge=1)
    path: Optional[str] = None

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    def resolved_path(self, git_dir: Path) -> Path:
        """Where the history file lives; defaults to inside the git directory."""
        if self.path:
            return Path(self.path).expanduser()
        return git_dir / "gitpanic" / "history.json"


class SafetyConfig(BaseModel):
    """Configuration for confirmations."""

    confirm_dangerous_actions: bool = True


class LoggingConfig(BaseModel):
    """Configuration for log output."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"
    file: Optional[str] = None

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="GITPANIC_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    history: HistoryConfig = Field(default_factory=HistoryConfig)
    safety: SafetyConfig = Field(default_factory=SafetyConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Environment wins over values merged from the YAML files
        return env_settings, init_settings, dotenv_settings, file_secret_settings
