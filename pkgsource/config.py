"""Configuration settings for pkgsource.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_workspace() -> Path:
    """Return the default workspace used when building in hack mode."""
    return Path.home() / ".pkgsource"


def _default_db_url() -> str:
    """Return the default database URL (SQLite)."""
    db_path = Path.home() / ".local" / "share" / "pkgsource" / "builds.sqlite"
    return f"sqlite:///{db_path}"


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the PKGSOURCE_ prefix.
    CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="PKGSOURCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    default_workspace: Path = Field(
        default_factory=_default_workspace,
        description="Build destination when the package root is not a workspace",
    )
    search_path: list[Path] = Field(
        default_factory=list,
        description="Directories searched for package sources in hack mode",
    )
    db_url: str = Field(
        default_factory=_default_db_url,
        description="Database connection URL for build records",
    )
    tmp_dir: Path | None = Field(
        default=None,
        description="Staging directory for git fetches (system default if not set)",
    )

    # Operational modes
    use_path_hack: bool = Field(
        default=False,
        description="Treat an arbitrary directory as a package source",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # External tools
    git_executable: str = Field(
        default="git",
        description="git executable used to clone package sources",
    )
    compiler_executable: str = Field(
        default="rustc",
        description="Compiler executable invoked for each build unit",
    )


def get_settings() -> Settings:
    """Get the application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = ["Settings", "get_settings", "print_settings_json"]
