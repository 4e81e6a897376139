"""Configuration management using Pydantic settings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PluginSettings(BaseSettings):
    """Plugin runtime settings loaded from PLUGHOST_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="PLUGHOST_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Plugin tree
    plugins_dir: Path = Path("plugins")       # Root scanned for plugin files
    create_plugins_dir: bool = True           # Create the root if missing
    default_subdir: str = "plugins"           # Runtime dir for file-less plugins, under app path

    # Startup
    startup_plugins: list[str] = Field(default_factory=list)  # Names flagged for auto-load

    # Compiler
    optimize: int = 0                         # Passed to compile(); 0, 1 or 2

    # Logging
    log_category: str = "PLUG"
    log_level: str = "INFO"                   # Threshold for the runtime loguru handler


settings = PluginSettings()
