from __future__ import annotations

from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit

from pydantic import AnyHttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    base_url: AnyHttpUrl = "https://scrapbox.io"

    # Local state (browser profile lives under config_dir unless overridden)
    config_dir: Path = Path.home() / ".mcp-cosense"
    user_data_dir: Optional[Path] = None

    # Browser selection: channel wins over the bundled chromium, executable
    # path wins over both. Neither given -> stable "chrome" channel.
    browser_channel: Optional[str] = None
    browser_executable_path: Optional[str] = None
    headless: bool = True
    debugging_port_start: int = 9022
    viewport_width: int = 1280
    viewport_height: int = 800

    # Interactive login polling
    auth_poll_attempts: int = 300
    auth_poll_interval: float = 1.0

    http_timeout: float = 30.0
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="COSENSE_",
        env_file=".env",
        extra="ignore",
    )

    @property
    def origin(self) -> str:
        return str(self.base_url).rstrip("/")

    @property
    def auth_domain(self) -> str:
        return urlsplit(self.origin).hostname or ""

    def resolved_user_data_dir(self) -> Path:
        if self.user_data_dir is not None:
            return self.user_data_dir
        return self.config_dir / "cosense-client"


def ensure_config_dir(cfg: Settings) -> Path:
    """Create the configuration directory if it does not exist yet."""
    cfg.config_dir.mkdir(parents=True, exist_ok=True)
    return cfg.config_dir


settings = Settings()
