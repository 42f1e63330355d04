"""Application configuration via pydantic-settings, persisted to a per-user env file."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import set_key, unset_key
from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from fastgpt.errors import ConfigIoError

logger = logging.getLogger(__name__)

ENV_PREFIX = "FASTGPT_"

# Only these fields are written back to the config file
PERSISTED_FIELDS = ("api_key", "cache_enabled", "references_enabled")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, env_file_encoding="utf-8", extra="ignore")

    # Auth
    api_key: str = ""

    # Toggles
    cache_enabled: bool = True
    references_enabled: bool = True

    # Upstream
    api_url: str = "https://kagi.com/api/v0/fastgpt"
    timeout: float = 60.0

    # File context
    max_file_bytes: int = 1_000_000

    # Prior turns sent with each question (0 = all of them)
    history_limit: int = 0

    debug: bool = False


@dataclass(frozen=True)
class SessionConfig:
    """Everything the session loop needs, resolved once at startup."""

    api_key: str
    cache: bool = True
    references: bool = True
    json_mode: bool = False
    history_limit: int = 0
    max_file_bytes: int = 1_000_000


def default_config_path() -> Path:
    override = os.environ.get(f"{ENV_PREFIX}CONFIG_FILE")
    if override:
        return Path(override).expanduser()
    base = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / "fastgpt" / "config.env"


def mask_api_key(key: str) -> str:
    if len(key) > 8:
        return f"{key[:4]}...{key[-4:]}"
    return "*" * len(key)


class ConfigStore:
    """Loads and saves Settings from a single key-value file."""

    def __init__(self, path: Path | None = None):
        self.path = path or default_config_path()

    def load(self) -> Settings:
        env_file = self.path if self.path.is_file() else None
        logger.debug(f"load config: path={self.path} exists={env_file is not None}")
        try:
            return Settings(_env_file=env_file)
        except ValidationError as e:
            raise ConfigIoError(f"Invalid config in {self.path}: {e}") from e

    def save(self, settings: Settings) -> None:
        """Write the persisted fields; other keys in the file are left alone."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.touch(mode=0o600, exist_ok=True)
            # Restrict before the key is written; set_key swaps in a 0600 temp file
            self.path.chmod(0o600)
            for name in PERSISTED_FIELDS:
                value = getattr(settings, name)
                if isinstance(value, bool):
                    value = "true" if value else "false"
                set_key(self.path, f"{ENV_PREFIX}{name.upper()}", str(value))
        except OSError as e:
            raise ConfigIoError(f"Failed to write config file {self.path}: {e}") from e
        logger.debug(f"saved config to {self.path}")

    def reset(self) -> None:
        """Remove the stored API key, keeping the toggles."""
        if not self.path.is_file():
            return
        try:
            unset_key(self.path, f"{ENV_PREFIX}API_KEY")
        except OSError as e:
            raise ConfigIoError(f"Failed to write config file {self.path}: {e}") from e
        logger.debug(f"reset api key in {self.path}")
