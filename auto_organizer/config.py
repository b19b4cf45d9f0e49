"""
Configuration module - Persist and load application settings.

Settings and session tokens are stored as a single JSON document in the user's
configuration directory.
"""
import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from auto_organizer.models import OrganizeOptions

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "AUTO_ORGANIZER_CONFIG"


class AppConfig(BaseModel):
    """Application configuration."""
    api_url: str = Field("http://localhost:8085", description="Organize service base URL")
    dashboard_url: str = Field("http://localhost:3000", description="Web dashboard URL")
    access_token: Optional[str] = Field(None, description="Bearer token for the service")
    refresh_token: Optional[str] = Field(None, description="Token used to renew access")
    request_timeout: float = Field(30.0, gt=0, description="HTTP timeout in seconds")
    max_files: int = Field(5000, ge=1, description="Largest folder accepted for organizing")
    extraction_max_bytes: int = Field(50000, ge=1, description="Bytes read per file for extraction")
    extraction_concurrency: int = Field(5, ge=1, description="Files extracted concurrently")
    min_clusters: int = Field(3, ge=1, description="Soft lower bound sent to the service")
    max_clusters: int = Field(15, ge=1, description="Soft upper bound sent to the service")
    default_options: OrganizeOptions = Field(default_factory=OrganizeOptions)

    @field_validator('api_url', 'dashboard_url')
    @classmethod
    def strip_trailing_slash(cls, v):
        """Normalize URLs so paths can be appended."""
        if not v or not v.strip():
            raise ValueError("URL cannot be empty")
        return v.strip().rstrip("/")


def default_config_path() -> Path:
    """Resolve the config file location from the environment."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override)
    base = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / "auto-organizer" / "config.json"


class ConfigStore:
    """JSON-file backed configuration and token store."""

    def __init__(self, path: Optional[Path] = None):
        """
        Initialize store.

        Args:
            path: Config file location (defaults to default_config_path())
        """
        self.path = Path(path) if path else default_config_path()
        self._config: Optional[AppConfig] = None

    @property
    def config(self) -> AppConfig:
        """Current configuration, loaded on first access."""
        if self._config is None:
            self._config = self.load()
        return self._config

    def load(self) -> AppConfig:
        """
        Load configuration from disk, creating a default file if missing.

        Returns:
            AppConfig read from the file
        """
        if not self.path.exists():
            logger.info(f"No configuration at {self.path}, writing defaults")
            config = AppConfig()
            self.save(config)
            return config

        with open(self.path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        config = AppConfig(**data)
        self._config = config
        logger.debug(f"Loaded configuration from {self.path}")
        return config

    def save(self, config: Optional[AppConfig] = None) -> None:
        """
        Save configuration to disk.

        Args:
            config: Configuration to save (defaults to the current one)
        """
        config = config or self.config
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(config.model_dump(mode='json'), f, indent=2)
        self._config = config
        logger.debug(f"Saved configuration to {self.path}")

    def update(self, **changes) -> AppConfig:
        """
        Apply field changes, validate and persist them.

        Raises:
            pydantic.ValidationError: If a value is invalid
        """
        data = self.config.model_dump()
        data.update(changes)
        config = AppConfig(**data)
        self.save(config)
        return config

    def get_access_token(self) -> Optional[str]:
        """Return the stored access token, or None when logged out."""
        return self.config.access_token or None

    def store_tokens(self, access_token: str, refresh_token: Optional[str] = None) -> None:
        """Persist tokens issued by a login or refresh."""
        self.update(access_token=access_token, refresh_token=refresh_token)

    def clear_tokens(self) -> None:
        """Forget stored tokens."""
        self.update(access_token=None, refresh_token=None)
