"""Configuration service — loads, saves, and provides access to AppConfig."""
from __future__ import annotations

import json
import logging
import os

from pydantic import ValidationError

from app.models.config import AppConfig

logger = logging.getLogger(__name__)

MIN_REFRESH_INTERVAL = 300


class ConfigService:
    """Manages application configuration with file persistence.

    The config is kept in-memory after first load and re-read on explicit
    ``load()`` or ``reload()`` calls.  Every route that needs the config
    should depend on this service rather than reading the JSON directly.
    """

    def __init__(self, data_dir: str):
        self.data_dir = data_dir
        self.config_file = os.path.join(data_dir, "config.json")
        self._config: dict = self._default_config()

    # ------------------------------------------------------------------
    # Defaults
    # ------------------------------------------------------------------

    @staticmethod
    def _default_config() -> dict:
        return AppConfig().model_dump()

    # ------------------------------------------------------------------
    # Load / Save
    # ------------------------------------------------------------------

    def load(self) -> dict:
        """Load configuration from disk, filling in defaults for missing keys."""
        if os.path.exists(self.config_file):
            try:
                with open(self.config_file) as f:
                    raw = json.load(f)
                self._config = AppConfig.model_validate(raw).model_dump()
                return self._config
            except (OSError, json.JSONDecodeError, ValidationError) as e:
                logger.error(f"Error loading config: {e}")

        self._config = self._default_config()
        return self._config

    def reload(self) -> dict:
        """Alias for ``load()``."""
        return self.load()

    def save(self, config: dict | None = None) -> None:
        """Persist the config to disk."""
        if config is not None:
            self._config = config
        os.makedirs(self.data_dir, exist_ok=True)
        with open(self.config_file, "w") as f:
            json.dump(self._config, f, indent=2)

    @property
    def config(self) -> dict:
        return self._config

    # ------------------------------------------------------------------
    # Convenience accessors
    # ------------------------------------------------------------------

    def get_cache_ttl(self) -> int:
        return self._config.get("options", {}).get("cache_ttl", 3600)

    def get_refresh_interval(self) -> int:
        interval = self._config.get("options", {}).get("refresh_interval", 3600)
        return max(interval, MIN_REFRESH_INTERVAL)

    refresh_interval = property(get_refresh_interval)

    def get_auto_refresh(self) -> bool:
        return self._config.get("options", {}).get("auto_refresh", True)

    def get_static_output_path(self) -> str:
        path = self._config.get("options", {}).get("static_output_path", "")
        return path or os.path.join(self.data_dir, "public", "aggregated.m3u")

    def get_source_manager_password(self) -> str:
        # The environment wins so the secret can stay out of config.json
        return os.environ.get("SOURCE_MANAGER_PASSWORD") or self._config.get("options", {}).get(
            "source_manager_password", ""
        )
