"""Configuration loader for service settings."""

import json
import logging
import os
from pathlib import Path

from pydantic import ValidationError

from ..config.settings import Settings

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "REELNOTES_CONFIG_PATH"


class ConfigLoader:
    """Loads settings from a JSON config file or falls back to defaults."""

    def load(self, config_path: str | None = None) -> Settings:
        """Load settings from file, or defaults if no usable file is found."""
        config = self._load_config_file(config_path)
        try:
            return Settings.model_validate(config)
        except ValidationError as e:
            logger.warning(f"Invalid configuration, using defaults: {e}")
            return Settings()

    def _load_config_file(self, config_path: str | None = None) -> dict:
        """Load configuration from JSON file."""
        if config_path is None:
            # Try multiple locations in order
            possible_paths = [
                os.getenv(CONFIG_ENV_VAR),
                str(Path.home() / ".reelnotes" / "config.json"),
                "/etc/reelnotes/config.json",
            ]

            for path in possible_paths:
                if path and Path(path).exists():
                    config_path = path
                    break

        if config_path:
            config_file = Path(config_path)
            if config_file.exists():
                try:
                    with open(config_file, encoding="utf-8") as f:
                        data = json.load(f)
                    if isinstance(data, dict):
                        logger.info(f"Loaded configuration from {config_file}")
                        return data
                    logger.warning(f"Ignoring non-object configuration {config_file}")
                except (OSError, json.JSONDecodeError) as e:
                    logger.warning(f"Could not read configuration {config_file}: {e}")

        # Return default configuration
        return self._get_default_config()

    def _get_default_config(self) -> dict:
        """Get default configuration."""
        return Settings().model_dump()

    def create_default_config_file(self, config_path: str | None = None) -> str:
        """Create a default configuration file."""
        if config_path is None:
            config_path = "config/reelnotes.json"

        config_file = Path(config_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, "w", encoding="utf-8") as f:
            json.dump(self._get_default_config(), f, indent=2)

        return str(config_file)
