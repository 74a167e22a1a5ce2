"""Configuration management using Pydantic Settings."""

import logging
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_CONNECTION_STRING_NAME = "MongoServerSettings"


class Settings(BaseSettings):
    """Main configuration class."""

    # Paths
    config_file: Path = Path("config.yaml")

    # Named MongoDB connection strings, e.g.
    # CONNECTION_STRINGS__MONGOSERVERSETTINGS=mongodb://localhost:27017/setup
    connection_strings: dict[str, str] = Field(default_factory=dict)
    default_database: str = "mongosetup"
    server_selection_timeout_ms: int = 5000

    # Application
    environment: str = "development"
    log_level: str = "INFO"
    logfire_token: str = ""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Upper-case the log level so it maps onto logging constants."""
        return v.strip().upper()

    def get_connection_string(self, name: str) -> str | None:
        """Look up a named connection string, ignoring case.

        Returns None when the name is unknown or its value is blank.
        """
        wanted = name.lower()
        for key, value in self.connection_strings.items():
            if key.lower() == wanted:
                return value.strip() or None
        return None

    def load_yaml_config(self) -> None:
        """Load and merge YAML configuration."""
        config_path = self.config_file

        if not config_path.exists():
            logger.debug(f"Config file not found: {config_path}. Using environment only.")
            return

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)

            if not yaml_config:
                logger.warning(f"Empty config file: {config_path}")
                return

            # Environment values win over the file; names compare without case
            merged = {
                str(k): str(v)
                for k, v in (yaml_config.get("connection_strings") or {}).items()
            }
            for key, value in self.connection_strings.items():
                for existing in [k for k in merged if k.lower() == key.lower()]:
                    del merged[existing]
                merged[key] = value
            self.connection_strings = merged

            for key in [
                "default_database",
                "server_selection_timeout_ms",
                "environment",
                "log_level",
                "logfire_token",
            ]:
                if key in yaml_config and key not in self.model_fields_set:
                    setattr(self, key, type(getattr(self, key))(yaml_config[key]))
            self.log_level = self.normalize_log_level(self.log_level)

            logger.info(f"Loaded configuration from {config_path}")

        except yaml.YAMLError as e:
            logger.error(f"Failed to parse YAML config: {e}")
            raise


def load_settings(config_file: Path | str | None = None) -> Settings:
    """Build settings from the environment and an optional YAML file."""
    if config_file is not None:
        settings = Settings(config_file=Path(config_file))
    else:
        settings = Settings()
    settings.load_yaml_config()
    return settings


@lru_cache()
def get_settings() -> Settings:
    """Get singleton Settings instance."""
    return load_settings()
