"""Configuration management using Pydantic Settings."""

import logging
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class MongoConfig(BaseModel):
    """MongoDB connection parameters."""

    url: str = "mongodb://localhost:27017"
    database: str = "mongorepo"
    tz_aware: bool = True  # Return BSON dates as UTC-aware datetimes
    server_selection_timeout_ms: int = 5000
    app_name: str = "mongorepo"


class RepositoryConfig(BaseModel):
    """Repository behaviour switches."""

    emit_events: bool = True
    log_operations: bool = False  # Debug-log every translated predicate


class Settings(BaseSettings):
    """Main configuration class."""

    mongodb: MongoConfig = Field(default_factory=MongoConfig)
    repository: RepositoryConfig = Field(default_factory=RepositoryConfig)

    log_level: str = "INFO"
    logfire_token: str = ""

    # Optional YAML overlay merged on top of environment values
    config_file: Path = Path("mongorepo.yaml")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level", mode="after")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Validate log level against the logging module's names."""
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    def load_yaml_config(self) -> None:
        """Load and merge YAML configuration."""
        config_path = self.config_file

        if not config_path.exists():
            logger.debug(f"Config file not found: {config_path}. Using defaults.")
            return

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)

            if not yaml_config:
                logger.warning(f"Empty config file: {config_path}")
                return

            for section_name in ["mongodb", "repository"]:
                if section_name in yaml_config:
                    section = getattr(self, section_name)
                    yaml_section = yaml_config[section_name]

                    section_dict = section.model_dump()
                    section_dict.update(yaml_section)

                    new_section = section.__class__(**section_dict)
                    setattr(self, section_name, new_section)

            logger.info(f"Loaded configuration from {config_path}")

        except yaml.YAMLError as e:
            logger.error(f"Failed to parse YAML config: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to load config: {e}")
            raise


@lru_cache()
def get_settings() -> Settings:
    """Get singleton Settings instance."""
    settings = Settings()
    settings.load_yaml_config()
    return settings
