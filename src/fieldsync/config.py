"""Application configuration via Pydantic BaseSettings."""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    development = "development"
    staging = "staging"
    production = "production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Local cache
    DATABASE_URL: str = "sqlite+aiosqlite:///field_survey.db"

    # Environment
    ENVIRONMENT: Environment = Environment.development

    # Logging
    LOG_LEVEL: str = "INFO"

    # Salesforce objects
    SURVEY_OBJECT: str = "Survey__c"
    LOCALIZATION_OBJECT: str = "Localization__mdt"

    # Salesforce REST API
    SALESFORCE_INSTANCE_URL: str = ""
    SALESFORCE_API_VERSION: str = "v58.0"
    SALESFORCE_ACCESS_TOKEN: str = ""
    REMOTE_TIMEOUT: int = 30

    # Key/value settings store
    SETTINGS_STORE_PATH: str = "field_survey_settings.json"
    REDIS_URL: str = ""  # Use Redis for the settings store when set


@lru_cache
def get_settings() -> Settings:
    """Singleton settings instance."""
    return Settings()
