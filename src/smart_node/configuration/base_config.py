"""
Base configuration settings shared by the LLM and runtime settings groups.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict

class BaseConfig(BaseSettings):
    """
    Settings come from the process environment, then from a `.env` file in the
    working directory. Variables set to an empty string fall back to defaults.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding='utf-8',
        case_sensitive=True,
        env_ignore_empty=True,
        extra='ignore'
    )
