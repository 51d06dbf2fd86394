"""
LLM endpoint configuration for the translation service.
"""

from functools import lru_cache
from pydantic import Field, field_validator

from .base_config import BaseConfig


DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4.1-mini"


class LlmConfig(BaseConfig):
	"""
	Connection settings for an OpenAI-compatible chat completion endpoint.

	Environment variables:
	- OPENAI_API_KEY: API key (required before any translation is attempted)
	- OPENAI_BASE_URL: API base URL (default: https://api.openai.com/v1)
	- SMART_NODE_MODEL: Chat model id (default: gpt-4.1-mini)
	- LLM_REQUEST_TIMEOUT_SEC: Upper bound for one completion request (default: 45)
	- LLM_MAX_RETRIES: Extra translation attempts on transient failures (default: 0)
	"""

	OPENAI_API_KEY: str | None = Field(default=None, description="OpenAI API key")
	OPENAI_BASE_URL: str = Field(default=DEFAULT_BASE_URL, description="OpenAI-compatible API base URL")
	SMART_NODE_MODEL: str = Field(default=DEFAULT_MODEL, description="Chat model id used for translation")

	LLM_REQUEST_TIMEOUT_SEC: float = Field(
		default=45.0,
		description="Timeout in seconds for a single chat completion request"
	)
	LLM_MAX_RETRIES: int = Field(
		default=0,
		description="Retries for transient translation failures (0 disables retrying)"
	)

	@field_validator('OPENAI_BASE_URL')
	@classmethod
	def validate_base_url(cls, v: str) -> str:
		"""Validate that the URL is properly formatted."""
		if not v.startswith(('http://', 'https://')):
			raise ValueError('URL must start with http:// or https://')
		return v

	@field_validator('LLM_REQUEST_TIMEOUT_SEC')
	@classmethod
	def validate_positive_timeout(cls, v: float) -> float:
		"""Validate that the timeout is positive."""
		if v <= 0:
			raise ValueError('Timeout values must be positive')
		return v

	@field_validator('LLM_MAX_RETRIES')
	@classmethod
	def validate_non_negative_retries(cls, v: int) -> int:
		"""Validate that retry count is non-negative."""
		if v < 0:
			raise ValueError('Max retries must be non-negative')
		return v

	@property
	def has_credential(self) -> bool:
		return bool(self.OPENAI_API_KEY and self.OPENAI_API_KEY.strip())


@lru_cache()
def get_llm_config() -> LlmConfig:
	"""Return cached LLM config."""
	return LlmConfig()
