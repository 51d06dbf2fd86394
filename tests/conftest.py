"""
Shared fixtures: every test starts from a clean environment, fresh settings
caches and unconfigured logging.
"""

import logging

import pytest
import structlog

from smart_node.configuration.llm_config import get_llm_config
from smart_node.configuration.runtime_config import get_runtime_config

SETTINGS_ENV_VARS = [
    "OPENAI_API_KEY",
    "OPENAI_BASE_URL",
    "SMART_NODE_MODEL",
    "LLM_REQUEST_TIMEOUT_SEC",
    "LLM_MAX_RETRIES",
    "SMART_NODE_CACHE_DIR",
    "SMART_NODE_RUNTIME",
    "LOG_LEVEL",
]


def _reset_logging():
    structlog.reset_defaults()
    if hasattr(structlog, "_configured"):
        del structlog._configured
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)


@pytest.fixture(autouse=True)
def _clean_settings(monkeypatch):
    for key in SETTINGS_ENV_VARS:
        monkeypatch.delenv(key, raising=False)
    get_llm_config.cache_clear()
    get_runtime_config.cache_clear()
    yield
    get_llm_config.cache_clear()
    get_runtime_config.cache_clear()
    _reset_logging()
