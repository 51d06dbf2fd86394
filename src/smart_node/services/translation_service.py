"""
LLM-backed translation of arbitrary source text into runnable JavaScript.

The service speaks the OpenAI-compatible chat completion protocol over httpx.
It performs exactly one request per translation; retry policy belongs to the
caller (see `smart_node.core.orchestrator`).
"""

from __future__ import annotations

import re
from typing import Any, Optional

import httpx
import structlog

from smart_node.configuration.llm_config import DEFAULT_BASE_URL, DEFAULT_MODEL, LlmConfig
from smart_node.core.errors import (
    ConfigurationError,
    EmptyTranslationError,
    TranslationError,
    TranslationTimeoutError,
)
from smart_node.core.source_unit import SourceUnit

logger = structlog.get_logger(__name__)

SYSTEM_MESSAGE = "You convert arbitrary source text into executable Node.js JavaScript. Output code only."

PROMPT_CONTRACT = (
    "You are a strict transpiler.",
    "Task: convert input source into runnable modern JavaScript (Node.js ESM).",
    "Return only JavaScript code and no explanation.",
    "Preserve behavior as closely as possible.",
    "If the source is ambiguous, choose a practical interpretation.",
    "Do not include markdown fences unless unavoidable.",
)

INPUT_START = "INPUT START"
INPUT_END = "INPUT END"

_JS_FENCE_RE = re.compile(r"```(?:javascript|js)\b[ \t]*\r?\n?(.*?)```", re.IGNORECASE | re.DOTALL)


def build_prompt(unit: SourceUnit) -> str:
    """Render the user prompt for a source unit."""

    lang_text = f"Language hint: {unit.language_hint}" if unit.language_hint else "Language hint: unknown"
    return "\n".join([
        *PROMPT_CONTRACT,
        f"Source id: {unit.id}",
        lang_text,
        "",
        INPUT_START,
        unit.text,
        INPUT_END,
    ])


def extract_code(raw_text: str) -> str:
    """Return the first javascript/js fenced block, or the whole text, trimmed."""

    match = _JS_FENCE_RE.search(raw_text)
    if match:
        return match.group(1).strip()
    return raw_text.strip()


def _completion_content(payload: Any) -> str | None:
    try:
        content = payload["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return None
    return content if isinstance(content, str) else None


class TranslationService:
    """Translate source units with an OpenAI-compatible completion endpoint.

    An `httpx.AsyncClient` may be injected; otherwise one is created per request
    with the configured timeout.
    """

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None, timeout: float = 45.0):
        self._client = http_client
        self.timeout = timeout

    async def request_completion(self, model: str, credential: str, base_url: str, prompt: str) -> str:
        """
        Send one chat completion request and return the raw message content.

        Raises:
            TranslationTimeoutError: If the request exceeds the timeout
            TranslationError: On transport failure, non-2xx status or an empty payload
        """
        url = f"{base_url.rstrip('/')}/chat/completions"
        body = {
            "model": model,
            "temperature": 0,
            "messages": [
                {"role": "system", "content": SYSTEM_MESSAGE},
                {"role": "user", "content": prompt},
            ],
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {credential}",
        }

        logger.info("Requesting translation", url=url, model=model, prompt_chars=len(prompt))

        try:
            if self._client is not None:
                response = await self._client.post(url, json=body, headers=headers, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout)) as client:
                    response = await client.post(url, json=body, headers=headers)
        except httpx.TimeoutException as exc:
            raise TranslationTimeoutError(
                f"LLM request timed out after {self.timeout:g}s"
            ) from exc
        except httpx.HTTPError as exc:
            raise TranslationError(f"LLM request failed: {exc}") from exc

        logger.info("Translation request completed", url=url, status_code=response.status_code)

        if not response.is_success:
            raise TranslationError(
                f"LLM request failed ({response.status_code}): {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise TranslationError(
                "LLM returned a non-JSON response.",
                status_code=response.status_code,
                body=response.text,
            ) from exc

        content = _completion_content(payload)
        if content is None or not content.strip():
            raise TranslationError(
                "LLM returned empty response.",
                status_code=response.status_code,
                body=response.text,
            )
        return content

    async def translate(self, unit: SourceUnit, config: LlmConfig, model: str | None = None) -> str:
        """Translate `unit` into JavaScript.

        `model` overrides the configured model for this call only.
        """
        if not config.has_credential:
            raise ConfigurationError("OPENAI_API_KEY is required.")

        base_url = config.OPENAI_BASE_URL or DEFAULT_BASE_URL
        model_name = model or config.SMART_NODE_MODEL or DEFAULT_MODEL

        prompt = build_prompt(unit)
        raw = await self.request_completion(model_name, config.OPENAI_API_KEY, base_url, prompt)
        generated_js = extract_code(raw)

        if not generated_js:
            raise EmptyTranslationError("Translation produced empty JavaScript.")

        logger.info("Translation completed", source_id=unit.id, model=model_name, js_chars=len(generated_js))
        return generated_js
