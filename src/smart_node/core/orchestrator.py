"""Sequential translate, cache and execute pipeline for one source unit."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Optional, TextIO

import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from smart_node.configuration.llm_config import LlmConfig
from smart_node.core.errors import EmptyTranslationError, TranslationError, TranslationTimeoutError
from smart_node.core.source_unit import SourceUnit
from smart_node.persistence.cache_store import CacheEntry, CacheStore, compute_key
from smart_node.services.execution_sandbox import ExecutionSandbox
from smart_node.services.translation_service import TranslationService

logger = structlog.get_logger(__name__)

PRINT_JS_HEADER = "/* ===== generated JavaScript ===== */"
PRINT_JS_FOOTER = "/* ===== end generated JavaScript ===== */"


@dataclass(frozen=True)
class PipelineOptions:
    use_cache: bool = True
    print_js: bool = False
    max_retries: int = 0
    model: Optional[str] = None


@dataclass(frozen=True)
class PipelineOutcome:
    generated_js: str
    cache_hit: bool
    exit_code: int


def is_transient_translation_error(exc: BaseException) -> bool:
    """Timeouts, transport failures, 429 and 5xx are worth another attempt."""

    if isinstance(exc, EmptyTranslationError) or not isinstance(exc, TranslationError):
        return False
    if isinstance(exc, TranslationTimeoutError):
        return True
    if exc.status_code is None:
        return exc.body is None
    return exc.status_code == 429 or exc.status_code >= 500


async def translate_with_retry(
    translator: TranslationService,
    unit: SourceUnit,
    config: LlmConfig,
    *,
    max_retries: int = 0,
    model: Optional[str] = None,
    wait=None,
) -> str:
    """Run `translator.translate`, retrying transient failures up to `max_retries` times.

    `wait` replaces the default exponential backoff between attempts.
    """

    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(max_retries + 1),
        wait=wait if wait is not None else wait_exponential(multiplier=1, max=30, exp_base=2),
        retry=retry_if_exception(is_transient_translation_error),
        reraise=True,
    ):
        with attempt:
            if attempt.retry_state.attempt_number > 1:
                logger.warning(
                    "Retrying translation",
                    source_id=unit.id,
                    attempt=attempt.retry_state.attempt_number,
                )
            return await translator.translate(unit, config, model=model)
    raise AssertionError("unreachable")


async def run_pipeline(
    unit: SourceUnit,
    *,
    translator: TranslationService,
    sandbox: ExecutionSandbox,
    cache_store: Optional[CacheStore],
    config: LlmConfig,
    options: PipelineOptions = PipelineOptions(),
    out: Optional[TextIO] = None,
) -> PipelineOutcome:
    """Resolve JavaScript for `unit` (cache first, then LLM) and execute it.

    Raises the typed errors of the translation service and the sandbox
    unchanged. Passing `cache_store=None` or `use_cache=False` bypasses the
    cache for both reads and writes.
    """
    use_cache = options.use_cache and cache_store is not None
    key = compute_key(unit.text, unit.language_hint, unit.id) if use_cache else None

    generated_js: Optional[str] = None
    if use_cache:
        entry = cache_store.get(key)
        if entry is not None:
            generated_js = entry.generated_js

    cache_hit = generated_js is not None
    logger.info("Cache lookup", source_id=unit.id, cache_enabled=use_cache, cache_hit=cache_hit)

    if generated_js is None:
        generated_js = await translate_with_retry(
            translator,
            unit,
            config,
            max_retries=options.max_retries,
            model=options.model,
        )
        if use_cache:
            cache_store.put(
                key,
                CacheEntry(
                    source_id=unit.id,
                    language_hint=unit.language_hint,
                    generated_js=generated_js,
                ),
            )

    if options.print_js:
        stream = out if out is not None else sys.stdout
        stream.write(f"{PRINT_JS_HEADER}\n{generated_js}\n{PRINT_JS_FOOTER}\n")
        stream.flush()

    result = await sandbox.execute(generated_js, unit.id)
    return PipelineOutcome(generated_js=generated_js, cache_hit=cache_hit, exit_code=result.exit_code)
