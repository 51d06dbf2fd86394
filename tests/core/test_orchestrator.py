"""
Tests for the translate, cache and execute pipeline.
"""
import io
import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from tenacity import wait_none

from smart_node.configuration.llm_config import LlmConfig
from smart_node.core.errors import (
    ConfigurationError,
    EmptyTranslationError,
    ExecutionError,
    TranslationError,
    TranslationTimeoutError,
)
from smart_node.core.orchestrator import (
    PRINT_JS_FOOTER,
    PRINT_JS_HEADER,
    PipelineOptions,
    is_transient_translation_error,
    run_pipeline,
    translate_with_retry,
)
from smart_node.core.source_unit import SourceUnit
from smart_node.persistence.cache_store import CacheStore, compute_key
from smart_node.services.execution_sandbox import ExecutionResult, ExecutionSandbox
from smart_node.services.translation_service import TranslationService

UNIT = SourceUnit(text="print('hi')", language_hint="pseudocode", id="/tmp/a.pseudo")
GENERATED = "console.log('hi');"


@pytest.fixture
def config():
    return LlmConfig(OPENAI_API_KEY="sk-test")


@pytest.fixture
def translator():
    service = MagicMock(spec=TranslationService)
    service.translate = AsyncMock(return_value=GENERATED)
    return service


@pytest.fixture
def sandbox(tmp_path):
    runner = MagicMock(spec=ExecutionSandbox)
    runner.execute = AsyncMock(return_value=ExecutionResult(exit_code=0, sandbox_dir=tmp_path / "gone"))
    return runner


@pytest.fixture
def store(tmp_path):
    return CacheStore(tmp_path / "cache")


class TestRunPipeline:

    @pytest.mark.asyncio
    async def test_second_identical_run_hits_cache(self, translator, sandbox, store, config):
        first = await run_pipeline(UNIT, translator=translator, sandbox=sandbox, cache_store=store, config=config)

        assert first.cache_hit is False
        assert first.generated_js == GENERATED
        assert translator.translate.await_count == 1
        record = json.loads(store.path_for(compute_key(UNIT.text, UNIT.language_hint, UNIT.id)).read_text())
        assert record["generatedJs"] == GENERATED
        assert record["sourceId"] == "/tmp/a.pseudo"
        assert record["languageHint"] == "pseudocode"

        second = await run_pipeline(
            SourceUnit(text="print('hi')", language_hint="pseudocode", id="/tmp/a.pseudo"),
            translator=translator,
            sandbox=sandbox,
            cache_store=store,
            config=config,
        )

        assert second.cache_hit is True
        assert second.generated_js == GENERATED
        assert translator.translate.await_count == 1
        assert sandbox.execute.await_count == 2
        sandbox.execute.assert_awaited_with(GENERATED, "/tmp/a.pseudo")

    @pytest.mark.asyncio
    async def test_changed_unit_misses_cache(self, translator, sandbox, store, config):
        await run_pipeline(UNIT, translator=translator, sandbox=sandbox, cache_store=store, config=config)
        other = SourceUnit(text=UNIT.text, language_hint=None, id=UNIT.id)

        outcome = await run_pipeline(other, translator=translator, sandbox=sandbox, cache_store=store, config=config)

        assert outcome.cache_hit is False
        assert translator.translate.await_count == 2

    @pytest.mark.asyncio
    async def test_disabled_cache_neither_reads_nor_writes(self, translator, sandbox, store, config):
        options = PipelineOptions(use_cache=False)

        for _ in range(2):
            outcome = await run_pipeline(
                UNIT, translator=translator, sandbox=sandbox, cache_store=store, config=config, options=options
            )
            assert outcome.cache_hit is False

        assert translator.translate.await_count == 2
        assert not store.root.exists()

    @pytest.mark.asyncio
    async def test_runs_without_cache_store(self, translator, sandbox, config):
        outcome = await run_pipeline(UNIT, translator=translator, sandbox=sandbox, cache_store=None, config=config)

        assert outcome.exit_code == 0
        assert outcome.cache_hit is False

    @pytest.mark.asyncio
    async def test_print_js_frames_generated_code(self, translator, sandbox, store, config):
        out = io.StringIO()

        await run_pipeline(
            UNIT,
            translator=translator,
            sandbox=sandbox,
            cache_store=store,
            config=config,
            options=PipelineOptions(print_js=True),
            out=out,
        )

        assert out.getvalue() == f"{PRINT_JS_HEADER}\n{GENERATED}\n{PRINT_JS_FOOTER}\n"

    @pytest.mark.asyncio
    async def test_translation_failure_skips_cache_and_execution(self, translator, sandbox, store, config):
        translator.translate.side_effect = TranslationError("LLM request failed (500): boom", status_code=500, body="boom")

        with pytest.raises(TranslationError):
            await run_pipeline(UNIT, translator=translator, sandbox=sandbox, cache_store=store, config=config)

        sandbox.execute.assert_not_called()
        assert store.get(compute_key(UNIT.text, UNIT.language_hint, UNIT.id)) is None

    @pytest.mark.asyncio
    async def test_execution_failure_keeps_cached_translation(self, translator, sandbox, store, config):
        sandbox.execute.side_effect = ExecutionError("Execution failed with exit code 1.", exit_code=1)

        with pytest.raises(ExecutionError):
            await run_pipeline(UNIT, translator=translator, sandbox=sandbox, cache_store=store, config=config)

        entry = store.get(compute_key(UNIT.text, UNIT.language_hint, UNIT.id))
        assert entry is not None and entry.generated_js == GENERATED

    @pytest.mark.asyncio
    async def test_model_override_is_forwarded(self, translator, sandbox, store, config):
        await run_pipeline(
            UNIT,
            translator=translator,
            sandbox=sandbox,
            cache_store=store,
            config=config,
            options=PipelineOptions(model="gpt-oss:20b"),
        )

        translator.translate.assert_awaited_once_with(UNIT, config, model="gpt-oss:20b")


class TestRetryPolicy:

    @pytest.mark.parametrize(
        "exc, expected",
        [
            (TranslationTimeoutError("timed out"), True),
            (TranslationError("LLM request failed: refused"), True),
            (TranslationError("rate limited", status_code=429, body="slow down"), True),
            (TranslationError("bad gateway", status_code=502, body="x"), True),
            (TranslationError("unauthorized", status_code=401, body="x"), False),
            (TranslationError("LLM returned empty response.", status_code=200, body="{}"), False),
            (EmptyTranslationError("Translation produced empty JavaScript."), False),
            (ConfigurationError("OPENAI_API_KEY is required."), False),
            (ValueError("unrelated"), False),
        ],
    )
    def test_transient_classification(self, exc, expected):
        assert is_transient_translation_error(exc) is expected

    @pytest.mark.asyncio
    async def test_retries_transient_failure(self, translator, config):
        translator.translate.side_effect = [TranslationError("down", status_code=503, body="x"), GENERATED]

        js = await translate_with_retry(translator, UNIT, config, max_retries=1, wait=wait_none())

        assert js == GENERATED
        assert translator.translate.await_count == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, translator, config):
        translator.translate.side_effect = TranslationTimeoutError("timed out")

        with pytest.raises(TranslationTimeoutError):
            await translate_with_retry(translator, UNIT, config, max_retries=2, wait=wait_none())

        assert translator.translate.await_count == 3

    @pytest.mark.asyncio
    async def test_no_retry_by_default(self, translator, config):
        translator.translate.side_effect = TranslationTimeoutError("timed out")

        with pytest.raises(TranslationTimeoutError):
            await translate_with_retry(translator, UNIT, config)

        assert translator.translate.await_count == 1

    @pytest.mark.asyncio
    async def test_configuration_error_is_never_retried(self, translator, config):
        translator.translate.side_effect = ConfigurationError("OPENAI_API_KEY is required.")

        with pytest.raises(ConfigurationError):
            await translate_with_retry(translator, UNIT, config, max_retries=3, wait=wait_none())

        assert translator.translate.await_count == 1
