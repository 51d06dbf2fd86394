"""
smnode - LLM-powered source-to-JavaScript runtime.

Usage examples:
  smnode program.pseudo
  smnode script.any --lang python --print-js
  cat source.any | smnode --lang pseudocode

Environment:
  OPENAI_API_KEY, OPENAI_BASE_URL, SMART_NODE_MODEL, SMART_NODE_CACHE_DIR,
  SMART_NODE_RUNTIME, LLM_REQUEST_TIMEOUT_SEC, LLM_MAX_RETRIES, LOG_LEVEL
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional

import structlog
from pydantic import ValidationError

from smart_node.configuration.llm_config import DEFAULT_BASE_URL, DEFAULT_MODEL, LlmConfig, get_llm_config
from smart_node.configuration.logging_config import configure_logging, resolve_log_level
from smart_node.configuration.runtime_config import RuntimeConfig, get_runtime_config
from smart_node.core.errors import ConfigurationError, ExecutionError, SmartNodeError
from smart_node.core.orchestrator import PipelineOptions, run_pipeline
from smart_node.core.source_unit import read_source_unit
from smart_node.persistence.cache_store import CacheStore
from smart_node.services.execution_sandbox import SubprocessSandbox
from smart_node.services.translation_service import TranslationService

logger = structlog.get_logger(__name__)

PROG = "smnode"

ENVIRONMENT_HELP = f"""\
environment:
  OPENAI_API_KEY           required
  OPENAI_BASE_URL          optional (default: {DEFAULT_BASE_URL})
  SMART_NODE_MODEL         optional (default: {DEFAULT_MODEL})
  SMART_NODE_CACHE_DIR     optional (default: ~/.smart-node-cache)
  SMART_NODE_RUNTIME       optional (default: node)
  LLM_REQUEST_TIMEOUT_SEC  optional (default: 45)
  LLM_MAX_RETRIES          optional (default: 0)
"""


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="LLM-powered source-to-JavaScript runtime",
        epilog=ENVIRONMENT_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("file", nargs="?", help="Source file. Reads stdin when omitted.")
    parser.add_argument(
        "-l", "--lang",
        dest="language_hint",
        help='Hint for source language (e.g. "python", "dsl", "pseudo")',
    )
    parser.add_argument("--print-js", action="store_true", help="Print generated JavaScript before executing")
    parser.add_argument("--no-cache", action="store_true", help="Disable translation cache")
    parser.add_argument("--model", help="Override the chat model for this run")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log pipeline progress to stderr")
    return parser.parse_args(argv)


def load_settings() -> tuple[RuntimeConfig, LlmConfig]:
    """Load both settings groups, reporting invalid values as ConfigurationError."""
    try:
        return get_runtime_config(), get_llm_config()
    except ValidationError as exc:
        fields = ", ".join(str(err["loc"][0]) for err in exc.errors() if err.get("loc"))
        raise ConfigurationError(f"Invalid configuration: {fields or exc}") from exc


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)

    try:
        runtime_config, llm_config = load_settings()
    except ConfigurationError as exc:
        print(f"{PROG}: error: {exc}", file=sys.stderr)
        return 1

    log_level = logging.INFO if args.verbose else resolve_log_level(runtime_config.LOG_LEVEL)
    configure_logging(log_level=log_level)

    try:
        unit = read_source_unit(args.file, language_hint=args.language_hint)
        options = PipelineOptions(
            use_cache=not args.no_cache,
            print_js=args.print_js,
            max_retries=llm_config.LLM_MAX_RETRIES,
            model=args.model,
        )
        outcome = asyncio.run(
            run_pipeline(
                unit,
                translator=TranslationService(timeout=llm_config.LLM_REQUEST_TIMEOUT_SEC),
                sandbox=SubprocessSandbox(runtime=runtime_config.SMART_NODE_RUNTIME),
                cache_store=CacheStore(runtime_config.cache_dir),
                config=llm_config,
                options=options,
            )
        )
    except KeyboardInterrupt:
        return 130
    except ExecutionError as exc:
        logger.error("Execution failed", error=str(exc), exit_code=exc.exit_code)
        print(f"{PROG}: error: {exc}", file=sys.stderr)
        if exc.exit_code is not None and 0 < exc.exit_code < 256:
            return exc.exit_code
        return 1
    except SmartNodeError as exc:
        logger.error("Pipeline failed", error=str(exc), error_type=type(exc).__name__)
        print(f"{PROG}: error: {exc}", file=sys.stderr)
        return 1

    logger.info("Pipeline finished", cache_hit=outcome.cache_hit, exit_code=outcome.exit_code)
    return outcome.exit_code


def run() -> int:
    """Console script entry point."""
    return main()


if __name__ == "__main__":
    sys.exit(main())
