"""Source units and input acquisition.

A SourceUnit is the immutable request handed to the pipeline. Its `id` is the
resolved file path, or the literal `stdin`; it takes part in cache keying and
ends up as the provenance comment of the generated artifact.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

import structlog

from smart_node.core.errors import InputError

logger = structlog.get_logger(__name__)

STDIN_SOURCE_ID = "stdin"


@dataclass(frozen=True)
class SourceUnit:
    text: str
    language_hint: str | None
    id: str


def infer_language_hint(file_path: str | Path) -> str | None:
    """Return the lowercased file extension without its dot, if any."""

    suffix = Path(file_path).suffix
    if not suffix or suffix == ".":
        return None
    return suffix[1:].lower()


def _read_stdin(stdin: TextIO) -> str | None:
    isatty = getattr(stdin, "isatty", None)
    if isatty is not None and isatty():
        return None
    # The binary layer keeps line endings as piped.
    buffer = getattr(stdin, "buffer", None)
    if buffer is None:
        return stdin.read()
    try:
        return buffer.read().decode("utf-8")
    except UnicodeDecodeError as exc:
        raise InputError(f"Cannot decode stdin as UTF-8: {exc}") from exc


def read_source_unit(
    file_path: str | Path | None,
    language_hint: str | None = None,
    stdin: TextIO | None = None,
) -> SourceUnit:
    """Build a SourceUnit from a file path, or from piped stdin when no path is given.

    An explicit `language_hint` wins over the one inferred from the file
    extension. Stdin input never carries an inferred hint.
    """

    if file_path is not None:
        path = Path(file_path)
        try:
            text = path.read_bytes().decode("utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise InputError(f"Cannot read source file {str(path)!r}: {exc}") from exc

        resolved = str(path.resolve())
        hint = language_hint if language_hint is not None else infer_language_hint(path)
        logger.debug("Source file loaded", source_id=resolved, language_hint=hint, size=len(text))
        return SourceUnit(text=text, language_hint=hint, id=resolved)

    text = _read_stdin(stdin if stdin is not None else sys.stdin)
    if text is None or not text.strip():
        raise InputError("No input provided. Pass a file path or pipe input via stdin.")

    logger.debug("Source read from stdin", language_hint=language_hint, size=len(text))
    return SourceUnit(text=text, language_hint=language_hint, id=STDIN_SOURCE_ID)
