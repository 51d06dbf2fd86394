"""Error taxonomy for the translate, cache and execute pipeline."""

from __future__ import annotations


class SmartNodeError(Exception):
    """Base class for every failure surfaced to the command line."""


class ConfigurationError(SmartNodeError):
    """Raised when required configuration (the API credential) is missing."""


class InputError(SmartNodeError):
    """Raised when no usable source text can be acquired."""


class TranslationError(SmartNodeError):
    """Raised when the completion endpoint fails or returns an unusable payload.

    `status_code` and `body` are kept verbatim for diagnostics; both are None
    when the failure happened before a response was received.
    """

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class TranslationTimeoutError(TranslationError):
    """Raised when the completion request exceeds the configured timeout."""


class EmptyTranslationError(TranslationError):
    """Raised when extraction leaves no JavaScript to run."""


class ExecutionError(SmartNodeError):
    """Raised when the generated program exits non-zero or cannot be spawned."""

    def __init__(self, message: str, exit_code: int | None = None, cause: BaseException | None = None):
        super().__init__(message)
        self.exit_code = exit_code
        self.cause = cause
