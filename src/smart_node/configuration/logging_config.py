import logging
import sys
import structlog

SENSITIVE_FIELDS = ['api_key', 'authorization', 'credential', 'password', 'secret', 'token']

def _is_sensitive(key):
    name = str(key).lower()
    return any(field in name for field in SENSITIVE_FIELDS)

def _redact(value):
    if isinstance(value, dict):
        return {k: '[FILTERED]' if _is_sensitive(k) else _redact(v) for k, v in value.items()}
    return value

def filter_sensitive_data(logger, log_method, event_dict):
    """
    A structlog processor that masks any field whose name contains a sensitive
    word (so `OPENAI_API_KEY` and `Authorization` are caught), including keys of
    nested dicts such as request headers.
    """
    for key in list(event_dict):
        if key == 'event':
            continue
        if _is_sensitive(key):
            event_dict[key] = '[FILTERED]'
        else:
            event_dict[key] = _redact(event_dict[key])
    return event_dict

def resolve_log_level(level_name):
    """Map a level name such as "info" to its logging constant (default WARNING)."""
    level = logging.getLevelName(str(level_name).upper())
    return level if isinstance(level, int) else logging.WARNING

def configure_logging(log_level=logging.WARNING, stream=None, force_reconfigure=False):
    """Configure structlog-based JSON logging.

    Logs default to stderr: stdout is reserved for the executed program.
    """
    if stream is None:
        stream = sys.stderr

    # Skip if already configured (unless force_reconfigure is True)
    if not force_reconfigure and hasattr(structlog, '_configured'):
        return

    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)

    logging.basicConfig(
        format="%(message)s",
        stream=stream,
        level=log_level,
        force=True
    )
    logging.root.setLevel(log_level)

    shared_processors = [
        structlog.stdlib.filter_by_level,
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        filter_sensitive_data,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]

    structlog.configure(
        processors=shared_processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    structlog._configured = True
