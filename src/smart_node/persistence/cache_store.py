"""Content-addressed translation cache on the local filesystem.

One JSON record per cache key lives at `<root>/<key>.json`. The cache is an
optimization only: every read failure is a miss, and a failed write is logged
and reported, never raised.
"""

from __future__ import annotations

import hashlib
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = structlog.get_logger(__name__)

_KEY_NAMESPACE = b"smart-node/translation-cache/v1\n"


def _frame(label: str, value: str | None) -> bytes:
    """Frame one labeled field as `label:<byte length>:<bytes>`.

    A missing value is framed as `label!`, which no present value can produce.
    """

    if value is None:
        return f"{label}!".encode("ascii")
    data = value.encode("utf-8", errors="surrogatepass")
    return f"{label}:{len(data)}:".encode("ascii") + data


def compute_key(text: str, language_hint: str | None, source_id: str) -> str:
    """Return the sha256 hex digest identifying a translation request."""

    h = hashlib.sha256(_KEY_NAMESPACE)
    h.update(_frame("text", text))
    h.update(_frame("lang", language_hint))
    h.update(_frame("source", source_id))
    return h.hexdigest()


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class CacheEntry(BaseModel):
    """A persisted translation. Serialized with camelCase keys."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    created_at: str = Field(default_factory=_utc_now_iso, alias="createdAt")
    source_id: str = Field(alias="sourceId")
    language_hint: str | None = Field(default=None, alias="languageHint")
    generated_js: str = Field(alias="generatedJs")

    @field_validator("generated_js")
    @classmethod
    def validate_generated_js(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("generatedJs must not be empty")
        return v

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


class CacheStore:
    """Filesystem cache rooted at an explicit directory."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def path_for(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def get(self, key: str) -> CacheEntry | None:
        """Return the entry stored under `key`, or None on any kind of miss."""

        path = self.path_for(key)
        try:
            payload = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("Cache miss", key=key, reason="not_found")
            return None
        except (OSError, UnicodeDecodeError) as exc:
            logger.debug("Cache miss", key=key, reason="unreadable", error=str(exc))
            return None

        try:
            entry = CacheEntry.model_validate_json(payload)
        except (ValidationError, ValueError) as exc:
            logger.debug("Cache miss", key=key, reason="malformed", error=str(exc))
            return None

        logger.debug("Cache hit", key=key, source_id=entry.source_id)
        return entry

    def put(self, key: str, entry: CacheEntry) -> bool:
        """Atomically write `entry` under `key`; return False if it could not be stored."""

        tmp_name: str | None = None
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=f".{key}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(entry.to_json())
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self.path_for(key))
            tmp_name = None
        except OSError as exc:
            logger.warning("Cache write failed", key=key, root=str(self.root), error=str(exc))
            return False
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except FileNotFoundError:
                    pass
                except OSError as exc:
                    logger.warning("Temporary cache file left behind", path=tmp_name, error=str(exc))

        logger.debug("Cache entry written", key=key, source_id=entry.source_id)
        return True
