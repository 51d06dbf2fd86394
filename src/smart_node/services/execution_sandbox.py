"""
Isolated execution of generated JavaScript.

Each run owns a fresh temporary directory holding exactly one file. The
directory is removed on every exit path handled by this process; it can only
be left behind when the parent is killed before its cleanup runs.
"""

from __future__ import annotations

import asyncio
import shutil
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

import structlog

from smart_node.core.errors import ExecutionError

logger = structlog.get_logger(__name__)

SANDBOX_PREFIX = "smart-node-"
ARTIFACT_NAME = "generated.mjs"


def render_artifact(generated_js: str, provenance_id: str) -> str:
    """Prefix the program with a one-line provenance comment."""

    # Line breaks in the id would end the comment early.
    safe_id = " ".join(provenance_id.splitlines())
    return f"// Generated from: {safe_id}\n{generated_js}\n"


@dataclass(frozen=True)
class ExecutionResult:
    exit_code: int
    sandbox_dir: Path


class ExecutionSandbox(ABC):
    """Runs a generated program to completion."""

    @abstractmethod
    async def execute(self, generated_js: str, provenance_id: str) -> ExecutionResult:
        """Run `generated_js`; raise ExecutionError unless it exits with status 0."""


def _remove_sandbox(path: Path) -> None:
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("Sandbox cleanup failed", sandbox_dir=str(path), error=str(exc))


class SubprocessSandbox(ExecutionSandbox):
    """Runs the program with a host JavaScript runtime in a child process.

    The child inherits stdin, stdout and stderr so interactive programs work
    unchanged.
    """

    def __init__(self, runtime: str = "node", temp_root: str | Path | None = None):
        self.runtime = runtime
        self.temp_root = Path(temp_root) if temp_root is not None else None

    async def execute(self, generated_js: str, provenance_id: str) -> ExecutionResult:
        try:
            if self.temp_root is not None:
                self.temp_root.mkdir(parents=True, exist_ok=True)
            sandbox_dir = Path(tempfile.mkdtemp(prefix=SANDBOX_PREFIX, dir=self.temp_root))
        except OSError as exc:
            raise ExecutionError(f"Failed to create sandbox directory: {exc}", cause=exc) from exc

        try:
            artifact = sandbox_dir / ARTIFACT_NAME
            try:
                artifact.write_text(render_artifact(generated_js, provenance_id), encoding="utf-8")
            except OSError as exc:
                raise ExecutionError(f"Failed to write {artifact}: {exc}", cause=exc) from exc

            logger.info("Spawning generated program", runtime=self.runtime, artifact=str(artifact))
            try:
                process = await asyncio.create_subprocess_exec(self.runtime, str(artifact))
            except OSError as exc:
                raise ExecutionError(
                    f"Failed to start {self.runtime!r}: {exc}", cause=exc
                ) from exc

            try:
                exit_code = await process.wait()
            except BaseException:
                if process.returncode is None:
                    process.kill()
                    await process.wait()
                raise

            logger.info("Generated program finished", exit_code=exit_code, source_id=provenance_id)
            if exit_code != 0:
                raise ExecutionError(f"Execution failed with exit code {exit_code}.", exit_code=exit_code)
            return ExecutionResult(exit_code=exit_code, sandbox_dir=sandbox_dir)
        finally:
            _remove_sandbox(sandbox_dir)
