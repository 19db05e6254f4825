"""External process capability used by every ffmpeg/ffprobe call.

Pipeline components never call subprocess directly; they receive a
ToolRunner, so tests can substitute fakes that return canned ToolResults.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from typing import Protocol, Sequence

from loguru import logger

log = logger.bind(stage="tools")

# Shell convention for "command not found"
NOT_FOUND_EXIT = 127


@dataclass(frozen=True)
class ToolResult:
    """Outcome of one external process run."""

    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def diagnostic(self, limit: int = 500) -> str:
        """Tail of stderr, for error messages."""
        return self.stderr.strip()[-limit:]


class ToolRunner(Protocol):
    def run(self, args: Sequence[str]) -> ToolResult: ...


class SubprocessRunner:
    """Run tools with subprocess, blocking until they exit (no timeout)."""

    def run(self, args: Sequence[str]) -> ToolResult:
        cmd = [str(a) for a in args]
        log.debug(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except FileNotFoundError:
            log.error(f"{cmd[0]} not found")
            return ToolResult(NOT_FOUND_EXIT, stderr=f"{cmd[0]}: command not found")
        except OSError as e:
            log.error(f"Failed to start {cmd[0]}: {e}")
            return ToolResult(NOT_FOUND_EXIT, stderr=f"{cmd[0]}: {e}")

        if result.returncode != 0:
            log.debug(f"{cmd[0]} exited {result.returncode}: {result.stderr[-500:]}")
        return ToolResult(result.returncode, result.stdout, result.stderr)
