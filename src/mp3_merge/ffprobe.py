"""Duration probing via ffprobe subprocess."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

from loguru import logger

from .errors import ProbeError
from .tools import SubprocessRunner

if TYPE_CHECKING:
    from .config import MergeConfig
    from .models import InputFile
    from .tools import ToolRunner

log = logger.bind(stage="probe")


def probe(
    file: Path,
    runner: ToolRunner | None = None,
    ffprobe_bin: str = "ffprobe",
) -> Decimal:
    """Get duration in seconds, parsed exactly from ffprobe's decimal output.

    Raises ProbeError if ffprobe can't run, exits non-zero, or prints
    anything other than a finite non-negative number.
    """
    runner = runner or SubprocessRunner()
    result = runner.run([
        ffprobe_bin, "-v", "error",
        "-show_entries", "format=duration",
        "-of", "default=noprint_wrappers=1:nokey=1",
        str(file),
    ])  # fmt: skip
    if not result.ok:
        raise ProbeError(
            file,
            f"ffprobe exited with code {result.returncode}: {result.diagnostic()}",
            returncode=result.returncode,
            stderr=result.stderr,
        )

    output = result.stdout.strip()
    if not output:
        raise ProbeError(file, "ffprobe returned empty duration", result.returncode)
    try:
        duration = Decimal(output)
    except InvalidOperation:
        raise ProbeError(
            file, f"unparseable duration {output!r}", result.returncode
        ) from None
    if not duration.is_finite() or duration < 0:
        raise ProbeError(file, f"invalid duration {output!r}", result.returncode)

    log.debug(f"{file.name}: {duration}s")
    return duration


def probe_all(
    files: Iterable[InputFile],
    config: MergeConfig,
    runner: ToolRunner | None = None,
) -> list[Decimal]:
    """Probe each file in order. The first failure aborts the whole run."""
    return [probe(f.path, runner, config.ffprobe_bin) for f in files]


def duration_to_timestamp(seconds: float | Decimal) -> str:
    """Convert seconds to HH:MM:SS.mmm."""
    total_ms = int(Decimal(str(seconds)) * 1000)
    h = total_ms // 3_600_000
    m = (total_ms % 3_600_000) // 60_000
    s = (total_ms % 60_000) // 1000
    ms = total_ms % 1000
    return f"{h:02d}:{m:02d}:{s:02d}.{ms:03d}"
