"""Encode stage -- concatenate the inputs into one MP3 stream with ffmpeg.

Writes files.txt (concat demuxer list, absolute paths) into the work
directory and runs ffmpeg into the given destination. Streams are copied
when every input is already MP3, otherwise re-encoded with libmp3lame.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Sequence

from loguru import logger

from ..errors import EncodeError
from ..models import COPYABLE_EXTENSIONS

if TYPE_CHECKING:
    from ..config import MergeConfig
    from ..models import InputFile
    from ..tools import ToolRunner

log = logger.bind(stage="encode")


def write_concat_list(inputs: Sequence[InputFile], dest: Path) -> Path:
    """Write an ffmpeg concat demuxer file.

    Paths are absolute, so ffmpeg doesn't resolve them relative to the
    list file's directory. Single quotes are escaped as '\\''.
    """
    lines = []
    for f in inputs:
        escaped_path = str(f.path).replace("'", "'\\''")
        lines.append(f"file '{escaped_path}'")
    dest.write_text("\n".join(lines) + "\n", encoding="utf-8")
    log.debug(f"Wrote {len(lines)} entries to {dest.name}")
    return dest


def needs_reencode(inputs: Sequence[InputFile], config: MergeConfig) -> bool:
    if config.reencode:
        return True
    return any(f.path.suffix.lower() not in COPYABLE_EXTENSIONS for f in inputs)


def build_command(
    list_file: Path,
    dest: Path,
    config: MergeConfig,
    reencode: bool,
) -> list[str]:
    cmd = [
        config.ffmpeg_bin, "-hide_banner", "-loglevel", "error", "-y",
        "-f", "concat", "-safe", "0", "-i", str(list_file),
        # Audio only: embedded cover art streams in the inputs are dropped
        "-map", "0:a", "-map_metadata", "-1",
    ]  # fmt: skip
    if reencode:
        cmd.extend(["-c:a", "libmp3lame", "-b:a", f"{config.bitrate}k"])
    else:
        cmd.extend(["-c:a", "copy"])
    cmd.extend(["-f", "mp3", str(dest)])
    return cmd


def run(
    inputs: Sequence[InputFile],
    work_dir: Path,
    dest: Path,
    config: MergeConfig,
    runner: ToolRunner,
) -> Path:
    """Merge the inputs, in order, into dest.

    Raises EncodeError with ffmpeg's exit status and stderr on failure.
    """
    list_file = write_concat_list(inputs, work_dir / "files.txt")
    reencode = needs_reencode(inputs, config)
    cmd = build_command(list_file, dest, config, reencode)

    mode = f"libmp3lame {config.bitrate}k" if reencode else "stream copy"
    log.info(f"Merging {len(inputs)} files ({mode})")
    result = runner.run(cmd)
    if not result.ok:
        log.error(f"ffmpeg failed: {result.diagnostic()}")
        raise EncodeError("ffmpeg", result.returncode, result.diagnostic())
    return dest
