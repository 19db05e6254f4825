"""Tag stage -- embed tags, chapters and cover art into the merged stream.

Runs ffmpeg with the merged MP3 as input 0, the FFMETADATA1 file as input 1
(-map_metadata 1, -map_chapters 1) and the optional cover as input 2
(attached_pic). Audio is copied, never re-encoded. Output is ID3v2.4 by
default.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from ..errors import TagEmbedError

if TYPE_CHECKING:
    from ..config import MergeConfig
    from ..ffmetadata import FFMetadata
    from ..tools import ToolRunner

log = logger.bind(stage="tag")


def build_command(
    source: Path,
    metadata_file: Path,
    dest: Path,
    config: MergeConfig,
    cover_path: Path | None = None,
) -> list[str]:
    cmd = [
        config.ffmpeg_bin, "-hide_banner", "-loglevel", "error", "-y",
        "-i", str(source),
        "-i", str(metadata_file),
    ]  # fmt: skip

    if cover_path is not None:
        cmd.extend(["-i", str(cover_path)])
        cmd.extend(["-map", "0:a", "-map", "2:v"])
        cmd.extend(["-c:v", "copy", "-disposition:v:0", "attached_pic"])
        cmd.extend(["-metadata:s:v", "title=Album cover"])
        cmd.extend(["-metadata:s:v", "comment=Cover (front)"])
    else:
        cmd.extend(["-map", "0:a"])

    cmd.extend(["-map_metadata", "1", "-map_chapters", "1", "-c:a", "copy"])
    cmd.extend(["-id3v2_version", str(config.id3v2_version)])
    # Force the muxer -- dest may carry a temporary suffix
    cmd.extend(["-f", "mp3", str(dest)])
    return cmd


def run(
    source: Path,
    metadata: FFMetadata,
    work_dir: Path,
    dest: Path,
    config: MergeConfig,
    runner: ToolRunner,
    cover_path: Path | None = None,
) -> Path:
    """Write the tagged copy of source to dest.

    cover_path is the staged cover image (not the user's original path).
    Raises TagEmbedError with ffmpeg's exit status and stderr on failure.
    """
    metadata_file = work_dir / "metadata.txt"
    metadata_file.write_text(metadata.render(), encoding="utf-8")
    log.debug(
        f"Wrote {len(metadata.tags)} tags, {len(metadata.chapters)} chapters "
        f"to {metadata_file.name}"
    )

    cmd = build_command(source, metadata_file, dest, config, cover_path)
    log.info(f"Tagging {dest.name}" + (" +cover" if cover_path else ""))
    result = runner.run(cmd)
    if not result.ok:
        log.error(f"ffmpeg failed tagging: {result.diagnostic()}")
        raise TagEmbedError("ffmpeg", result.returncode, result.diagnostic())
    return dest
