"""Merge configuration via pydantic-settings (.env + env vars)."""

import sys
from pathlib import Path
from typing import Literal

from loguru import logger
from pydantic_settings import BaseSettings, SettingsConfigDict


class MergeConfig(BaseSettings):
    """All merge configuration with layered resolution:
    .env file < environment variables < constructor kwargs.

    Immutable once built; passed explicitly into every pipeline component.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="MP3_MERGE_",
        extra="ignore",
        frozen=True,
    )

    # -- External tools --
    ffmpeg_bin: str = "ffmpeg"
    ffprobe_bin: str = "ffprobe"

    # -- Directories --
    work_dir: Path | None = None  # None = system temp dir
    log_dir: Path | None = None  # None = no log file

    # -- Encoding --
    reencode: bool = False
    bitrate: int = 128
    id3v2_version: Literal[3, 4] = 4

    # -- Behavior --
    missing_cover: Literal["fail", "skip"] = "fail"
    dry_run: bool = False
    quiet: bool = False
    verbose: bool = False
    log_level: str = "WARNING"

    def setup_logging(self) -> None:
        """Configure loguru for the merge pipeline."""
        logger.remove()  # Remove default stderr handler

        log_format = (
            "{time:YYYY-MM-DDTHH:mm:ssZ} | {level:<8} | "
            "{extra[stage]:<10} | {message}"
        )

        def _default_extra(record):
            record["extra"].setdefault("stage", "")
            return True

        logger.add(
            sys.stderr,
            format=log_format,
            level="DEBUG" if self.verbose else self.log_level.upper(),
            filter=_default_extra,
        )

        if self.log_dir is None:
            return

        self.log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(self.log_dir / "merge.log"),
            format=log_format,
            level="DEBUG",
            rotation="10 MB",
            retention="30 days",
            filter=_default_extra,
        )
