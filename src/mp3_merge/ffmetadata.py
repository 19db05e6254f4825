"""Metadata composition -- the FFMETADATA1 description ffmpeg applies as tags.

Global tags are emitted only for fields the caller supplied. Chapters are
written with TIMEBASE=1/1000, so START/END are milliseconds. ffmpeg's mp3
muxer turns the chapter table into ID3v2 CHAP/CTOC frames.

FFMETADATA1 escapes '=', ';', '#', '\\' with a backslash and treats a newline
as the end of a value, so values with line breaks or other control
characters are rejected rather than written as a corrupt tag block.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from .errors import MetadataEncodingError

if TYPE_CHECKING:
    from .models import MergeRequest

log = logger.bind(stage="ffmetadata")

HEADER = ";FFMETADATA1"

_SPECIAL_CHARS = re.compile(r"([=;#\\])")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")

# ID3 timestamp forms accepted for the release date
_DATE_FORMATS = ("%Y-%m-%d", "%Y-%m", "%Y")

# ID3v2.3 has no TDRL; the date is split into TYER (YYYY) and TDAT (DDMM)
_V23_YEAR_KEY = "TYER"
_V23_DAY_KEY = "TDAT"

# (MergeMetadata attribute, FFMETADATA key). 4-char T-keys are written by
# ffmpeg as that ID3 frame verbatim.
_TAG_KEYS = (
    ("title", "title"),
    ("subtitle", "TIT3"),
    ("album", "album"),
    ("album_artist", "album_artist"),
    ("artists", "artist"),
    ("genres", "genre"),
    ("comments", "comment"),
    ("date_released", "TDRL"),
)

LIST_SEPARATOR = ";"


def _escape(value: str) -> str:
    return _SPECIAL_CHARS.sub(r"\\\1", value)


def escape_value(field: str, value: str) -> str:
    """Escape a value for FFMETADATA1, rejecting control characters."""
    if _CONTROL_CHARS.search(value):
        raise MetadataEncodingError(
            field, value, "line breaks and control characters are not allowed"
        )
    return _escape(value)


def validate_date(value: str) -> str:
    """Check a release date and return it as a zero-padded ID3 timestamp.

    Accepts YYYY, YYYY-MM or YYYY-MM-DD; "2020-1-5" becomes "2020-01-05".
    """
    for fmt in _DATE_FORMATS:
        try:
            parsed = datetime.strptime(value, fmt)
        except ValueError:
            continue
        parts = [f"{parsed.year:04d}", f"{parsed.month:02d}", f"{parsed.day:02d}"]
        return "-".join(parts[: fmt.count("-") + 1])
    raise MetadataEncodingError(
        "date_released", value, "expected YYYY, YYYY-MM or YYYY-MM-DD"
    )


def _v23_date_tags(date: str) -> list[tuple[str, str]]:
    """Split a normalized timestamp into ID3v2.3 TYER/TDAT frames."""
    year, _, rest = date.partition("-")
    tags = [(_V23_YEAR_KEY, year)]
    month, _, day = rest.partition("-")
    if day:
        tags.append((_V23_DAY_KEY, f"{day}{month}"))
    return tags


@dataclass(frozen=True)
class ChapterEntry:
    start_ms: int
    end_ms: int
    title: str


@dataclass(frozen=True)
class FFMetadata:
    """Composed tag description: ordered (key, raw value) pairs + chapters."""

    tags: tuple[tuple[str, str], ...]
    chapters: tuple[ChapterEntry, ...]
    cover: Path | None = None

    @property
    def keys(self) -> list[str]:
        return [key for key, _ in self.tags]

    def render(self) -> str:
        """Serialize to FFMETADATA1 text (values already validated)."""
        lines = [HEADER]
        for key, value in self.tags:
            lines.append(f"{key}={_escape(value)}")
        lines.append("")
        for ch in self.chapters:
            lines.extend([
                "[CHAPTER]",
                "TIMEBASE=1/1000",
                f"START={ch.start_ms}",
                f"END={ch.end_ms}",
                f"title={_escape(ch.title)}",
                "",
            ])
        return "\n".join(lines)


def compose(request: MergeRequest, id3v2_version: int = 4) -> FFMetadata:
    """Build the tag description for a request.

    The release date is written as TDRL for ID3v2.4 and as TYER/TDAT for
    ID3v2.3. Raises MetadataEncodingError for values that can't be written
    safely.
    """
    meta = request.metadata
    tags: list[tuple[str, str]] = []

    for attr, key in _TAG_KEYS:
        value = getattr(meta, attr)
        if value is None or value == ():
            continue
        if isinstance(value, tuple):
            for item in value:
                escape_value(attr, item)
            value = LIST_SEPARATOR.join(value)
        else:
            escape_value(attr, value)
        if attr == "date_released":
            value = validate_date(value)
            if id3v2_version == 3:
                tags.extend(_v23_date_tags(value))
                continue
        tags.append((key, value))

    chapters = []
    for ch in meta.chapters:
        escape_value(f"chapter {ch.index} title", ch.title)
        chapters.append(ChapterEntry(ch.start_ms, ch.end_ms, ch.title))

    log.debug(f"Composed {len(tags)} tags, {len(chapters)} chapters")
    return FFMetadata(tags=tuple(tags), chapters=tuple(chapters), cover=meta.cover)
