"""Core enums, constants, and data types for the merge pipeline.

Types:
    InputFile     -- One input audio file and its chapter title.
    Chapter       -- One chapter marker with exact start/end times in seconds.
    MergeMetadata -- Global tags, cover art path, and the planned chapter table.
    MergeRequest  -- The fully resolved job: inputs, output path, metadata.
    MergeState    -- Orchestrator state (validating, encoding, tagging, done, failed).
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import StrEnum
from pathlib import Path


class MergeState(StrEnum):
    VALIDATING = "validating"
    ENCODING = "encoding"
    TAGGING = "tagging"
    DONE = "done"
    FAILED = "failed"


TERMINAL_STATES: frozenset[MergeState] = frozenset(
    {MergeState.DONE, MergeState.FAILED}
)

# Inputs with these extensions can be stream-copied into the MP3 output
COPYABLE_EXTENSIONS: frozenset[str] = frozenset({".mp3"})

OUTPUT_EXTENSION = ".mp3"


def to_ms(seconds: Decimal) -> int:
    """Convert exact seconds to integer milliseconds, rounding half up."""
    return int((seconds * 1000).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def split_list(text: str | None) -> tuple[str, ...]:
    """Split a semicolon-separated list, dropping blank items.

    Examples:
        "Alice; Bob" -> ("Alice", "Bob")
        "Rock;;"     -> ("Rock",)
        None         -> ()
    """
    if not text:
        return ()
    return tuple(item.strip() for item in text.split(";") if item.strip())


@dataclass(frozen=True)
class InputFile:
    path: Path
    title: str

    @classmethod
    def from_path(cls, path: Path | str, title: str | None = None) -> "InputFile":
        """Build an InputFile with an absolute path; title defaults to the stem."""
        p = Path(path).expanduser().absolute()
        return cls(path=p, title=title or p.stem)


@dataclass(frozen=True)
class Chapter:
    index: int
    title: str
    start: Decimal
    end: Decimal

    @property
    def duration(self) -> Decimal:
        return self.end - self.start

    @property
    def start_ms(self) -> int:
        return to_ms(self.start)

    @property
    def end_ms(self) -> int:
        return to_ms(self.end)


@dataclass(frozen=True)
class MergeMetadata:
    """Global tag fields; None (or an empty tuple) means the field is unset."""

    title: str | None = None
    subtitle: str | None = None
    album: str | None = None
    album_artist: str | None = None
    artists: tuple[str, ...] = ()
    genres: tuple[str, ...] = ()
    comments: str | None = None
    date_released: str | None = None
    cover: Path | None = None
    chapters: tuple[Chapter, ...] = ()


@dataclass(frozen=True)
class MergeRequest:
    inputs: tuple[InputFile, ...]
    output: Path
    metadata: MergeMetadata = MergeMetadata()
