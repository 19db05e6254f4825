"""Chapter planning -- one chapter per input file with cumulative timestamps."""

from __future__ import annotations

from decimal import Decimal
from typing import Sequence

from loguru import logger

from .errors import EmptyInputError
from .models import Chapter, InputFile

log = logger.bind(stage="chapters")


def plan(
    inputs: Sequence[InputFile],
    durations: Sequence[Decimal | int | float | str],
) -> tuple[Chapter, ...]:
    """Lay out chapters back to back in input order.

    Chapter 0 starts at zero, each chapter starts where the previous one
    ends, and the last one ends at the sum of all durations. The cursor is
    an exact Decimal, so many short files don't accumulate float drift.
    """
    if not inputs:
        raise EmptyInputError()
    if len(inputs) != len(durations):
        raise ValueError(
            f"{len(inputs)} input files but {len(durations)} durations"
        )

    chapters = []
    cursor = Decimal(0)
    for i, (file, duration) in enumerate(zip(inputs, durations)):
        # str() keeps a float's shortest repr (45.5, not 45.499999...)
        d = duration if isinstance(duration, Decimal) else Decimal(str(duration))
        if d < 0:
            raise ValueError(f"negative duration for {file.path}: {d}")
        chapters.append(
            Chapter(index=i, title=file.title, start=cursor, end=cursor + d)
        )
        cursor += d

    log.debug(f"Planned {len(chapters)} chapters, total {cursor}s")
    return tuple(chapters)
