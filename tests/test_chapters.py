"""Tests for chapters.py -- cumulative, gap-free chapter planning."""

from decimal import Decimal
from pathlib import Path

import pytest

from mp3_merge.chapters import plan
from mp3_merge.errors import EmptyInputError, InvalidInputError
from mp3_merge.models import InputFile


def _inputs(n: int) -> list[InputFile]:
    return [InputFile.from_path(Path(f"/book/part{i:03d}.mp3")) for i in range(n)]


class TestPlan:
    def test_three_files(self):
        chapters = plan(_inputs(3), [60.0, 45.5, 120.25])
        assert [(c.index, c.start, c.end) for c in chapters] == [
            (0, 0, 60.0),
            (1, 60.0, 105.5),
            (2, 105.5, 225.75),
        ]

    def test_titles_from_stem(self):
        chapters = plan(_inputs(2), [1, 2])
        assert [c.title for c in chapters] == ["part000", "part001"]

    def test_explicit_title_wins(self):
        inputs = [InputFile.from_path("/book/x.mp3", title="Prologue")]
        assert plan(inputs, [10])[0].title == "Prologue"

    @pytest.mark.parametrize(
        "durations",
        [
            ["0.1"] * 1000,
            ["1.001", "2.002", "0", "3600.5"],
            ["0.333333"] * 7,
            ["12.5"],
        ],
    )
    def test_boundaries_are_contiguous(self, durations):
        chapters = plan(_inputs(len(durations)), durations)
        assert len(chapters) == len(durations)
        assert chapters[0].start == 0
        for prev, nxt in zip(chapters, chapters[1:]):
            assert prev.end == nxt.start
            assert prev.end_ms == nxt.start_ms
        assert chapters[-1].end == sum(Decimal(d) for d in durations)

    def test_no_float_drift(self):
        chapters = plan(_inputs(1000), [0.1] * 1000)
        assert chapters[-1].end == Decimal("100.0")
        assert chapters[-1].end_ms == 100_000

    def test_order_matches_input(self):
        inputs = _inputs(5)
        chapters = plan(inputs, [1, 2, 3, 4, 5])
        assert [c.index for c in chapters] == [0, 1, 2, 3, 4]
        assert [c.title for c in chapters] == [f.title for f in inputs]
        assert [c.duration for c in chapters] == [1, 2, 3, 4, 5]

    def test_empty_raises(self):
        with pytest.raises(EmptyInputError):
            plan([], [])

    def test_empty_is_invalid_input(self):
        assert issubclass(EmptyInputError, InvalidInputError)

    def test_length_mismatch(self):
        with pytest.raises(ValueError, match="2 input files but 1 durations"):
            plan(_inputs(2), [1.0])

    def test_negative_duration(self):
        with pytest.raises(ValueError, match="negative"):
            plan(_inputs(1), [Decimal("-1")])
