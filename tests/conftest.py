"""Shared fixtures: fake ffmpeg/ffprobe runner and isolated config."""

import errno
import os
from pathlib import Path

import pytest

from mp3_merge.config import MergeConfig
from mp3_merge.models import InputFile
from mp3_merge.tools import ToolResult


class FakeToolRunner:
    """Stands in for ffprobe/ffmpeg without spawning processes.

    ffprobe prints durations[file name] (default "60.0"); names in
    fail_probe exit 1. ffmpeg writes its output file, or a partial one
    before exiting with encode_rc/tag_rc when those are non-zero.
    disk_full ("encode" or "tag") makes that step raise ENOSPC instead.
    """

    def __init__(
        self,
        durations: dict[str, str] | None = None,
        fail_probe: tuple[str, ...] = (),
        encode_rc: int = 0,
        tag_rc: int = 0,
        disk_full: str | None = None,
    ) -> None:
        self.durations = durations or {}
        self.fail_probe = fail_probe
        self.encode_rc = encode_rc
        self.tag_rc = tag_rc
        self.disk_full = disk_full
        self.calls: list[list[str]] = []
        self.metadata_text: str | None = None
        self.concat_text: str | None = None

    def run(self, args):
        args = [str(a) for a in args]
        self.calls.append(args)
        if Path(args[0]).name == "ffprobe":
            name = Path(args[-1]).name
            if name in self.fail_probe:
                return ToolResult(1, stderr=f"{name}: Invalid data found")
            return ToolResult(0, stdout=f"{self.durations.get(name, '60.0')}\n")

        dest = Path(args[-1])
        step = "encode" if "concat" in args else "tag"
        if step == self.disk_full:
            raise OSError(errno.ENOSPC, "No space left on device", str(dest))
        if step == "encode":
            self.concat_text = Path(args[args.index("-i") + 1]).read_text()
            rc = self.encode_rc
        else:
            inputs = [args[i + 1] for i, a in enumerate(args) if a == "-i"]
            self.metadata_text = Path(inputs[1]).read_text()
            rc = self.tag_rc
        if rc:
            dest.write_bytes(b"partial")
            return ToolResult(rc, stderr="Error while processing stream")
        dest.write_bytes(b"ID3merged")
        return ToolResult(0)

    @property
    def probe_calls(self) -> list[list[str]]:
        return [c for c in self.calls if Path(c[0]).name == "ffprobe"]

    @property
    def ffmpeg_calls(self) -> list[list[str]]:
        return [c for c in self.calls if Path(c[0]).name == "ffmpeg"]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Remove MP3_MERGE_* env vars so tests see actual defaults."""
    for var in list(os.environ):
        if var.startswith("MP3_MERGE_"):
            monkeypatch.delenv(var, raising=False)


@pytest.fixture
def config(tmp_path) -> MergeConfig:
    return MergeConfig(_env_file=None, work_dir=tmp_path / "work", quiet=True)


@pytest.fixture
def make_inputs(tmp_path):
    """Create fake audio files and return them as InputFiles."""

    def _make(*names: str) -> tuple[InputFile, ...]:
        src = tmp_path / "src"
        src.mkdir(exist_ok=True)
        files = []
        for name in names:
            p = src / name
            p.write_bytes(b"\xff\xfb fake mp3")
            files.append(InputFile.from_path(p))
        return tuple(files)

    return _make
