"""Tests for config.py -- defaults, env var overrides."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from mp3_merge.config import MergeConfig


class TestDefaults:
    def test_default_values(self):
        config = MergeConfig(_env_file=None)
        assert config.ffmpeg_bin == "ffmpeg"
        assert config.ffprobe_bin == "ffprobe"
        assert config.work_dir is None
        assert config.log_dir is None
        assert config.reencode is False
        assert config.bitrate == 128
        assert config.id3v2_version == 4
        assert config.missing_cover == "fail"
        assert config.dry_run is False
        assert config.quiet is False
        assert config.log_level == "WARNING"


class TestOverrides:
    def test_constructor_override(self):
        config = MergeConfig(_env_file=None, dry_run=True, bitrate=64)
        assert config.dry_run is True
        assert config.bitrate == 64

    def test_env_var_override(self, monkeypatch):
        monkeypatch.setenv("MP3_MERGE_BITRATE", "96")
        monkeypatch.setenv("MP3_MERGE_MISSING_COVER", "skip")
        config = MergeConfig(_env_file=None)
        assert config.bitrate == 96
        assert config.missing_cover == "skip"

    def test_path_from_env(self, monkeypatch):
        monkeypatch.setenv("MP3_MERGE_WORK_DIR", "/tmp/test-work")
        config = MergeConfig(_env_file=None)
        assert config.work_dir == Path("/tmp/test-work")

    def test_env_file(self, tmp_path):
        env_file = tmp_path / "merge.env"
        env_file.write_text("MP3_MERGE_FFMPEG_BIN=/opt/bin/ffmpeg\n")
        config = MergeConfig(_env_file=env_file)
        assert config.ffmpeg_bin == "/opt/bin/ffmpeg"

    def test_kwargs_beat_env(self, monkeypatch):
        monkeypatch.setenv("MP3_MERGE_REENCODE", "false")
        config = MergeConfig(_env_file=None, reencode=True)
        assert config.reencode is True


class TestValidation:
    def test_bad_missing_cover_policy(self):
        with pytest.raises(ValidationError):
            MergeConfig(_env_file=None, missing_cover="maybe")

    def test_frozen(self):
        config = MergeConfig(_env_file=None)
        with pytest.raises(ValidationError):
            config.bitrate = 320
