"""Merge runner -- orchestrates validation, probing, encoding and tagging.

State machine: validating -> encoding -> tagging -> done, with any state
able to move to failed. The runner owns the work directory (concat list,
metadata file, staged cover, merged stream) and the partial output file;
both are removed on every exit path. The requested output path is only
written by an atomic rename once tagging succeeded.
"""

from __future__ import annotations

import mimetypes
import os
import re
import shutil
import tempfile
from contextlib import contextmanager
from dataclasses import replace
from decimal import Decimal
from pathlib import Path
from typing import TYPE_CHECKING, Iterator

import click
from loguru import logger

from . import chapters, ffmetadata
from .errors import (
    EmptyInputError,
    EncodeError,
    InvalidInputError,
    MergeError,
    TagEmbedError,
)
from .ffprobe import duration_to_timestamp, probe, probe_all
from .models import TERMINAL_STATES, MergeState
from .stages import encode, tag
from .tools import SubprocessRunner

if TYPE_CHECKING:
    from .config import MergeConfig
    from .ffmetadata import FFMetadata
    from .models import MergeRequest
    from .tools import ToolRunner

log = logger.bind(stage="runner")

_LINE_BREAKS = re.compile(r"[\r\n]")


def _check_readable(path: Path, what: str) -> None:
    if not path.is_file():
        raise InvalidInputError(f"{what} not found: {path}", path)
    if not os.access(path, os.R_OK):
        raise InvalidInputError(f"{what} is not readable: {path}", path)


@contextmanager
def merge_workspace(root: Path | None) -> Iterator[Path]:
    """Create a private work directory and always remove it afterwards."""
    if root is not None:
        root.mkdir(parents=True, exist_ok=True)
    work_dir = Path(tempfile.mkdtemp(prefix="mp3-merge-", dir=root))
    log.debug(f"Created work dir: {work_dir}")
    try:
        yield work_dir
    finally:
        shutil.rmtree(work_dir, ignore_errors=True)
        log.debug(f"Removed work dir: {work_dir}")


class MergeRunner:
    """Runs merge requests, one at a time, from validation to the output file."""

    def __init__(
        self,
        config: MergeConfig,
        runner: ToolRunner | None = None,
    ) -> None:
        self.config = config
        self.runner = runner or SubprocessRunner()
        self.state = MergeState.VALIDATING
        self.error: MergeError | None = None
        # Resolved request (chapters planned), set once validation passes
        self.request: MergeRequest | None = None

    def _transition(self, state: MergeState) -> None:
        if self.state in TERMINAL_STATES:
            raise RuntimeError(f"Merge already {self.state}, cannot move to {state}")
        log.debug(f"{self.state} -> {state}")
        self.state = state

    def _echo(self, message: str) -> None:
        if not self.config.quiet:
            click.echo(message)

    def run(self, request: MergeRequest) -> Path:
        """Merge request.inputs into request.output and return the output path.

        Each call starts a new merge from the validating state. Raises the
        specific MergeError subclass of the failing step; file system errors
        are raised as the error kind of the step they occurred in. No file
        is left at request.output on failure.
        """
        self.state = MergeState.VALIDATING
        self.error = None
        self.request = None
        try:
            request, metadata, cover = self._prepare(request)
            self.request = request
            if self.config.dry_run:
                self._echo_plan(request, metadata)
                self._transition(MergeState.DONE)
                return request.output

            with merge_workspace(self.config.work_dir) as work_dir:
                self._merge(request, metadata, cover, work_dir)
        except MergeError as e:
            self._fail(e)
            raise
        except OSError as e:
            error = self._step_error(e)
            self._fail(error)
            raise error from e

        self._transition(MergeState.DONE)
        self._echo(f"Done: {request.output}")
        return request.output

    def _fail(self, error: MergeError) -> None:
        self.error = error
        self.state = MergeState.FAILED
        log.error(f"Merge failed: {error}")

    def _step_error(self, error: OSError) -> MergeError:
        """Wrap a file system error in the error kind of the current step."""
        if self.state == MergeState.ENCODING:
            return EncodeError("ffmpeg", None, str(error))
        if self.state == MergeState.TAGGING:
            return TagEmbedError("ffmpeg", None, str(error))
        path = Path(error.filename) if error.filename else None
        return InvalidInputError(str(error), path)

    def _prepare(
        self, request: MergeRequest
    ) -> tuple[MergeRequest, FFMetadata, Path | None]:
        """Validate paths, probe durations, plan chapters, compose metadata."""
        if not request.inputs:
            raise EmptyInputError()
        for f in request.inputs:
            _check_readable(f.path, "Input file")
            # The concat list is line based
            if _LINE_BREAKS.search(str(f.path)):
                raise InvalidInputError(
                    f"Input path contains a line break: {f.path!r}", f.path
                )

        output = request.output
        if output.is_dir():
            raise InvalidInputError(f"Output path is a directory: {output}", output)
        if not output.parent.is_dir():
            raise InvalidInputError(
                f"Output directory not found: {output.parent}", output.parent
            )

        cover = self._validate_cover(request.metadata.cover)

        durations = self._probe_all(request)
        planned = chapters.plan(request.inputs, durations)
        request = replace(
            request,
            metadata=replace(request.metadata, chapters=planned, cover=cover),
        )
        metadata = ffmetadata.compose(request, self.config.id3v2_version)
        log.info(
            f"Prepared {len(planned)} chapters, "
            f"{duration_to_timestamp(planned[-1].end)} total"
        )
        return request, metadata, cover

    def _validate_cover(self, cover: Path | None) -> Path | None:
        """Check the cover image; unusable art fails unless missing_cover=skip."""
        if cover is None:
            return None
        try:
            _check_readable(cover, "Cover file")
            mime_type, _ = mimetypes.guess_type(cover.name)
            if not mime_type or not mime_type.startswith("image/"):
                raise InvalidInputError(
                    f"Failed to determine an image type for cover file: {cover}",
                    cover,
                )
        except InvalidInputError as e:
            if self.config.missing_cover != "skip":
                raise
            log.warning(f"{e} -- continuing without cover art")
            return None
        return cover

    def _probe_all(self, request: MergeRequest) -> list[Decimal]:
        """Probe each input in order; the first failure aborts the merge."""
        ffprobe_bin = self.config.ffprobe_bin
        if self.config.quiet:
            return probe_all(request.inputs, self.config, self.runner)

        durations: list[Decimal] = []
        with click.progressbar(
            request.inputs,
            label="Reading durations",
            show_pos=True,
            item_show_func=lambda f: f.path.name if f else "",
        ) as bar:
            for f in bar:
                durations.append(probe(f.path, self.runner, ffprobe_bin))
        return durations

    def _merge(
        self,
        request: MergeRequest,
        metadata: FFMetadata,
        cover: Path | None,
        work_dir: Path,
    ) -> None:
        """Encode and tag inside work_dir, then move the result into place."""
        self._transition(MergeState.ENCODING)
        merged = encode.run(
            request.inputs,
            work_dir,
            work_dir / "merged.mp3",
            self.config,
            self.runner,
        )
        self._echo(f"  ENCODE: {len(request.inputs)} files merged")

        self._transition(MergeState.TAGGING)
        staged_cover = None
        if cover is not None:
            staged_cover = work_dir / f"cover{cover.suffix.lower()}"
            try:
                staged_cover.write_bytes(cover.read_bytes())
            except OSError as e:
                raise InvalidInputError(
                    f"Failed to read cover file {cover}: {e}", cover
                ) from e

        output = request.output
        partial = output.with_name(f".{output.name}.partial")
        try:
            tag.run(
                merged,
                metadata,
                work_dir,
                partial,
                self.config,
                self.runner,
                cover_path=staged_cover,
            )
            os.replace(partial, output)
        finally:
            partial.unlink(missing_ok=True)
        self._echo(
            f"  TAG: {len(metadata.tags)} tags, {len(metadata.chapters)} chapters"
            + (" +cover" if staged_cover else "")
        )

    def _echo_plan(self, request: MergeRequest, metadata: FFMetadata) -> None:
        self._echo(f"[DRY-RUN] Would write {request.output}")
        for key, value in metadata.tags:
            self._echo(f"    {key}={value}")
        if metadata.cover:
            self._echo(f"    cover={metadata.cover}")
        for ch in request.metadata.chapters:
            self._echo(
                f"  {ch.index + 1:>3}. {duration_to_timestamp(ch.start)} - "
                f"{duration_to_timestamp(ch.end)}  {ch.title}"
            )
