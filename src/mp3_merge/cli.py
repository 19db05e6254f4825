"""CLI entry point for mp3-merge."""

import sys
from pathlib import Path

import click
from loguru import logger
from pydantic import ValidationError

from . import __version__
from .config import MergeConfig
from .errors import MergeError
from .models import (
    OUTPUT_EXTENSION,
    InputFile,
    MergeMetadata,
    MergeRequest,
    split_list,
)
from .runner import MergeRunner

log = logger.bind(stage="cli")


def _blank_to_none(value: str | None) -> str | None:
    """Treat empty option values as unset, so they never become empty tags."""
    if value is None or not value.strip():
        return None
    return value


def build_request(
    output: Path,
    files: tuple[Path, ...],
    chapter_titles: tuple[str, ...] = (),
    **tags: str | None,
) -> MergeRequest:
    """Build the immutable MergeRequest from parsed CLI values.

    The output always gets the .mp3 extension. Explicit chapter titles are
    assigned to the first files in order; the rest fall back to the stem.
    """
    if len(chapter_titles) > len(files):
        raise click.UsageError(
            f"{len(chapter_titles)} chapter titles given for {len(files)} files."
        )
    titles = list(chapter_titles) + [None] * (len(files) - len(chapter_titles))
    inputs = tuple(
        InputFile.from_path(f, title=_blank_to_none(t))
        for f, t in zip(files, titles)
    )

    cover = _blank_to_none(tags.pop("cover", None))
    metadata = MergeMetadata(
        title=_blank_to_none(tags.get("title")),
        subtitle=_blank_to_none(tags.get("subtitle")),
        album=_blank_to_none(tags.get("album")),
        album_artist=_blank_to_none(tags.get("album_artist")),
        artists=split_list(tags.get("artists")),
        genres=split_list(tags.get("genres")),
        comments=_blank_to_none(tags.get("comments")),
        date_released=_blank_to_none(tags.get("date_released")),
        cover=Path(cover).expanduser().absolute() if cover else None,
    )
    output = output.expanduser().absolute().with_suffix(OUTPUT_EXTENSION)
    return MergeRequest(inputs=inputs, output=output, metadata=metadata)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, "-V", "--version", prog_name="mp3-merge")
@click.argument("output", type=click.Path(path_type=Path))
@click.argument("files", nargs=-1, type=click.Path(path_type=Path))
@click.option("--title", default=None, help="Set title of merged MP3 file.")
@click.option("--subtitle", default=None, help="Set subtitle of merged MP3 file.")
@click.option("--album", default=None, help="Album name.")
@click.option("--album-artist", default=None, help="Album artist.")
@click.option("--artists", default=None, help="Semicolon-separated list of artists.")
@click.option("--genres", default=None, help="Semicolon-separated list of genres.")
@click.option("--comments", default=None, help="Comments to include.")
@click.option(
    "--date-released", default=None, help="Release date (YYYY, YYYY-MM or YYYY-MM-DD)."
)
@click.option("--cover", default=None, help="Path to cover art image.")
@click.option(
    "--chapter-title",
    "chapter_titles",
    multiple=True,
    help="Chapter title for the next input file, in order. Defaults to the file name.",
)
@click.option(
    "--skip-bad-cover",
    is_flag=True,
    help="Merge without cover art if the cover file is missing or unusable.",
)
@click.option(
    "--reencode", is_flag=True, help="Re-encode with libmp3lame instead of copying."
)
@click.option(
    "--bitrate", type=int, default=None, help="Bitrate in kbps when re-encoding."
)
@click.option(
    "--dry-run", is_flag=True, help="Show chapters and tags without writing anything."
)
@click.option("-q", "--quiet", is_flag=True, help="Suppress progress output.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.option(
    "-c",
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to .env file.",
)
def main(
    output: Path,
    files: tuple[Path, ...],
    chapter_titles: tuple[str, ...],
    skip_bad_cover: bool,
    reencode: bool,
    bitrate: int | None,
    dry_run: bool,
    quiet: bool,
    verbose: bool,
    config_file: Path | None,
    **tags: str | None,
) -> None:
    """Merge audio FILES into one chaptered MP3 at OUTPUT.

    Each input file becomes one chapter, titled after its file name.
    """
    # Pass CLI flags as kwargs to avoid env pollution; only set flags override
    config_kwargs: dict = {}
    if config_file is not None:
        config_kwargs["_env_file"] = config_file
    for key, value in (
        ("reencode", reencode),
        ("dry_run", dry_run),
        ("quiet", quiet),
        ("verbose", verbose),
    ):
        if value:
            config_kwargs[key] = True
    if skip_bad_cover:
        config_kwargs["missing_cover"] = "skip"
    if bitrate is not None:
        config_kwargs["bitrate"] = bitrate

    try:
        config = MergeConfig(**config_kwargs)
        config.setup_logging()
    except ValidationError as e:
        raise click.ClickException(f"Invalid configuration:\n{e}") from e
    except OSError as e:
        raise click.ClickException(f"Cannot set up logging: {e}") from e

    request = build_request(output, files, chapter_titles, **tags)
    log.info(
        f"Starting merge: output={request.output} files={len(request.inputs)} "
        f"dry_run={config.dry_run}"
    )

    try:
        MergeRunner(config).run(request)
    except MergeError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(e.exit_code)
