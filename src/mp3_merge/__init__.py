"""mp3-merge -- merge audio files into one MP3 with a chapter per file.

Core modules:
    config     -- Merge configuration via pydantic-settings (MP3_MERGE_* env vars).
                  Frozen; CLI flags passed as kwargs (no env pollution).
    cli        -- Click CLI entry point. Maps each MergeError kind to its own
                  exit code.
    runner     -- Merge orchestration: validate -> encode -> tag -> done, with
                  guaranteed work dir cleanup and an atomic final rename.
    ffprobe    -- Exact (Decimal) duration probing via ffprobe subprocess.
    chapters   -- Chapter planning with gap-free cumulative timestamps.
    ffmetadata -- FFMETADATA1 composition (global tags + chapter table) with
                  escaping and rejection of unencodable values.
    tools      -- ToolRunner capability wrapping subprocess, replaceable by
                  fakes in tests.
    models     -- Frozen dataclasses and the MergeState enum.
    errors     -- Exception hierarchy and exit codes.

Subpackages:
    stages -- ffmpeg encode (concat) and tag (metadata + cover) steps.
"""

__version__ = "0.1.0"
