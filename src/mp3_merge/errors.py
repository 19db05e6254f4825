"""Exception hierarchy and exit codes for the merge pipeline."""

from pathlib import Path


class MergeError(Exception):
    """Base exception for all merge errors."""

    exit_code: int = 1


class InvalidInputError(MergeError):
    """Missing or unreadable input, or an unusable output location."""

    exit_code = 2

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class EmptyInputError(InvalidInputError):
    """No input files were given."""

    def __init__(self, message: str = "no input files specified") -> None:
        super().__init__(message)


class ProbeError(MergeError):
    """ffprobe could not report a usable duration for a file."""

    exit_code = 3

    def __init__(
        self,
        path: Path,
        reason: str,
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        super().__init__(f"failed to get duration of input file '{path}': {reason}")
        self.path = path
        self.returncode = returncode
        self.stderr = stderr


class MetadataEncodingError(MergeError):
    """A metadata value cannot be represented in the tag description."""

    exit_code = 4

    def __init__(self, field: str, value: str, reason: str) -> None:
        super().__init__(f"invalid value for {field} {value!r}: {reason}")
        self.field = field
        self.value = value


class ExternalToolError(MergeError):
    """An external subprocess (ffmpeg, ffprobe, etc.) failed."""

    def __init__(self, tool: str, exit_code: int | None, stderr: str) -> None:
        # exit_code is None when the step failed before or around the process
        if exit_code is None:
            super().__init__(f"{tool} step failed: {stderr}")
        else:
            super().__init__(f"{tool} exited with code {exit_code}: {stderr}")
        self.tool = tool
        self.returncode = exit_code
        self.stderr = stderr


class EncodeError(ExternalToolError):
    """Concatenating the inputs into one stream failed."""

    exit_code = 5


class TagEmbedError(ExternalToolError):
    """Writing tags, chapters or cover art into the merged stream failed."""

    exit_code = 6
