"""Errors raised by the file driver and its hash/mime helpers.

The underlying ``OSError`` (or, for ``StreamReadFailed``, whatever the caller's stream
raised) is always chained as ``__cause__``.
"""
from pathlib import Path

from polytag.errors import DependencyError, StreamError, ValidationError


class FileDriverError(DependencyError):
    """Filesystem failure inside the file driver."""


class CreateFailed(FileDriverError):
    def __init__(self, path: Path | str):
        self.path = path
        super().__init__(f"failed to create file `{path}`")


class MetadataReadFailed(FileDriverError):
    def __init__(self, path: Path | str):
        self.path = path
        super().__init__(f"failed to read file metadata of `{path}`")


class WriteFailed(FileDriverError):
    def __init__(self, path: Path | str):
        self.path = path
        super().__init__(f"failed to write to file `{path}`")


class PromoteFailed(FileDriverError):
    def __init__(self, source: Path | str, target: Path | str):
        self.source = source
        self.target = target
        super().__init__(f"failed to move `{source}` to `{target}`")


class HashOpenFailed(FileDriverError):
    def __init__(self, path: Path | str):
        self.path = path
        super().__init__(f"failed to open file `{path}` for hashing")


class HashReadFailed(FileDriverError):
    def __init__(self, path: Path | str):
        self.path = path
        super().__init__(f"failed to read file `{path}` for hashing")


class MimeOpenFailed(FileDriverError):
    def __init__(self, path: Path | str):
        self.path = path
        super().__init__(f"failed to open file `{path}` for mime detection")


class MimeReadFailed(FileDriverError):
    def __init__(self, path: Path | str):
        self.path = path
        super().__init__(f"failed to read file `{path}` for mime detection")


class InvalidOffset(ValidationError):
    def __init__(self, offset: int, current_size: int):
        self.offset = offset
        self.current_size = current_size
        super().__init__(
            "invalid offset; expected offset to be less than or equal to file size; "
            f"offset: {offset}, file size: {current_size}"
        )


class StreamReadFailed(StreamError):
    """The caller-supplied byte stream raised while being read.

    The stream's own exception is kept as ``__cause__`` without being inspected.
    """

    def __init__(self):
        super().__init__("failed to read from stream")
