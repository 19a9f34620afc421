"""Best-effort MIME detection for stored files.

Signature sniffing first (``filetype`` over a bounded prefix), then the extension of the
name hint or the path, then ``application/octet-stream``. Sniffing does blocking I/O,
so it runs in a worker thread.
"""
import asyncio
import mimetypes
from pathlib import Path
from typing import Optional

import filetype

from polytag.services.storage_errors import MimeOpenFailed, MimeReadFailed

FALLBACK_MIME = "application/octet-stream"
DEFAULT_PREFIX_SIZE = 8192


def sniff_mime(path: Path | str, name_hint: Optional[str] = None,
               prefix_size: int = DEFAULT_PREFIX_SIZE) -> str:
    """Blocking MIME detection. Inconclusive input yields ``FALLBACK_MIME``."""
    try:
        f = open(path, "rb")
    except OSError as e:
        raise MimeOpenFailed(path) from e
    with f:
        try:
            prefix = f.read(prefix_size)
        except OSError as e:
            raise MimeReadFailed(path) from e

    kind = filetype.guess(prefix) if prefix else None
    if kind is not None:
        return kind.mime

    for candidate in (name_hint, str(path)):
        if candidate:
            guessed, _ = mimetypes.guess_type(candidate, strict=False)
            if guessed:
                return guessed
    return FALLBACK_MIME


async def compute_file_mime(path: Path | str, name_hint: Optional[str] = None,
                            prefix_size: int = DEFAULT_PREFIX_SIZE) -> str:
    return await asyncio.to_thread(sniff_mime, path, name_hint, prefix_size)
