"""CRC-32 hashing of streamed bytes and stored files."""
import zlib
from pathlib import Path

import aiofiles

from polytag.services.storage_errors import HashOpenFailed, HashReadFailed

DEFAULT_CHUNK_SIZE = 64 * 1024


class Crc32Sink:
    """Running CRC-32 over chunks fed in arrival order.

    The result depends only on the concatenated bytes, not on how they were chunked.
    """

    def __init__(self):
        self._crc = 0

    def update(self, chunk: bytes) -> None:
        self._crc = zlib.crc32(chunk, self._crc)

    def finalize(self) -> int:
        return self._crc & 0xFFFFFFFF


async def compute_file_hash(path: Path | str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> int:
    """Re-read the file at ``path`` and return its CRC-32."""
    try:
        f = await aiofiles.open(path, "rb")
    except OSError as e:
        raise HashOpenFailed(path) from e

    sink = Crc32Sink()
    try:
        while True:
            try:
                chunk = await f.read(chunk_size)
            except OSError as e:
                raise HashReadFailed(path) from e
            if not chunk:
                break
            sink.update(chunk)
    finally:
        await f.close()
    return sink.finalize()
