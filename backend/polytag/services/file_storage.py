"""File driver: staged, resumable writes and their promotion to permanent storage.

Layout under the storage root:

    stagings/<uuid>   bytes of an upload in progress
    files/<uuid>      bytes of a committed file

Both directories must live on the same volume; promotion is a rename and fails
(``PromoteFailed``) rather than copying across filesystems.

The driver does not serialize writers. Callers must ensure at most one writer touches a
given staging object at a time (the upload service does so with a row lock).
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterable, Optional

import aiofiles
import aiofiles.os

from polytag.config import Settings
from polytag.services.file_hash import compute_file_hash
from polytag.services.file_mime import compute_file_mime
from polytag.services.storage_errors import (
    CreateFailed,
    InvalidOffset,
    MetadataReadFailed,
    PromoteFailed,
    StreamReadFailed,
    WriteFailed,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileMetadata:
    mime: str
    hash: int


class FileDriver:
    """Owns the stagings and files directories."""

    def __init__(
        self,
        root: Path | str,
        write_buffer_size: int = 64 * 1024,
        read_chunk_size: int = 64 * 1024,
        sniff_prefix_size: int = 8192,
    ):
        root = Path(root)
        self.stagings_path = root / "stagings"
        self.files_path = root / "files"
        self.write_buffer_size = write_buffer_size
        self.read_chunk_size = read_chunk_size
        self.sniff_prefix_size = sniff_prefix_size

    @classmethod
    def from_settings(cls, settings: Settings) -> "FileDriver":
        return cls(
            settings.FILE_STORAGE_PATH,
            write_buffer_size=settings.WRITE_BUFFER_SIZE,
            read_chunk_size=settings.READ_CHUNK_SIZE,
            sniff_prefix_size=settings.SNIFF_PREFIX_SIZE,
        )

    async def create_dirs(self) -> None:
        """Create both directories and check they share a volume."""
        for path in (self.stagings_path, self.files_path):
            logger.info(f"Creating directory at {path}")
            await aiofiles.os.makedirs(path, exist_ok=True)

        self.stagings_path = self.stagings_path.resolve()
        self.files_path = self.files_path.resolve()

        stagings_dev = (await aiofiles.os.stat(self.stagings_path)).st_dev
        files_dev = (await aiofiles.os.stat(self.files_path)).st_dev
        if stagings_dev != files_dev:
            raise RuntimeError(
                f"{self.stagings_path} and {self.files_path} are on different volumes; "
                "staged files could not be promoted"
            )

    def staging_path(self, staging_id: uuid.UUID) -> Path:
        return self.stagings_path / str(staging_id)

    def file_path(self, file_id: uuid.UUID) -> Path:
        return self.files_path / str(file_id)

    async def size_of(self, staging_id: uuid.UUID) -> Optional[int]:
        """Current size of the staged object, or None if nothing was written yet."""
        path = self.staging_path(staging_id)
        try:
            stat = await aiofiles.os.stat(path)
        except FileNotFoundError:
            return None
        except OSError as e:
            raise MetadataReadFailed(path) from e
        return stat.st_size

    async def file_exists(self, file_id: uuid.UUID) -> bool:
        return await aiofiles.os.path.isfile(self.file_path(file_id))

    async def write(
        self,
        staging_id: uuid.UUID,
        offset: Optional[int],
        stream: AsyncIterable[bytes],
    ) -> int:
        """Write ``stream`` into the staged object starting at ``offset``.

        The object is created if missing and always truncated to ``offset`` first, so
        any bytes past ``offset`` from an earlier write are discarded. A non-zero offset
        must not exceed the current size.

        On failure the object is left at whatever length was reached; it is not rolled
        back. Returns the final size.
        """
        path = self.staging_path(staging_id)
        offset = offset or 0

        try:
            f = await aiofiles.open(path, "ab")
        except OSError as e:
            raise CreateFailed(path) from e

        try:
            if offset != 0:
                try:
                    current_size = (await aiofiles.os.stat(path)).st_size
                except OSError as e:
                    raise MetadataReadFailed(path) from e
                if current_size < offset:
                    raise InvalidOffset(offset, current_size)

            # Append mode: after truncation every write lands at the new end
            try:
                await f.truncate(offset)
            except OSError as e:
                raise WriteFailed(path) from e

            buffer = bytearray()
            async for chunk in _read_stream(stream):
                buffer += chunk
                if len(buffer) >= self.write_buffer_size:
                    await _write_all(f, path, buffer)
                    buffer.clear()
            if buffer:
                await _write_all(f, path, buffer)

            try:
                await f.flush()
            except OSError as e:
                raise WriteFailed(path) from e
        finally:
            await f.close()

        try:
            size = (await aiofiles.os.stat(path)).st_size
        except OSError as e:
            raise MetadataReadFailed(path) from e

        logger.debug(f"Wrote staging {staging_id} from offset {offset}, size is now {size}")
        return size

    async def read_metadata(
        self, staging_id: uuid.UUID, name_hint: Optional[str] = None,
    ) -> FileMetadata:
        """Hash and sniff the staged object; both passes run concurrently."""
        path = self.staging_path(staging_id)
        file_hash, mime = await asyncio.gather(
            compute_file_hash(path, self.read_chunk_size),
            compute_file_mime(path, name_hint, self.sniff_prefix_size),
        )
        return FileMetadata(mime=mime, hash=file_hash)

    async def promote(self, staging_id: uuid.UUID, file_id: uuid.UUID) -> None:
        """Move a staged object into the files directory under ``file_id``."""
        source = self.staging_path(staging_id)
        target = self.file_path(file_id)
        try:
            await aiofiles.os.replace(source, target)
        except OSError as e:
            raise PromoteFailed(source, target) from e
        logger.info(f"Promoted staging {staging_id} to file {file_id}")


async def _read_stream(stream: AsyncIterable[bytes]):
    """Yield chunks from ``stream``, wrapping anything it raises as StreamReadFailed."""
    iterator = stream.__aiter__()
    while True:
        try:
            chunk = await iterator.__anext__()
        except StopAsyncIteration:
            return
        except Exception as e:
            raise StreamReadFailed() from e
        if chunk:
            yield chunk


async def _write_all(f, path: Path, data: bytearray) -> None:
    try:
        await f.write(bytes(data))
    except OSError as e:
        raise WriteFailed(path) from e
