import asyncio
import uuid
import zlib

import pytest

from polytag.errors import ErrorKind
from polytag.services.file_storage import FileDriver
from polytag.services.storage_errors import InvalidOffset, PromoteFailed, StreamReadFailed


async def chunks(*parts: bytes):
    for part in parts:
        yield part


async def broken_stream(*parts: bytes):
    for part in parts:
        yield part
    raise ConnectionResetError("peer went away")


async def test_write_creates_staging_and_reports_size(driver):
    staging_id = uuid.uuid4()
    assert await driver.size_of(staging_id) is None

    size = await driver.write(staging_id, None, chunks(b"hel", b"lo", b" world"))

    assert size == 11
    assert await driver.size_of(staging_id) == 11
    assert driver.staging_path(staging_id).read_bytes() == b"hello world"


async def test_rewrite_from_zero_is_idempotent(driver):
    staging_id = uuid.uuid4()
    await driver.write(staging_id, 0, chunks(b"abcdef"))
    size = await driver.write(staging_id, 0, chunks(b"abcdef"))

    assert size == 6
    assert driver.staging_path(staging_id).read_bytes() == b"abcdef"


async def test_offset_past_end_is_rejected_without_change(driver):
    staging_id = uuid.uuid4()
    await driver.write(staging_id, 0, chunks(b"abc"))

    with pytest.raises(InvalidOffset) as exc_info:
        await driver.write(staging_id, 4, chunks(b"zzz"))

    assert exc_info.value.kind is ErrorKind.VALIDATION
    assert exc_info.value.offset == 4
    assert exc_info.value.current_size == 3
    assert "offset: 4, file size: 3" in str(exc_info.value)
    assert driver.staging_path(staging_id).read_bytes() == b"abc"


async def test_nonzero_offset_on_missing_staging_is_rejected(driver):
    with pytest.raises(InvalidOffset) as exc_info:
        await driver.write(uuid.uuid4(), 5, chunks(b"abc"))
    assert exc_info.value.current_size == 0


async def test_resume_discards_tail(driver):
    staging_id = uuid.uuid4()
    await driver.write(staging_id, 0, chunks(b"abcdefgh"))

    size = await driver.write(staging_id, 3, chunks(b"XY"))

    assert size == 5
    assert driver.staging_path(staging_id).read_bytes() == b"abcXY"


async def test_resume_at_exact_size_appends(driver):
    staging_id = uuid.uuid4()
    await driver.write(staging_id, 0, chunks(b"abc"))

    size = await driver.write(staging_id, 3, chunks(b"def"))

    assert size == 6
    assert driver.staging_path(staging_id).read_bytes() == b"abcdef"


async def test_stream_failure_keeps_written_prefix(driver):
    staging_id = uuid.uuid4()

    with pytest.raises(StreamReadFailed) as exc_info:
        await driver.write(staging_id, 0, broken_stream(b"abcd", b"efgh"))

    assert exc_info.value.kind is ErrorKind.STREAM
    assert isinstance(exc_info.value.__cause__, ConnectionResetError)
    # Full buffers were flushed before the stream broke
    assert driver.staging_path(staging_id).read_bytes() == b"abcdefgh"

    size = await driver.write(staging_id, 8, chunks(b"ij"))
    assert size == 10


async def test_cancellation_is_not_wrapped(driver):
    async def cancelled_stream():
        yield b"abc"
        raise asyncio.CancelledError()

    with pytest.raises(asyncio.CancelledError):
        await driver.write(uuid.uuid4(), 0, cancelled_stream())


async def test_read_metadata_hashes_and_sniffs(driver):
    staging_id = uuid.uuid4()
    await driver.write(staging_id, 0, chunks(b"hello"))

    metadata = await driver.read_metadata(staging_id)
    assert metadata.hash == 0x3610A686
    assert metadata.mime == "application/octet-stream"

    metadata = await driver.read_metadata(staging_id, name_hint="hello.txt")
    assert metadata.mime == "text/plain"


async def test_hash_matches_across_chunkings(driver):
    data = bytes(range(200))
    first, second = uuid.uuid4(), uuid.uuid4()
    await driver.write(first, 0, chunks(data))
    await driver.write(second, 0, chunks(*[data[i:i + 7] for i in range(0, len(data), 7)]))

    assert (await driver.read_metadata(first)).hash == zlib.crc32(data)
    assert (await driver.read_metadata(second)).hash == zlib.crc32(data)


async def test_promote_moves_staging_into_files(driver):
    staging_id, file_id = uuid.uuid4(), uuid.uuid4()
    await driver.write(staging_id, 0, chunks(b"payload"))

    await driver.promote(staging_id, file_id)

    assert not driver.staging_path(staging_id).exists()
    assert await driver.file_exists(file_id)
    assert driver.file_path(file_id).read_bytes() == b"payload"


async def test_promote_missing_staging_fails(driver):
    with pytest.raises(PromoteFailed) as exc_info:
        await driver.promote(uuid.uuid4(), uuid.uuid4())
    assert isinstance(exc_info.value.__cause__, FileNotFoundError)


async def test_create_dirs_is_repeatable(tmp_path):
    driver = FileDriver(tmp_path / "root")
    await driver.create_dirs()
    await driver.create_dirs()

    assert driver.stagings_path.is_dir()
    assert driver.files_path.is_dir()
