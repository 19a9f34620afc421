import zlib

import pytest

from polytag.services.file_hash import Crc32Sink, compute_file_hash
from polytag.services.storage_errors import HashOpenFailed


def test_hello_checksum():
    sink = Crc32Sink()
    sink.update(b"hello")
    assert sink.finalize() == 0x3610A686


def test_empty_input_hashes_to_zero():
    assert Crc32Sink().finalize() == 0


@pytest.mark.parametrize("chunking", [
    [b"the quick brown fox"],
    [b"the ", b"quick ", b"brown ", b"fox"],
    [bytes([c]) for c in b"the quick brown fox"],
    [b"", b"the quick brown fox", b""],
])
def test_hash_ignores_chunk_boundaries(chunking):
    sink = Crc32Sink()
    for chunk in chunking:
        sink.update(chunk)
    assert sink.finalize() == zlib.crc32(b"the quick brown fox")


async def test_compute_file_hash_reads_whole_file(tmp_path):
    data = bytes(range(256)) * 100
    path = tmp_path / "blob"
    path.write_bytes(data)

    assert await compute_file_hash(path, chunk_size=7) == zlib.crc32(data)


async def test_compute_file_hash_missing_file(tmp_path):
    with pytest.raises(HashOpenFailed) as exc_info:
        await compute_file_hash(tmp_path / "missing")
    assert isinstance(exc_info.value.__cause__, FileNotFoundError)
