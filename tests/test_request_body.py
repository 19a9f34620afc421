import pytest

from polytag.errors import ErrorKind
from polytag.services.request_body import (
    InvalidContentRange,
    MultipartError,
    MultipartFieldReader,
    parse_content_range,
)
from polytag.services.storage_errors import StreamReadFailed

BOUNDARY = "polytag-boundary"
CONTENT_TYPE = f"multipart/form-data; boundary={BOUNDARY}"


def multipart_body(*parts):
    """Build a body from ``(name, filename, data)`` parts; filename may be None."""
    body = b""
    for name, filename, data in parts:
        disposition = f'form-data; name="{name}"'
        if filename is not None:
            disposition += f'; filename="{filename}"'
        body += (
            f"--{BOUNDARY}\r\n"
            f"Content-Disposition: {disposition}\r\n"
            "Content-Type: application/octet-stream\r\n\r\n"
        ).encode() + data + b"\r\n"
    return body + f"--{BOUNDARY}--\r\n".encode()


async def split(data: bytes, size: int):
    for i in range(0, len(data), size):
        yield data[i:i + size]


@pytest.mark.parametrize("header, expected", [
    (None, None),
    ("bytes 0-4/5", 0),
    ("bytes 100-199/1000", 100),
    ("bytes 5-9/*", 5),
    ("bytes */1000", None),
])
def test_parse_content_range(header, expected):
    assert parse_content_range(header) == expected


@pytest.mark.parametrize("header", [
    "items 0-4/5",
    "bytes 5-4/10",
    "bytes 0-10/10",
    "bytes abc",
])
def test_parse_content_range_rejects_malformed(header):
    with pytest.raises(InvalidContentRange) as exc_info:
        parse_content_range(header)
    assert exc_info.value.kind is ErrorKind.BAD_REQUEST


async def test_reader_streams_single_field():
    body = multipart_body(("file", "hello.txt", b"hello world"))
    reader = MultipartFieldReader(CONTENT_TYPE, split(body, 5))

    field = await reader.next_field()
    assert field.name == "file"
    assert field.filename == "hello.txt"
    assert b"".join([chunk async for chunk in field]) == b"hello world"
    assert await reader.next_field() is None


async def test_reader_skips_unread_field_data():
    body = multipart_body(("a", "a.bin", b"x" * 50), ("b", None, b"second"))
    reader = MultipartFieldReader(CONTENT_TYPE, split(body, 7))

    first = await reader.next_field()
    second = await reader.next_field()

    assert first.filename == "a.bin"
    assert second.name == "b"
    assert second.filename is None
    assert b"".join([chunk async for chunk in second]) == b"second"
    assert await reader.next_field() is None


def test_reader_requires_multipart_content_type():
    with pytest.raises(MultipartError):
        MultipartFieldReader("application/json", split(b"{}", 2))
    with pytest.raises(MultipartError):
        MultipartFieldReader("multipart/form-data", split(b"", 2))
    with pytest.raises(MultipartError):
        MultipartFieldReader(None, split(b"", 2))


async def test_reader_wraps_body_failures():
    async def broken():
        yield f"--{BOUNDARY}\r\n".encode()
        raise ConnectionResetError("peer went away")

    reader = MultipartFieldReader(CONTENT_TYPE, broken())
    with pytest.raises(StreamReadFailed):
        await reader.next_field()


async def test_non_utf8_filename_is_read_as_latin1():
    body = (
        f"--{BOUNDARY}\r\n".encode()
        + b'Content-Disposition: form-data; name="file"; filename="caf\xe9.txt"\r\n\r\n'
        + b"hello\r\n"
        + f"--{BOUNDARY}--\r\n".encode()
    )
    reader = MultipartFieldReader(CONTENT_TYPE, split(body, 16))

    field = await reader.next_field()

    assert field.filename == "café.txt"
    assert b"".join([chunk async for chunk in field]) == b"hello"
