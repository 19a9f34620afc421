"""Streaming access to upload request bodies.

``parse_content_range`` turns a ``Content-Range`` header into a resume offset.
``MultipartFieldReader`` walks a multipart/form-data body field by field without
buffering it, so file data can be streamed straight into the file driver.
"""
import re
from collections import deque
from typing import AsyncIterator, Deque, Dict, Optional, Tuple

from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header

from polytag.errors import BadRequestError
from polytag.services.storage_errors import StreamReadFailed


class InvalidContentRange(BadRequestError):
    def __init__(self, value: str):
        self.value = value
        super().__init__(f"invalid content-range header `{value}`")


class MultipartError(BadRequestError):
    def __init__(self, message: str = "invalid multipart request"):
        super().__init__(message)


class NoFieldFound(BadRequestError):
    def __init__(self):
        super().__init__("field was not found; a field is required")


class MultipleFieldFound(BadRequestError):
    def __init__(self):
        super().__init__("multiple fields were found; only one field is allowed")


class InvalidFileName(BadRequestError):
    def __init__(self):
        super().__init__("invalid filename; it must be a valid filename")


_CONTENT_RANGE = re.compile(r"^bytes\s+(?:(\d+)-(\d+)|\*)/(\d+|\*)$")


def parse_content_range(value: Optional[str]) -> Optional[int]:
    """Start offset of ``bytes <start>-<end>/<total>``.

    Returns None when the header is absent or carries no range (``bytes */<total>``).
    """
    if value is None:
        return None
    match = _CONTENT_RANGE.match(value.strip())
    if not match:
        raise InvalidContentRange(value)
    start, end, total = match.groups()
    if start is None:
        return None
    start, end = int(start), int(end)
    if end < start or (total != "*" and end >= int(total)):
        raise InvalidContentRange(value)
    return start


class MultipartField:
    """One part of a multipart body; iterate it to stream its data."""

    def __init__(self, reader: "MultipartFieldReader", name: Optional[str], filename: Optional[str]):
        self._reader = reader
        self.name = name
        self.filename = filename
        self.consumed = False

    async def __aiter__(self) -> AsyncIterator[bytes]:
        while not self.consumed:
            event, payload = await self._reader._next_event()
            if event == "data":
                yield payload
            elif event == "part_end":
                self.consumed = True
            else:
                raise MultipartError("unexpected end of multipart field")


class MultipartFieldReader:
    """Pull-style reader over a push-style ``python_multipart`` parser.

    ``chunks`` is the raw request body (e.g. ``request.stream()``).
    """

    def __init__(self, content_type: Optional[str], chunks: AsyncIterator[bytes]):
        if not content_type:
            raise MultipartError("missing content-type header")
        ctype, params = parse_options_header(content_type)
        if ctype != b"multipart/form-data":
            raise MultipartError(f"expected multipart/form-data, got `{ctype.decode('latin-1')}`")
        boundary = params.get(b"boundary")
        if not boundary:
            raise MultipartError("missing multipart boundary")

        self._chunks = chunks.__aiter__()
        self._events: Deque[Tuple[str, object]] = deque()
        self._finished = False
        self._current: Optional[MultipartField] = None
        self._header_field = b""
        self._header_value = b""
        self._headers: Dict[bytes, bytes] = {}

        callbacks = {
            "on_part_begin": self._on_part_begin,
            "on_part_data": self._on_part_data,
            "on_part_end": self._on_part_end,
            "on_header_field": self._on_header_field,
            "on_header_value": self._on_header_value,
            "on_header_end": self._on_header_end,
            "on_headers_finished": self._on_headers_finished,
            "on_end": self._on_end,
        }
        self._parser = MultipartParser(boundary, callbacks)

    def _on_part_begin(self) -> None:
        self._headers = {}

    def _on_part_data(self, data: bytes, start: int, end: int) -> None:
        self._events.append(("data", bytes(data[start:end])))

    def _on_part_end(self) -> None:
        self._events.append(("part_end", None))

    def _on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field += data[start:end]

    def _on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def _on_header_end(self) -> None:
        self._headers[self._header_field.lower()] = self._header_value
        self._header_field = b""
        self._header_value = b""

    def _on_headers_finished(self) -> None:
        self._events.append(("headers", self._headers))

    def _on_end(self) -> None:
        self._events.append(("end", None))

    async def _next_event(self) -> Tuple[str, object]:
        while not self._events:
            if self._finished:
                return "end", None
            try:
                chunk = await self._chunks.__anext__()
            except StopAsyncIteration:
                self._finished = True
                try:
                    self._parser.finalize()
                except MultipartParseError as e:
                    raise MultipartError() from e
                continue
            except Exception as e:
                raise StreamReadFailed() from e
            try:
                self._parser.write(chunk)
            except MultipartParseError as e:
                raise MultipartError() from e
        return self._events.popleft()

    async def next_field(self) -> Optional[MultipartField]:
        """Advance to the next field, skipping unread data of the current one."""
        if self._current is not None and not self._current.consumed:
            async for _ in self._current:
                pass

        while True:
            event, payload = await self._next_event()
            if event == "end":
                self._current = None
                return None
            if event == "headers":
                break

        disposition = payload.get(b"content-disposition")
        if disposition is None:
            raise MultipartError("missing content-disposition header")
        _, options = parse_options_header(disposition)
        name = options.get(b"name")
        filename = options.get(b"filename")
        self._current = MultipartField(
            self,
            _decode_option(name),
            _decode_option(filename),
        )
        return self._current


def _decode_option(value: Optional[bytes]) -> Optional[str]:
    """Header parameters are UTF-8 by convention; anything else is read as latin-1."""
    if value is None:
        return None
    try:
        return value.decode("utf-8")
    except UnicodeDecodeError:
        return value.decode("latin-1")
