"""Streaming multipart ingestion of a single submitted file.

The request body is fed chunk by chunk into a python-multipart parser. Parser
callbacks are translated into tagged events which drive ``UploadStateMachine``,
the only place where the outcome of an upload is decided. Once the machine has
settled, later events (the parser keeps emitting while the rest of the body is
drained) no longer change the outcome.
"""

import gzip
import zlib
from collections.abc import AsyncIterable, AsyncIterator, Mapping
from dataclasses import dataclass
from enum import StrEnum

from python_multipart import MultipartParser
from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import parse_options_header

from app.core.errors import UploadError
from app.core.logger import LogIcon, logger
from app.models.core import COMPRESSION_FIELD, FILE_FIELD, UploadResult

DEFAULT_CHUNK_SIZE = 64 * 1024

BodySource = bytes | str | AsyncIterable[bytes]


class UploadState(StrEnum):
    IDLE = "idle"
    FIELDS_ONLY = "fields_only"
    FILE_IN_PROGRESS = "file_in_progress"
    FILE_RECEIVED = "file_received"
    SETTLED_SUCCESS = "settled_success"
    SETTLED_FAILURE = "settled_failure"


SETTLED_STATES = frozenset({UploadState.SETTLED_SUCCESS, UploadState.SETTLED_FAILURE})


# -----------------------------------------------------------------------------
# Events
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ParserFailed:
    message: str


@dataclass(frozen=True, slots=True)
class FieldReceived:
    name: str
    value: str


@dataclass(frozen=True, slots=True)
class FileStarted:
    field_name: str


@dataclass(frozen=True, slots=True)
class FileChunk:
    data: bytes


@dataclass(frozen=True, slots=True)
class FileChunkFailed:
    message: str


@dataclass(frozen=True, slots=True)
class FileLimitReached:
    max_size: int


@dataclass(frozen=True, slots=True)
class FileEnded:
    pass


@dataclass(frozen=True, slots=True)
class StreamFinished:
    pass


UploadEvent = (
    ParserFailed
    | FieldReceived
    | FileStarted
    | FileChunk
    | FileChunkFailed
    | FileLimitReached
    | FileEnded
    | StreamFinished
)


def decompress(payload: bytes, compression: str | None) -> bytes:
    """Gunzip ``payload`` when ``compression`` is exactly ``"gzip"``, otherwise return it unchanged."""
    match compression:
        case "gzip":
            try:
                return gzip.decompress(payload)
            except (OSError, EOFError, zlib.error) as err:
                raise UploadError(str(err) or "invalid gzip payload") from err
        case _:
            return payload


# -----------------------------------------------------------------------------
# State machine
# -----------------------------------------------------------------------------


class UploadStateMachine:
    """Single transition function over upload events with an exactly-once settle."""

    def __init__(self) -> None:
        self.state = UploadState.IDLE
        self.fields: dict[str, str] = {}
        self._chunks: list[bytes] = []
        self._payload: bytes | None = None
        self._outcome: UploadResult | UploadError | None = None

    @property
    def settled(self) -> bool:
        return self.state in SETTLED_STATES

    @property
    def outcome(self) -> UploadResult | UploadError | None:
        return self._outcome

    def transition(self, event: UploadEvent) -> UploadState:
        if self.settled:
            logger.debug("Upload event ignored after settle", icon=LogIcon.STREAMING, event_type=type(event).__name__)
            return self.state

        match event:
            case ParserFailed(message) | FileChunkFailed(message):
                self._fail(message)
            case FieldReceived(name, value):
                if name != FILE_FIELD:
                    self.fields[name] = value
                if self.state is UploadState.IDLE:
                    self.state = UploadState.FIELDS_ONLY
            case FileStarted(field_name) if field_name != FILE_FIELD:
                self._fail(f"only fieldname '{FILE_FIELD}' is allowed")
            case FileStarted():
                if self.state in (UploadState.FILE_IN_PROGRESS, UploadState.FILE_RECEIVED):
                    self._fail("only 1 file is allowed")
                else:
                    self.state = UploadState.FILE_IN_PROGRESS
            case FileChunk(data) if self.state is UploadState.FILE_IN_PROGRESS:
                self._chunks.append(data)
            case FileLimitReached():
                self._fail("file too large")
            case FileEnded() if self.state is UploadState.FILE_IN_PROGRESS:
                self._payload = b"".join(self._chunks)
                self._chunks.clear()
                self.state = UploadState.FILE_RECEIVED
            case StreamFinished():
                self._finish()

        return self.state

    def result(self) -> UploadResult:
        """Return the successful outcome or raise the failure."""
        match self._outcome:
            case UploadResult():
                return self._outcome
            case UploadError():
                raise self._outcome
            case _:
                raise UploadError("upload did not complete")

    def _finish(self) -> None:
        if self.state is UploadState.FILE_IN_PROGRESS:
            self._fail("Unexpected end of form")
            return
        if self._payload is None:
            self._fail("No file found")
            return
        if not self._payload:
            self._fail("File is empty")
            return

        try:
            payload = decompress(self._payload, self.fields.get(COMPRESSION_FIELD))
        except UploadError as err:
            self._settle(UploadState.SETTLED_FAILURE, err)
            return

        self._settle(UploadState.SETTLED_SUCCESS, UploadResult(payload, self.fields))

    def _fail(self, reason: str) -> None:
        self._settle(UploadState.SETTLED_FAILURE, UploadError(reason))

    def _settle(self, state: UploadState, outcome: UploadResult | UploadError) -> None:
        self.state = state
        self._outcome = outcome
        self._payload = None
        self._chunks.clear()


# -----------------------------------------------------------------------------
# Multipart reader
# -----------------------------------------------------------------------------


def parse_boundary(headers: Mapping[str, str]) -> bytes:
    """Extract the multipart boundary from the request content type."""
    content_type = headers.get("content-type") or headers.get("Content-Type")
    if not content_type:
        raise UploadError("Missing Content-Type")

    media_type, options = parse_options_header(content_type)
    if media_type.lower() != b"multipart/form-data":
        raise UploadError(f"Unsupported content type: {media_type.decode('latin-1') or content_type}")

    boundary = options.get(b"boundary")
    if not boundary:
        raise UploadError("Multipart: Boundary not found")
    return boundary


class MultipartReader:
    """Feeds body chunks to the parser and emits one event per parser milestone.

    Acts as the per-file stream as well: it counts file bytes and emits
    ``FileLimitReached`` once ``max_size`` is exceeded, after which no more
    chunks are pulled from the body source.
    """

    def __init__(self, boundary: bytes, machine: UploadStateMachine, max_size: int) -> None:
        self._machine = machine
        self._max_size = max_size
        self._parser = MultipartParser(
            boundary,
            {
                "on_part_begin": self._on_part_begin,
                "on_part_data": self._on_part_data,
                "on_part_end": self._on_part_end,
                "on_header_field": self._on_header_field,
                "on_header_value": self._on_header_value,
                "on_header_end": self._on_header_end,
                "on_headers_finished": self._on_headers_finished,
                "on_end": self._on_end,
            },
        )
        self.halted = False
        self._ended = False
        self._reset_part()

    async def consume(self, source: AsyncIterable[bytes]) -> None:
        chunks = aiter(source)
        while not self.halted:
            try:
                chunk = await anext(chunks)
            except StopAsyncIteration:
                break
            except Exception as err:
                message = str(err) or type(err).__name__
                self._emit(FileChunkFailed(message) if self._is_file else ParserFailed(message))
                self.halted = True
                return
            self._feed(chunk)

        if not self.halted:
            self._parser.finalize()
            self._emit(StreamFinished() if self._ended else ParserFailed("Unexpected end of form"))

    def _feed(self, chunk: bytes) -> None:
        try:
            self._parser.write(chunk)
        except MultipartParseError as err:
            self.halted = True
            self._emit(ParserFailed(str(err)))

    def _emit(self, event: UploadEvent) -> None:
        self._machine.transition(event)

    def _reset_part(self) -> None:
        self._headers: dict[str, str] = {}
        self._header_field = bytearray()
        self._header_value = bytearray()
        self._name: str | None = None
        self._is_file = False
        self._field_value = bytearray()
        self._file_size = 0

    # Parser callbacks

    def _on_part_begin(self) -> None:
        self._reset_part()

    def _on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field.extend(data[start:end])

    def _on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value.extend(data[start:end])

    def _on_header_end(self) -> None:
        if self._header_field:
            name = self._header_field.decode("latin-1").lower()
            self._headers[name] = self._header_value.decode("utf-8", errors="replace")
        self._header_field = bytearray()
        self._header_value = bytearray()

    def _on_headers_finished(self) -> None:
        _, options = parse_options_header(self._headers.get("content-disposition", ""))
        if name := options.get(b"name"):
            self._name = name.decode("utf-8", errors="replace")
        self._is_file = b"filename" in options

        if self._is_file:
            self._emit(FileStarted(self._name or ""))

    def _on_part_data(self, data: bytes, start: int, end: int) -> None:
        chunk = bytes(data[start:end])
        if not self._is_file:
            self._field_value.extend(chunk)
            return
        if self.halted:
            return

        self._file_size += len(chunk)
        if self._file_size > self._max_size:
            self.halted = True
            logger.warning("Upload exceeds size limit", icon=LogIcon.UPLOAD, max_size=self._max_size)
            self._emit(FileLimitReached(self._max_size))
            return
        self._emit(FileChunk(chunk))

    def _on_part_end(self) -> None:
        if self._is_file:
            if not self.halted:
                self._emit(FileEnded())
        elif self._name is not None:
            self._emit(FieldReceived(self._name, self._field_value.decode("utf-8", errors="replace")))
        self._reset_part()

    def _on_end(self) -> None:
        self._ended = True


async def iter_body(body: BodySource, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
    """Yield a buffered body in ``chunk_size`` slices, or pass an async stream through."""
    match body:
        case str():
            body = body.encode("utf-8")
        case bytes() | bytearray() | memoryview():
            pass
        case _:
            async for chunk in body:
                yield bytes(chunk)
            return

    view = memoryview(body)
    for offset in range(0, len(view), chunk_size):
        yield bytes(view[offset : offset + chunk_size])


async def read_upload(
    headers: Mapping[str, str],
    body: BodySource,
    *,
    max_size: int,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> UploadResult:
    """Read the single ``datafile`` part of a multipart body.

    Raises ``UploadError`` for every ingestion failure.
    """
    boundary = parse_boundary(headers)
    machine = UploadStateMachine()
    reader = MultipartReader(boundary, machine, max_size)

    await reader.consume(iter_body(body, chunk_size))

    result = machine.result()
    logger.info(
        "Upload received",
        icon=LogIcon.UPLOAD,
        size=len(result.payload),
        compression=result.compression,
        fields=len(result.fields),
    )
    return result
