"""
Server-sent event parsing for the Cortex agent response stream.

Network reads do not line up with SSE records: one read may carry several
records or only part of one. ``SSERecordBuffer`` reassembles complete records
from raw chunks, and ``parse_sse_record`` turns each record into a typed event
without ever raising. CRLF, CR and LF line endings are all accepted.
"""

import codecs
import json
from typing import Any, AsyncIterable, AsyncIterator, List, Union

import structlog

from .errors import ParseError
from .models import (
    DoneEvent,
    MalformedEvent,
    MessageDelta,
    MessageEvent,
    OtherEvent,
    StreamEvent,
)

logger = structlog.get_logger()

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"
MESSAGE_DELTA = "message.delta"
RECORD_SEPARATOR = "\n\n"


def normalize_newlines(text: str) -> str:
    """Map the three SSE line endings (CRLF, CR, LF) to LF."""
    return text.replace("\r\n", "\n").replace("\r", "\n")


def _extract_payload(record: str) -> str:
    data_lines = []
    for line in record.split("\n"):
        if not line.startswith(DATA_PREFIX):
            continue
        value = line[len(DATA_PREFIX) :]
        if value.startswith(" "):
            value = value[1:]
        data_lines.append(value)
    return "\n".join(data_lines).strip()


def _load_json(payload: str) -> Any:
    try:
        return json.loads(payload)
    except json.JSONDecodeError as e:
        raise ParseError(f"Failed to parse: {payload[:200]} ({e.msg})") from e


def parse_delta_content(content: List[Any]) -> MessageDelta:
    """Split delta content entries into text and tool results, keeping order."""
    delta = MessageDelta()
    for entry in content:
        if not isinstance(entry, dict):
            continue
        entry_type = entry.get("type")
        if entry_type == "text":
            delta.text += entry.get("text") or ""
        elif entry_type == "tool_results":
            delta.tool_results.append(entry.get("tool_results"))
    return delta


def parse_sse_record(raw: Union[bytes, str]) -> StreamEvent:
    """
    Parse one SSE record into a stream event.

    An empty payload or ``[DONE]`` is a done event. Invalid JSON or a
    ``message.delta`` without usable content is malformed. Any other object is
    passed through untouched.
    """
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")

    payload = _extract_payload(normalize_newlines(raw))
    if not payload or payload == DONE_SENTINEL:
        return DoneEvent()

    try:
        data = _load_json(payload)
    except ParseError as e:
        return MalformedEvent(reason=e.message, raw=raw)

    if isinstance(data, dict) and data.get("object") == MESSAGE_DELTA:
        delta = data.get("delta")
        if not isinstance(delta, dict):
            return MalformedEvent(reason="message.delta without a delta object", raw=raw)

        content = delta.get("content")
        if content is None:
            return OtherEvent(data=data)
        if not isinstance(content, list):
            return MalformedEvent(reason="message.delta content is not a list", raw=raw)
        return MessageEvent(delta=parse_delta_content(content))

    return OtherEvent(data=data)


class SSERecordBuffer:
    """Reassembles complete SSE records from arbitrarily split byte chunks."""

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending = ""
        self._after_cr = False

    def feed(self, chunk: Union[bytes, str]) -> List[str]:
        """Add a chunk and return every record it completed."""
        text = self._decoder.decode(chunk) if isinstance(chunk, bytes) else chunk
        # A CRLF split across chunks: the CR already ended the line
        if self._after_cr and text.startswith("\n"):
            text = text[1:]
            self._after_cr = False
        if text:
            self._after_cr = text.endswith("\r")
        self._pending += normalize_newlines(text)

        records = []
        while RECORD_SEPARATOR in self._pending:
            record, self._pending = self._pending.split(RECORD_SEPARATOR, 1)
            if record.strip():
                records.append(record)
        return records

    def flush(self) -> List[str]:
        """Return the trailing record left when the stream ends without a separator."""
        remaining = normalize_newlines(
            self._pending + self._decoder.decode(b"", final=True)
        ).strip()
        self._pending = ""
        self._after_cr = False
        return [remaining] if remaining else []


async def aiter_stream_events(
    chunks: AsyncIterable[bytes],
) -> AsyncIterator[StreamEvent]:
    """Yield stream events in wire order from an async iterable of raw chunks."""
    buffer = SSERecordBuffer()
    async for chunk in chunks:
        if not chunk:
            continue
        for record in buffer.feed(chunk):
            yield parse_sse_record(record)

    for record in buffer.flush():
        logger.debug("Parsing unterminated trailing SSE record")
        yield parse_sse_record(record)
