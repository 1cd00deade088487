"""
Chunk encoding for buffered events.

Each event is stored as one JSON line holding ``[tag, time, record]``.
A chunk is the concatenation of such lines. Events whose record is empty
or holds a null value are formatted as the empty sentinel so they never
reach the write path.

Example chunk:
    ["app.metrics", 1700000000, {"cpu<float>": "0.5"}]
    ["app.metrics", 1700000001, {"mem<int>": 2048, "service": "api"}]
"""
import json
import logging
from typing import Any, Dict, Iterable, Iterator, List, Tuple, Union

from ..transform.points import is_invalid_record

logger = logging.getLogger(__name__)

# Formatted result for records that must not be shipped
INVALID_RECORD = ''

Event = Tuple[str, Any, Dict[str, Any]]
ChunkData = Union[str, bytes, Iterable[Union[str, bytes]]]


class ChunkReader:
    """Encodes events into chunk lines and decodes them back."""

    @staticmethod
    def format_event(tag: str, time: Any, record: Dict[str, Any]) -> str:
        """
        Encode one event as a chunk line.

        Returns:
            JSON line terminated by a newline, or INVALID_RECORD
        """
        if is_invalid_record(record):
            return INVALID_RECORD
        return json.dumps([tag, time, record], default=str) + '\n'

    @staticmethod
    def _lines(chunk: ChunkData) -> Iterator[Union[str, bytes]]:
        # Bytes stay undecoded here so a bad line only fails itself
        if isinstance(chunk, (str, bytes)):
            yield from chunk.splitlines()
            return
        for line in chunk:
            yield from line.splitlines()

    @staticmethod
    def parse_event(data: Any) -> Event:
        """
        Normalize a decoded JSON value into an event triple.

        Accepts ``[tag, time, record]`` or ``{"tag": .., "time": .., "record": ..}``.

        Raises:
            ValueError: if the value has neither shape
        """
        if isinstance(data, dict):
            try:
                tag, time, record = data['tag'], data['time'], data['record']
            except KeyError as e:
                raise ValueError(f"event object is missing {e}") from e
        elif isinstance(data, list) and len(data) == 3:
            tag, time, record = data
        else:
            raise ValueError("event must be [tag, time, record]")

        if not isinstance(record, dict):
            raise ValueError("event record must be an object")
        return tag, time, record

    @staticmethod
    def iter_events(chunk: ChunkData) -> Iterator[Event]:
        """
        Decode every event of a chunk.

        Blank lines (invalid-record sentinels) are skipped; a line that does not
        decode is logged and skipped without affecting the rest of the chunk.
        """
        for line_no, line in enumerate(ChunkReader._lines(chunk), start=1):
            if not line.strip():
                continue
            try:
                if isinstance(line, bytes):
                    line = line.decode('utf-8')
                event = ChunkReader.parse_event(json.loads(line))
            except ValueError as e:
                logger.warning(f"Skipping undecodable chunk line {line_no}: {e}")
                continue
            yield event

    @staticmethod
    def build_chunks(formatted: Iterable[str], chunk_size: int) -> Iterator[str]:
        """
        Group formatted events into chunks of at most chunk_size events.

        Sentinels are dropped here and do not count towards the chunk size.
        """
        pending: List[str] = []
        for line in formatted:
            if line == INVALID_RECORD:
                continue
            pending.append(line)
            if len(pending) >= chunk_size:
                yield ''.join(pending)
                pending = []
        if pending:
            yield ''.join(pending)


def read_events_file(stream: Iterable[str]) -> Iterator[Event]:
    """Read events from a JSON-lines stream (one event per line)."""
    return ChunkReader.iter_events(stream)
