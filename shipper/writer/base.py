"""
Base writer interface for the event shipper.

A delivery framework drives a writer through its lifecycle:
start() once, format() per event, write() per buffered chunk, close() once.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict

from ..read.chunk_reader import ChunkData, ChunkReader

LOG = logging.getLogger(__name__)


class Writer(ABC):
    """
    Base class for all writers.
    """

    @abstractmethod
    def start(self) -> None:
        """
        Activate the writer. Raises if the destination is unusable.
        """
        pass

    def format(self, tag: str, time: Any, record: Dict[str, Any]) -> str:
        """
        Encode one event for buffering.

        Args:
            tag: Event tag
            time: Event timestamp
            record: Event fields

        Returns:
            Chunk line, or the empty sentinel for records that must not be shipped
        """
        return ChunkReader.format_event(tag, time, record)

    @abstractmethod
    def write(self, chunk: ChunkData) -> int:
        """
        Write one buffered chunk to the destination.

        Args:
            chunk: Chunk produced from format() output

        Returns:
            Number of points written
        """
        pass

    def close(self) -> None:
        """
        Optional method to close the writer and clean up resources.
        Default implementation does nothing - override in subclasses that need cleanup.
        """
        pass
