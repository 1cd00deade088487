"""
Chunk encoding and decoding for buffered events.
"""
from .chunk_reader import ChunkReader, INVALID_RECORD, read_events_file

__all__ = [
    'ChunkReader',
    'INVALID_RECORD',
    'read_events_file',
]
