"""
Tests for the chunk reader module.
"""
import io
import json
import logging
import unittest
from decimal import Decimal

from .chunk_reader import ChunkReader, INVALID_RECORD, read_events_file


class TestChunkReader(unittest.TestCase):
    """Test cases for ChunkReader class."""

    def test_format_event(self):
        """Test formatting a valid event as one JSON line."""
        line = ChunkReader.format_event('app', 100, {'cpu<float>': '0.5'})
        self.assertTrue(line.endswith('\n'))
        self.assertEqual(json.loads(line), ['app', 100, {'cpu<float>': '0.5'}])

    def test_format_invalid_records(self):
        """Test empty and null-valued records become the sentinel."""
        self.assertEqual(ChunkReader.format_event('app', 100, {}), INVALID_RECORD)
        self.assertEqual(ChunkReader.format_event('app', 100, {'a': 1, 'b': None}), INVALID_RECORD)

    def test_format_decimal_time(self):
        line = ChunkReader.format_event('app', Decimal('100.5'), {'a<int>': 1})
        self.assertEqual(json.loads(line)[1], '100.5')

    def test_iter_events(self):
        """Test decoding a chunk of several events."""
        chunk = (ChunkReader.format_event('t1', 100, {'a<int>': 1})
                 + INVALID_RECORD
                 + ChunkReader.format_event('t2', 200, {'b<int>': 2}))
        events = list(ChunkReader.iter_events(chunk))
        self.assertEqual(events, [('t1', 100, {'a<int>': 1}), ('t2', 200, {'b<int>': 2})])

    def test_iter_events_bytes_and_lines(self):
        chunk = b'["t1", 1, {"a<int>": 1}]\n'
        self.assertEqual(len(list(ChunkReader.iter_events(chunk))), 1)
        lines = ['["t1", 1, {"a<int>": 1}]\n', b'["t2", 2, {"a<int>": 2}]\n']
        self.assertEqual([e[0] for e in ChunkReader.iter_events(lines)], ['t1', 't2'])

    def test_iter_events_object_form(self):
        chunk = '{"tag": "t", "time": 5, "record": {"x<int>": 1}}\n'
        self.assertEqual(list(ChunkReader.iter_events(chunk)), [('t', 5, {'x<int>': 1})])

    def test_bad_lines_are_skipped(self):
        """Test undecodable lines do not abort the chunk."""
        chunk = 'not json\n["t", 1]\n["t", 1, "record"]\n{"tag": "t"}\n["ok", 2, {"a<int>": 1}]\n'
        with self.assertLogs('shipper.read.chunk_reader', level='WARNING') as logs:
            events = list(ChunkReader.iter_events(chunk))
        self.assertEqual(events, [('ok', 2, {'a<int>': 1})])
        self.assertEqual(len(logs.records), 4)

    def test_invalid_utf8_line_is_skipped(self):
        """Test a line with invalid UTF-8 bytes does not abort the chunk."""
        chunk = b'["t", 1, {"a<int>": 1}]\n["t", 2, {"b\xff<int>": 2}]\n["t", 3, {"c<int>": 3}]\n'
        with self.assertLogs('shipper.read.chunk_reader', level='WARNING') as logs:
            events = list(ChunkReader.iter_events(chunk))
        self.assertEqual([e[1] for e in events], [1, 3])
        self.assertEqual(len(logs.records), 1)

        with self.assertLogs('shipper.read.chunk_reader', level='WARNING'):
            events = list(ChunkReader.iter_events(chunk.splitlines(keepends=True)))
        self.assertEqual([e[1] for e in events], [1, 3])

    def test_build_chunks(self):
        formatted = [ChunkReader.format_event('t', i, {'a<int>': i}) for i in range(1, 6)]
        formatted.insert(2, INVALID_RECORD)
        chunks = list(ChunkReader.build_chunks(formatted, 2))
        self.assertEqual([len(list(ChunkReader.iter_events(c))) for c in chunks], [2, 2, 1])

    def test_build_chunks_empty(self):
        self.assertEqual(list(ChunkReader.build_chunks([INVALID_RECORD], 10)), [])

    def test_read_events_file(self):
        stream = io.StringIO('["t", 1, {"a<int>": 1}]\n\n{"tag": "u", "time": 2, "record": {}}\n')
        self.assertEqual(list(read_events_file(stream)), [('t', 1, {'a<int>': 1}), ('u', 2, {})])


if __name__ == '__main__':
    logging.basicConfig(level=logging.ERROR)
    unittest.main()
