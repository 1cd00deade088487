"""
Tests for the command line entry point.
"""
import logging
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest import mock

from .core.errors import ConfigError, StoreWriteError
from .main import create_argument_parser, main, ship
from .writer.base import Writer


class RecordingWriter(Writer):
    """Writer double that records its lifecycle."""

    def __init__(self, fail_on_write=False):
        self.calls = []
        self.chunks = []
        self.fail_on_write = fail_on_write

    def start(self):
        self.calls.append('start')

    def write(self, chunk):
        self.calls.append('write')
        if self.fail_on_write:
            raise StoreWriteError('down')
        self.chunks.append(chunk)
        return chunk.count('\n')

    def close(self):
        self.calls.append('close')


class TestShip(unittest.TestCase):
    """Test cases for ship()."""

    def test_ship_chunks_events(self):
        writer = RecordingWriter()
        events = [('t', i, {'a<int>': i}) for i in range(5)] + [('t', 9, {})]
        self.assertEqual(ship(writer, events, chunk_size=2), 5)
        self.assertEqual(writer.calls, ['start', 'write', 'write', 'write', 'close'])

    def test_ship_closes_on_failure(self):
        writer = RecordingWriter(fail_on_write=True)
        with self.assertRaises(StoreWriteError):
            ship(writer, [('t', 1, {'a<int>': 1})], chunk_size=10)
        self.assertEqual(writer.calls, ['start', 'write', 'close'])

    def test_ship_closes_when_start_fails(self):
        writer = RecordingWriter()
        writer.start = mock.Mock(side_effect=ConfigError('missing database'))
        with self.assertRaises(ConfigError):
            ship(writer, [], chunk_size=10)
        self.assertEqual(writer.calls, ['close'])


class TestMain(unittest.TestCase):
    """Test cases for main()."""

    def setUp(self):
        self.temp_dir = TemporaryDirectory()
        self.events = Path(self.temp_dir.name) / 'events.jsonl'
        self.events.write_text('["t", 1, {"a<int>": 1}]\n["t", 2, {}]\n', encoding='utf-8')

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_parser_requires_events(self):
        with self.assertRaises(SystemExit):
            create_argument_parser().parse_args([])

    def test_main_ships_file(self):
        writer = RecordingWriter()
        with mock.patch('shipper.main.WriterFactory.create_writer_from_config', return_value=writer), \
                mock.patch('shipper.main.LoggingConfigurator.setup_logging'):
            main(['--fromJson', str(self.events), '--dbname', 'metrics', '--chunkSize', '1'])
        self.assertEqual(writer.calls, ['start', 'write', 'close'])

    def test_main_exits_on_store_failure(self):
        writer = RecordingWriter()
        writer.start = mock.Mock(side_effect=ConfigError('Database metrics doesn\'t exist'))
        with mock.patch('shipper.main.WriterFactory.create_writer_from_config', return_value=writer), \
                mock.patch('shipper.main.LoggingConfigurator.setup_logging'):
            with self.assertRaises(SystemExit) as ctx:
                main(['--fromJson', str(self.events), '--dbname', 'metrics'])
        self.assertEqual(ctx.exception.code, 1)

    def test_main_rejects_bad_config(self):
        with self.assertRaises(SystemExit) as ctx:
            main(['--fromJson', str(self.events), '--port', '0'])
        self.assertEqual(ctx.exception.code, 2)


if __name__ == '__main__':
    logging.basicConfig(level=logging.ERROR)
    unittest.main()
