"""
Tests for shipper configuration and metrics.
"""
import argparse
import json
import logging
import os
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest import mock

from .config import ShipperConfig, parse_bool
from .errors import ConfigError
from .logging_config import LoggingConfigurator, QUIET_LOGGERS
from .metrics import ShipperMetrics


class TestShipperConfig(unittest.TestCase):
    """Test cases for ShipperConfig."""

    def setUp(self):
        """Set up test environment."""
        self.temp_dir = TemporaryDirectory()
        self.temp_path = Path(self.temp_dir.name)

    def tearDown(self):
        """Clean up after tests."""
        self.temp_dir.cleanup()

    def test_defaults(self):
        config = ShipperConfig()
        self.assertEqual(config.url, 'http://localhost:8086')
        self.assertEqual(config.time_key, 'time')
        self.assertEqual(config.time_precision, 's')
        self.assertIsNone(config.retry)
        self.assertTrue(config.verify_ssl)
        self.assertEqual(config.api_token, 'root')

    def test_token_overrides_password(self):
        self.assertEqual(ShipperConfig(password='pw', token='tok').api_token, 'tok')

    def test_ssl_url(self):
        self.assertEqual(ShipperConfig(host='db', port=8181, use_ssl=True).url, 'https://db:8181')

    def test_validation(self):
        """Test invalid values raise ConfigError."""
        invalid = [
            {'time_precision': 'd'},
            {'port': 0},
            {'retry': -1},
            {'chunk_size': 0},
            {'dbname': ''},
            {'time_key': ''},
        ]
        for values in invalid:
            with self.subTest(values=values):
                with self.assertRaises(ConfigError):
                    ShipperConfig(**values)

    def test_config_error_is_value_error(self):
        with self.assertRaises(ValueError):
            ShipperConfig(time_precision='x')

    def test_read_yaml_file(self):
        path = self.temp_path / 'shipper.yaml'
        path.write_text('host: db\nport: 8181\nretry: 3\nuse_ssl: true\nunknown: 1\n', encoding='utf-8')
        with self.assertLogs('shipper.core.config', level='WARNING'):
            values = ShipperConfig.read_file(str(path))
        self.assertEqual(values, {'host': 'db', 'port': 8181, 'retry': 3, 'use_ssl': True})

    def test_read_json_file(self):
        path = self.temp_path / 'shipper.json'
        path.write_text(json.dumps({'dbname': 'metrics', 'time_precision': 'ms'}), encoding='utf-8')
        self.assertEqual(ShipperConfig.read_file(str(path)), {'dbname': 'metrics', 'time_precision': 'ms'})

    def test_missing_file(self):
        self.assertEqual(ShipperConfig.read_file(str(self.temp_path / 'missing.yaml')), {})

    def test_bad_files(self):
        bad_yaml = self.temp_path / 'bad.yaml'
        bad_yaml.write_text('host: [unclosed\n', encoding='utf-8')
        list_yaml = self.temp_path / 'list.yaml'
        list_yaml.write_text('- a\n- b\n', encoding='utf-8')
        other = self.temp_path / 'shipper.ini'
        other.write_text('[influx]\n', encoding='utf-8')
        for path in (bad_yaml, list_yaml, other):
            with self.subTest(path=path.name):
                with self.assertRaises(ConfigError):
                    ShipperConfig.read_file(str(path))

    def test_read_env(self):
        environ = {
            'INFLUXDB_HOST': 'envhost',
            'INFLUXDB_PORT': '9999',
            'INFLUXDB_VERIFY_SSL': 'false',
            'INFLUXDB_RETRY': '',
        }
        self.assertEqual(ShipperConfig.read_env(environ),
                         {'host': 'envhost', 'port': 9999, 'verify_ssl': False})

    def test_read_env_invalid(self):
        with self.assertRaises(ConfigError):
            ShipperConfig.read_env({'INFLUXDB_PORT': 'eighty'})
        with self.assertRaises(ConfigError):
            ShipperConfig.read_env({'INFLUXDB_USE_SSL': 'maybe'})

    def test_load_precedence(self):
        """Test file < environment < arguments."""
        path = self.temp_path / 'shipper.yaml'
        path.write_text('host: filehost\ndbname: filedb\nuser: fileuser\n', encoding='utf-8')
        environ = {'INFLUXDB_DATABASE': 'envdb', 'INFLUXDB_USER': 'envuser'}
        args = argparse.Namespace(user='arguser', timeKey='ts', verifySsl=None)

        config = ShipperConfig.load(config_file=str(path), args=args, environ=environ)
        self.assertEqual(config.host, 'filehost')
        self.assertEqual(config.dbname, 'envdb')
        self.assertEqual(config.user, 'arguser')
        self.assertEqual(config.time_key, 'ts')
        self.assertTrue(config.verify_ssl)

    def test_load_uses_os_environ(self):
        with mock.patch.dict(os.environ, {'INFLUXDB_TIME_PRECISION': 'n'}):
            self.assertEqual(ShipperConfig.load().time_precision, 'n')

    def test_parse_bool(self):
        self.assertTrue(parse_bool('Yes'))
        self.assertFalse(parse_bool('0'))
        self.assertTrue(parse_bool(True))

    def test_to_dict(self):
        values = ShipperConfig(dbname='metrics').to_dict()
        self.assertEqual(values['dbname'], 'metrics')
        self.assertIn('verify_ssl', values)


class TestLoggingConfigurator(unittest.TestCase):
    """Test cases for LoggingConfigurator."""

    def setUp(self):
        self.saved = {name: logging.getLogger(name).level for name in QUIET_LOGGERS}

    def tearDown(self):
        for name, level in self.saved.items():
            logging.getLogger(name).setLevel(level)

    def test_libraries_quiet_at_info(self):
        with mock.patch('shipper.core.logging_config.logging.basicConfig') as basic:
            LoggingConfigurator.setup_logging('INFO')
        self.assertEqual(basic.call_args[1]['level'], logging.INFO)
        for name in QUIET_LOGGERS:
            self.assertEqual(logging.getLogger(name).level, logging.WARNING)

    def test_libraries_verbose_at_debug(self):
        with mock.patch('shipper.core.logging_config.logging.basicConfig'):
            LoggingConfigurator.setup_logging('DEBUG')
        self.assertEqual(logging.getLogger('urllib3').level, logging.DEBUG)

    def test_log_file_handler(self):
        with TemporaryDirectory() as temp_dir:
            log_file = os.path.join(temp_dir, 'logs', 'shipper.log')
            with mock.patch('shipper.core.logging_config.logging.basicConfig') as basic:
                LoggingConfigurator.setup_logging('ERROR', log_file)
            handlers = basic.call_args[1]['handlers']
            self.assertTrue(os.path.isdir(os.path.dirname(log_file)))
            self.assertEqual(len(handlers), 2)
            for handler in handlers:
                handler.close()
        self.assertEqual(logging.getLogger('influxdb_client_3').level, logging.ERROR)


class TestShipperMetrics(unittest.TestCase):
    """Test cases for ShipperMetrics."""

    def test_separate_registries(self):
        first, second = ShipperMetrics(), ShipperMetrics()
        first.points.inc(3)
        self.assertEqual(first.registry.get_sample_value('shipper_points_total'), 3.0)
        self.assertEqual(second.registry.get_sample_value('shipper_points_total'), 0.0)

    def test_record_dropped(self):
        metrics = ShipperMetrics()
        metrics.record_dropped('schema')
        metrics.record_dropped('schema')
        self.assertEqual(
            metrics.registry.get_sample_value('shipper_records_dropped_total', {'reason': 'schema'}), 2.0)

    def test_serve_once(self):
        metrics = ShipperMetrics()
        with mock.patch('shipper.core.metrics.start_http_server') as start:
            metrics.serve(9100)
            metrics.serve(9100)
        start.assert_called_once_with(9100, registry=metrics.registry)


if __name__ == '__main__':
    logging.basicConfig(level=logging.ERROR)
    unittest.main()
