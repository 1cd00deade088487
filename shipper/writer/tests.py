"""
Tests for the InfluxDB writer and store.
"""
import json
import logging
import os
import unittest
from tempfile import TemporaryDirectory
from unittest import mock

from influxdb_client_3 import WritePrecision

from .factory import WriterFactory
from .influxdb_writer import InfluxDBWriter
from .store import InfluxStore, parse_database_list
from ..core.config import ShipperConfig
from ..core.errors import AuthorizationError, ConfigError, StoreError, StoreWriteError
from ..core.metrics import ShipperMetrics
from ..transform.points import Point


def make_chunk(*events):
    return ''.join(json.dumps(list(event)) + '\n' for event in events)


class TestInfluxDBWriterStartup(unittest.TestCase):
    """Test cases for the startup database check."""

    def setUp(self):
        self.config = ShipperConfig(dbname='metrics', user='reader')
        self.store = mock.MagicMock(spec=InfluxStore)
        self.writer = InfluxDBWriter(self.config, self.store)

    def test_database_exists(self):
        self.store.list_databases.return_value = ['_internal', 'metrics']
        self.writer.start()
        self.store.connect.assert_called_once_with()
        self.assertTrue(self.writer.started)

    def test_database_missing(self):
        """Test a missing database aborts activation with the databases found."""
        self.store.list_databases.return_value = ['_internal', 'other']
        with self.assertRaises(ConfigError) as ctx:
            self.writer.start()
        self.assertIn('metrics', str(ctx.exception))
        self.assertIn('_internal,other', str(ctx.exception))
        self.assertFalse(self.writer.started)

    def test_authorization_error_is_soft(self):
        """Test a forbidden listing only logs and proceeds."""
        self.store.list_databases.side_effect = AuthorizationError('HTTP 403')
        with self.assertLogs('shipper.writer.influxdb_writer', level='INFO') as logs:
            self.writer.start()
        self.assertTrue(self.writer.started)
        self.assertTrue(any("'reader'" in line for line in logs.output))

    def test_connection_error_is_fatal(self):
        self.store.list_databases.side_effect = StoreError('connection refused')
        with self.assertRaises(StoreError):
            self.writer.start()
        self.assertFalse(self.writer.started)


class TestInfluxDBWriterDispatch(unittest.TestCase):
    """Test cases for chunk writes."""

    def setUp(self):
        self.config = ShipperConfig(dbname='metrics')
        self.store = mock.MagicMock(spec=InfluxStore)
        self.store.list_databases.return_value = ['metrics']
        self.metrics = ShipperMetrics()
        self.writer = InfluxDBWriter(self.config, self.store, metrics=self.metrics)
        self.writer.start()

    def sample(self, name, labels=None):
        return self.metrics.registry.get_sample_value(name, labels or {})

    def test_end_to_end_chunk(self):
        """Test a chunk with an empty record and one typed field gives one point."""
        chunk = make_chunk(('t1', 100, {}), ('t2', 200, {'cpu<float>': '0.5'}))
        self.assertEqual(self.writer.write(chunk), 1)
        self.store.write_points.assert_called_once_with(
            [Point(timestamp=200, series='cpu', values={'value': 0.5}, tags={})])

    def test_formatted_chunk(self):
        chunk = (self.writer.format('t1', 100, {})
                 + self.writer.format('t2', 200, {'cpu<float>': '0.5'}))
        self.writer.write(chunk)
        points = self.store.write_points.call_args[0][0]
        self.assertEqual([p.to_dict() for p in points],
                         [{'timestamp': 200, 'series': 'cpu', 'values': {'value': 0.5}, 'tags': {}}])

    def test_one_write_per_chunk(self):
        chunk = make_chunk(('t', 1, {'a<int>': 1, 'b<int>': 2}),
                           ('t', 2, {'schema': 'unknown', 'c<int>': 3}),
                           ('t', 3, {'service': 'api', 'd<float>': 4}))
        self.assertEqual(self.writer.write(chunk), 3)
        self.assertEqual(self.store.write_points.call_count, 1)
        series = [p.series for p in self.store.write_points.call_args[0][0]]
        self.assertEqual(series, ['a', 'b', 'd'])

    def test_empty_batch_skips_write(self):
        chunk = make_chunk(('t', 1, {}), ('t', 2, {'message': 'no numbers'}))
        self.assertEqual(self.writer.write(chunk), 0)
        self.store.write_points.assert_not_called()
        self.assertEqual(self.writer.write(''), 0)
        self.store.write_points.assert_not_called()

    def test_write_failure_propagates(self):
        self.store.write_points.side_effect = StoreWriteError('timeout')
        with self.assertRaises(StoreWriteError):
            self.writer.write(make_chunk(('t', 1, {'a<int>': 1})))
        self.assertEqual(self.sample('shipper_write_failures_total'), 1.0)
        self.assertEqual(self.sample('shipper_writes_total'), 0.0)

    def test_metrics(self):
        self.writer.write(make_chunk(('t', 1, {}), ('t', 2, {'schema': 'x', 'a<int>': 1}),
                                     ('t', 3, {'a<int>': 1, 'b<int>': 2})))
        self.assertEqual(self.sample('shipper_records_total'), 3.0)
        self.assertEqual(self.sample('shipper_points_total'), 2.0)
        self.assertEqual(self.sample('shipper_writes_total'), 1.0)
        self.assertEqual(self.sample('shipper_records_dropped_total', {'reason': 'invalid'}), 1.0)
        self.assertEqual(self.sample('shipper_records_dropped_total', {'reason': 'schema'}), 1.0)

    def test_write_before_start(self):
        writer = InfluxDBWriter(self.config, mock.MagicMock(spec=InfluxStore))
        with self.assertRaises(StoreError):
            writer.write(make_chunk(('t', 1, {'a<int>': 1})))

    def test_close(self):
        self.writer.close()
        self.store.close.assert_called_once_with()
        self.assertFalse(self.writer.started)

    def test_time_key_from_config(self):
        config = ShipperConfig(dbname='metrics', time_key='@timestamp')
        writer = InfluxDBWriter(config, self.store)
        writer.start()
        writer.write(make_chunk(('t', 1, {'@timestamp': 99, 'a<int>': 1})))
        self.assertEqual(self.store.write_points.call_args[0][0][0].timestamp, 99)


class TestInfluxStore(unittest.TestCase):
    """Test cases for InfluxStore with mocked session and client."""

    def setUp(self):
        self.config = ShipperConfig(dbname='metrics', user='admin')
        self.session = mock.MagicMock()
        self.client = mock.MagicMock()
        self.store = InfluxStore(self.config, session=self.session, client=self.client)

    def respond(self, status_code, payload=None, text=''):
        response = mock.MagicMock(status_code=status_code, text=text)
        response.json.return_value = payload
        self.session.get.return_value = response

    def test_connect_with_injected_dependencies(self):
        with mock.patch('shipper.writer.store.InfluxDBClient3') as client_cls:
            self.store.connect()
        client_cls.assert_not_called()

    def test_list_databases(self):
        self.respond(200, [{'iox::database': '_internal'}, {'iox::database': 'metrics'}])
        self.assertEqual(self.store.list_databases(), ['_internal', 'metrics'])
        url = self.session.get.call_args[0][0]
        self.assertEqual(url, 'http://localhost:8086/api/v3/configure/database')

    def test_list_databases_forbidden(self):
        for status in (401, 403):
            self.respond(status)
            with self.assertRaises(AuthorizationError):
                self.store.list_databases()

    def test_list_databases_server_error(self):
        self.respond(500, text='boom')
        with self.assertRaises(StoreError) as ctx:
            self.store.list_databases()
        self.assertNotIsInstance(ctx.exception, AuthorizationError)

    def test_list_databases_unreachable(self):
        import requests
        self.session.get.side_effect = requests.ConnectionError('refused')
        with self.assertRaises(StoreError):
            self.store.list_databases()

    def test_write_points(self):
        points = [Point(timestamp=10, series='cpu', values={'value': 0.5}, tags={'service': 'api'})]
        self.store.write_points(points)
        self.assertEqual(self.client.write.call_count, 1)
        kwargs = self.client.write.call_args[1]
        self.assertEqual(kwargs['write_precision'], WritePrecision.S)
        self.assertEqual(len(kwargs['record']), 1)

    def test_write_points_failure(self):
        self.client.write.side_effect = RuntimeError('503 Service Unavailable')
        with self.assertRaises(StoreWriteError):
            self.store.write_points([Point(timestamp=1, series='a', values={'value': 1.0}, tags={})])

    def test_hour_precision_scales_to_seconds(self):
        store = InfluxStore(ShipperConfig(time_precision='h'), session=self.session, client=self.client)
        self.assertEqual(store.write_precision, WritePrecision.S)
        self.assertEqual(store.multiplier, 3600)

    def test_close(self):
        self.store.close()
        self.client.close.assert_called_once_with()
        self.session.close.assert_called_once_with()
        self.assertFalse(self.store.connected)

    def test_not_connected(self):
        store = InfluxStore(self.config)
        with self.assertRaises(StoreError):
            store.list_databases()
        with self.assertRaises(StoreError):
            store.write_points([])


class TestInfluxStoreConnect(unittest.TestCase):
    """Test cases for how InfluxStore builds its session and client."""

    def setUp(self):
        self.temp_dir = TemporaryDirectory()
        self.env = mock.patch.dict(os.environ)
        self.env.start()
        os.environ.pop('INFLUXDB3_TLS_CA', None)

    def tearDown(self):
        self.env.stop()
        self.temp_dir.cleanup()

    def connect(self, **values):
        store = InfluxStore(ShipperConfig(**values))
        with mock.patch('shipper.writer.store.InfluxDBClient3') as client_cls, \
                mock.patch('shipper.writer.store.requests.Session') as session_cls:
            store.connect()
            store.connect()
        client_cls.assert_called_once()
        session_cls.assert_called_once_with()
        return client_cls.call_args[1], session_cls.return_value

    def test_defaults(self):
        kwargs, session = self.connect(host='db', port=8181, dbname='metrics', password='pw')
        self.assertEqual(kwargs['host'], 'http://db:8181')
        self.assertEqual(kwargs['database'], 'metrics')
        self.assertEqual(kwargs['token'], 'pw')
        self.assertTrue(kwargs['verify_ssl'])
        self.assertNotIn('ssl_ca_cert', kwargs)
        self.assertTrue(session.verify)
        headers = session.headers.update.call_args[0][0]
        self.assertEqual(headers['Authorization'], 'Bearer pw')

    def test_finite_retry(self):
        kwargs, _ = self.connect(retry=3)
        self.assertEqual(kwargs['retries'].total, 3)

    def test_unlimited_retry(self):
        """Test an absent retry leaves every urllib3 counter unset."""
        retries = self.connect()[0]['retries']
        self.assertIsNone(retries.total)
        self.assertIsNone(retries.connect)
        self.assertIsNone(retries.read)
        self.assertIsNone(retries.status)
        self.assertFalse(retries.is_exhausted())

    def test_ssl_without_verification(self):
        with mock.patch('shipper.writer.store.urllib3.disable_warnings') as disable:
            kwargs, session = self.connect(host='db', use_ssl=True, verify_ssl=False)
        self.assertEqual(kwargs['host'], 'https://db:8086')
        self.assertFalse(kwargs['verify_ssl'])
        self.assertNotIn('ssl_ca_cert', kwargs)
        self.assertIs(session.verify, False)
        disable.assert_called_once()

    def test_custom_ca(self):
        ca_path = os.path.join(self.temp_dir.name, 'ca.pem')
        with open(ca_path, 'w', encoding='utf-8') as f:
            f.write('-----BEGIN CERTIFICATE-----\n')
        kwargs, session = self.connect(use_ssl=True, tls_ca=ca_path)
        self.assertEqual(kwargs['ssl_ca_cert'], ca_path)
        self.assertTrue(kwargs['verify_ssl'])
        self.assertEqual(session.verify, ca_path)

    def test_missing_ca_falls_back_to_system_store(self):
        with self.assertLogs('shipper.writer.store', level='WARNING'):
            kwargs, session = self.connect(use_ssl=True, tls_ca='/nonexistent/ca.pem')
        self.assertNotIn('ssl_ca_cert', kwargs)
        self.assertIs(session.verify, True)

    def test_minute_precision_multiplies_timestamp(self):
        client = mock.MagicMock()
        store = InfluxStore(ShipperConfig(time_precision='m'), session=mock.MagicMock(), client=client)
        store.write_points([Point(timestamp=2, series='cpu', values={'value': 0.5}, tags={})])
        record = client.write.call_args[1]['record'][0]
        self.assertTrue(record.to_line_protocol().endswith(' 120'))
        self.assertEqual(client.write.call_args[1]['write_precision'], WritePrecision.S)


class TestParseDatabaseList(unittest.TestCase):

    def test_shapes(self):
        self.assertEqual(parse_database_list(['a', 'b']), ['a', 'b'])
        self.assertEqual(parse_database_list({'databases': ['a']}), ['a'])
        self.assertEqual(parse_database_list([{'iox::database': 'a'}]), ['a'])
        self.assertEqual(parse_database_list([]), [])

    def test_unexpected_shape(self):
        with self.assertRaises(StoreError):
            parse_database_list('a,b')


class TestWriterFactory(unittest.TestCase):

    def test_create_writer(self):
        config = ShipperConfig(host='db', port=8181, dbname='metrics', use_ssl=True)
        writer = WriterFactory.create_writer_from_config(config)
        self.assertIsInstance(writer, InfluxDBWriter)
        self.assertIsInstance(writer.store, InfluxStore)
        self.assertFalse(writer.store.connected)
        self.assertEqual(str(writer), 'InfluxDBWriter(https://db:8181/metrics)')


if __name__ == '__main__':
    logging.basicConfig(level=logging.ERROR)
    unittest.main()
