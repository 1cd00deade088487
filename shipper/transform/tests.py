"""
Tests for the event-to-point transformation.
"""
import logging
import unittest
from decimal import Decimal

from .points import Point, PointBuilder, coerce_timestamp
from .schema import BareNaming, RejectedSchema, WoodpeckerNaming, resolve_naming
from .suffix import NumericFamily, parse_typed_field
from .tags import extract_tags


class TestTypeSuffix(unittest.TestCase):
    """Test cases for the type suffix table."""

    def test_integer_markers(self):
        """Test <int> and <long> strip to the base name."""
        for key in ('x<int>', 'x<long>'):
            typed = parse_typed_field(key)
            self.assertEqual(typed.name, 'x')
            self.assertEqual(typed.family, NumericFamily.INTEGER)

    def test_float_markers(self):
        """Test <float> and <double> strip to the base name."""
        for key in ('lat<float>', 'lat<double>'):
            typed = parse_typed_field(key)
            self.assertEqual(typed.name, 'lat')
            self.assertEqual(typed.family, NumericFamily.FLOAT)

    def test_marker_must_be_at_end(self):
        self.assertIsNone(parse_typed_field('x<int>y'))
        self.assertIsNone(parse_typed_field('x<int> '))

    def test_untyped_and_unknown_markers(self):
        self.assertIsNone(parse_typed_field('x'))
        self.assertIsNone(parse_typed_field('x<str>'))
        self.assertIsNone(parse_typed_field('x<INT>'))

    def test_marker_only_is_not_a_candidate(self):
        self.assertIsNone(parse_typed_field('<float>'))

    def test_only_last_marker_is_stripped(self):
        self.assertEqual(parse_typed_field('a<int><float>').name, 'a<int>')


class TestSchemaResolver(unittest.TestCase):
    """Test cases for series naming strategies."""

    def test_no_schema_is_bare(self):
        naming = resolve_naming({'cpu<float>': 1})
        self.assertIsInstance(naming, BareNaming)
        self.assertEqual(naming.series_name('cpu'), 'cpu')

    def test_woodpecker_composes_name(self):
        naming = resolve_naming({'schema': 'woodpecker.v1', 'module': 'm',
                                 'submodule': 's', 'action': 'a'})
        self.assertIsInstance(naming, WoodpeckerNaming)
        self.assertEqual(naming.series_name('lat'), 'm.s.a.lat')

    def test_woodpecker_missing_segments_are_empty(self):
        naming = resolve_naming({'schema': 'woodpecker.v1', 'module': 'm'})
        self.assertEqual(naming.series_name('lat'), 'm...lat')

    def test_unknown_schema_is_rejected(self):
        naming = resolve_naming({'schema': 'woodpecker.v2'})
        self.assertEqual(naming, RejectedSchema(name='woodpecker.v2'))

    def test_resolving_does_not_modify_record(self):
        record = {'schema': 'woodpecker.v1', 'module': 'm', 'submodule': 's', 'action': 'a'}
        resolve_naming(record).series_name('x')
        self.assertEqual(record['module'], 'm')


class TestPlacementTags(unittest.TestCase):
    """Test cases for tag extraction."""

    def test_service_and_placement(self):
        tags = extract_tags({
            'service': 'api',
            'placement.region': 'us-east',
            'placement.zone': 'us-east-1a',
            'placement.rack': 'r1',
            'hostname': 'ignored',
        })
        self.assertEqual(dict(tags), {'service': 'api', 'region': 'us-east', 'zone': 'us-east-1a'})

    def test_all_placement_names(self):
        record = {f'placement.{name}': name.upper()
                  for name in ('cloud', 'hostname', 'instanceid', 'podname', 'region', 'zone')}
        tags = extract_tags(record)
        self.assertEqual(len(tags), 6)
        self.assertEqual(tags['podname'], 'PODNAME')

    def test_no_tags(self):
        self.assertEqual(dict(extract_tags({'cpu<float>': 1})), {})

    def test_tags_are_read_only(self):
        tags = extract_tags({'service': 'api'})
        with self.assertRaises(TypeError):
            tags['service'] = 'other'

    def test_tag_values_are_strings(self):
        self.assertEqual(extract_tags({'placement.zone': 3})['zone'], '3')


class TestPointBuilder(unittest.TestCase):
    """Test cases for PointBuilder."""

    def setUp(self):
        self.builder = PointBuilder(time_key='time')

    def test_bare_point(self):
        points = self.builder.build('t', 200, {'cpu<float>': '0.5'})
        self.assertEqual(points, [Point(timestamp=200, series='cpu', values={'value': 0.5}, tags={})])

    def test_integer_field_value_is_float(self):
        points = self.builder.build('t', 1, {'x<int>': 7})
        self.assertEqual(points[0].series, 'x')
        self.assertIsInstance(points[0].values['value'], float)
        self.assertEqual(points[0].values['value'], 7.0)

    def test_woodpecker_point(self):
        points = self.builder.build('t', 1, {
            'schema': 'woodpecker.v1', 'module': 'm', 'submodule': 's', 'action': 'a',
            'lat<float>': 1.25,
        })
        self.assertEqual(len(points), 1)
        self.assertEqual(points[0].series, 'm.s.a.lat')

    def test_unknown_schema_drops_record_with_one_warning(self):
        with self.assertLogs('shipper.transform.points', level='WARNING') as logs:
            points = self.builder.build('t', 1, {'schema': 'unknown', 'a<int>': 1, 'b<int>': 2})
        self.assertEqual(points, [])
        self.assertEqual(len(logs.records), 1)

    def test_empty_record(self):
        self.assertEqual(self.builder.build('t', 1, {}), [])

    def test_null_value_drops_whole_record(self):
        self.assertEqual(self.builder.build('t', 1, {'a<int>': 1, 'service': None}), [])

    def test_one_point_per_typed_field(self):
        points = self.builder.build('t', 1, {
            'a<int>': 1, 'b<long>': 2, 'c<double>': 3.5, 'note': 'x', 'd<str>': 4,
        })
        self.assertEqual([p.series for p in points], ['a', 'b', 'c'])

    def test_tags_shared_across_points(self):
        points = self.builder.build('t', 1, {
            'service': 'api', 'placement.region': 'us-east', 'a<int>': 1, 'b<int>': 2,
        })
        self.assertEqual(dict(points[0].tags), {'service': 'api', 'region': 'us-east'})
        self.assertIs(points[0].tags, points[1].tags)

    def test_service_only_tags(self):
        points = self.builder.build('t', 1, {'service': 'api', 'a<int>': 1, 'b<float>': 2})
        self.assertEqual([p.series for p in points], ['a', 'b'])
        for point in points:
            self.assertEqual(dict(point.tags), {'service': 'api'})
        self.assertIs(points[0].tags, points[1].tags)

    def test_no_service_means_no_tags(self):
        points = self.builder.build('t', 1, {'a<int>': 1})
        self.assertEqual(dict(points[0].tags), {})

    def test_time_key_overrides_event_time(self):
        points = self.builder.build('t', 100, {'time': 555, 'a<int>': 1, 'b<int>': 2})
        self.assertEqual([p.timestamp for p in points], [555, 555])

    def test_typed_time_key_is_not_a_point(self):
        builder = PointBuilder(time_key='ts<int>')
        points = builder.build('t', 100, {'ts<int>': 42, 'a<int>': 1})
        self.assertEqual([(p.series, p.timestamp) for p in points], [('a', 42)])

    def test_record_is_not_modified(self):
        record = {'time': 555, 'a<int>': 1}
        self.builder.build('t', 100, record)
        self.assertEqual(record, {'time': 555, 'a<int>': 1})

    def test_same_record_twice_gives_equal_points(self):
        record = {'service': 'api', 'a<int>': 1, 'time': 9}
        self.assertEqual(self.builder.build('t', 1, record), self.builder.build('t', 1, record))

    def test_timestamp_coerced_to_int(self):
        points = self.builder.build('t', 1700000000.9, {'a<int>': 1})
        self.assertEqual(points[0].timestamp, 1700000000)

    def test_non_numeric_field_is_skipped(self):
        with self.assertLogs('shipper.transform.points', level='WARNING') as logs:
            points = self.builder.build('t', 1, {'a<int>': 'abc', 'b<int>': '2', 'c<float>': 'nan'})
        self.assertEqual([p.series for p in points], ['b'])
        self.assertEqual(len(logs.records), 1)
        self.assertIn('a<int>', logs.output[0])

    def test_unusable_timestamp_drops_record(self):
        self.assertEqual(self.builder.build('t', 1, {'time': 'yesterday', 'a<int>': 1}), [])

    def test_untyped_record_gives_no_points(self):
        self.assertEqual(self.builder.build('t', 1, {'message': 'hello'}), [])


class TestCoerceTimestamp(unittest.TestCase):

    def test_values(self):
        self.assertEqual(coerce_timestamp(5), 5)
        self.assertEqual(coerce_timestamp('12'), 12)
        self.assertEqual(coerce_timestamp('12.7'), 12)
        self.assertEqual(coerce_timestamp(Decimal('12.7')), 12)
        self.assertEqual(coerce_timestamp('1700000000123456789'), 1700000000123456789)

    def test_rejects_booleans(self):
        with self.assertRaises(TypeError):
            coerce_timestamp(True)


class TestPointRendering(unittest.TestCase):

    def test_line_protocol(self):
        point = Point(timestamp=10, series='m.s.a.lat', values={'value': 0.5},
                      tags={'service': 'my api', 'region': 'us-east'})
        self.assertEqual(point.to_line_protocol(),
                         r'm.s.a.lat,region=us-east,service=my\ api value=0.5 10')

    def test_to_dict(self):
        point = Point(timestamp=10, series='cpu', values={'value': 1.0}, tags={})
        self.assertEqual(point.to_dict(),
                         {'timestamp': 10, 'series': 'cpu', 'values': {'value': 1.0}, 'tags': {}})


if __name__ == '__main__':
    logging.basicConfig(level=logging.ERROR)
    unittest.main()
