"""Command line entry point for the event shipper.

Replays a JSON-lines file of events through the InfluxDB writer:
format each event, group the results into chunks, write one batch per chunk.
"""

import argparse
import logging
import sys
from typing import Iterable, Optional

from .core.config import ShipperConfig, TIME_PRECISIONS
from .core.errors import ShipperError
from .core.logging_config import LoggingConfigurator
from .core.metrics import ShipperMetrics
from .read.chunk_reader import ChunkReader, Event, read_events_file
from .writer.base import Writer
from .writer.factory import WriterFactory


def create_argument_parser() -> argparse.ArgumentParser:
    """Create command line argument parser."""

    parser = argparse.ArgumentParser(
        description='Ship structured events to InfluxDB as time-series points',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Replay an event file into the 'metrics' database
  shipper --fromJson ./events.jsonl --host db.org.co --port 8181 --dbname metrics --token mytoken

  # Read events from stdin with settings from a YAML file
  cat events.jsonl | shipper --fromJson - --config shipper.yaml
        """
    )

    parser.add_argument('--fromJson', type=str, required=True,
                        help='JSON-lines file of events, each [tag, time, record]; "-" reads stdin')
    parser.add_argument('--config', type=str, default=None,
                        help='YAML or JSON configuration file')

    # InfluxDB specific options
    influx_group = parser.add_argument_group('InfluxDB Configuration')
    influx_group.add_argument('--host', type=str, default=None,
                              help='InfluxDB host (default: localhost)')
    influx_group.add_argument('--port', type=int, default=None,
                              help='InfluxDB HTTP port (default: 8086)')
    influx_group.add_argument('--dbname', type=str, default=None,
                              help='Target database; it must already exist')
    influx_group.add_argument('--user', type=str, default=None,
                              help='InfluxDB user (used in diagnostics)')
    influx_group.add_argument('--password', type=str, default=None,
                              help='InfluxDB password, sent as the API token unless --token is given')
    influx_group.add_argument('--token', type=str, default=None,
                              help='InfluxDB API token')
    influx_group.add_argument('--retry', type=int, default=None,
                              help='Finite number of client retries per write (default: unlimited)')
    influx_group.add_argument('--timePrecision', choices=list(TIME_PRECISIONS), default=None,
                              help='Precision of event timestamps (default: s)')
    influx_group.add_argument('--useSsl', action='store_true', default=None,
                              help='Connect to InfluxDB over HTTPS')
    influx_group.add_argument('--no-verifySsl', dest='verifySsl', action='store_false', default=None,
                              help='Disable TLS certificate verification')
    influx_group.add_argument('--tlsCa', type=str, default=None,
                              help='Path to CA certificate for verifying InfluxDB TLS connections')

    # Event handling
    event_group = parser.add_argument_group('Event Handling')
    event_group.add_argument('--timeKey', type=str, default=None,
                             help='Record field that overrides the event timestamp (default: time)')
    event_group.add_argument('--chunkSize', type=int, default=None,
                             help='Events per written chunk (default: 500)')

    # Prometheus specific options
    prometheus_group = parser.add_argument_group('Prometheus Configuration')
    prometheus_group.add_argument('--prometheus-port', type=int, default=None,
                                  help='Serve shipper counters on this port')

    # Debugging
    debug_group = parser.add_argument_group('Debugging')
    debug_group.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                             default=None, help='Set logging level (default: INFO)')
    debug_group.add_argument('--logfile', type=str, default=None,
                             help='Path to log file (default: stdout only)')

    return parser


def ship(writer: Writer, events: Iterable[Event], chunk_size: int) -> int:
    """
    Run events through a writer from start to close.

    Returns:
        Total number of points written
    """
    written = 0
    try:
        writer.start()
        formatted = (writer.format(tag, time, record) for tag, time, record in events)
        for chunk in ChunkReader.build_chunks(formatted, chunk_size):
            written += writer.write(chunk)
    finally:
        writer.close()
    return written


def main(argv: Optional[list] = None):
    """Main entry point."""

    parser = create_argument_parser()
    args = parser.parse_args(argv)

    try:
        config = ShipperConfig.load(config_file=args.config, args=args)
    except ShipperError as e:
        parser.error(str(e))

    LoggingConfigurator.setup_logging(log_level=config.log_level, log_file=config.logfile)

    logging.info("=== Event Shipper Startup ===")
    logging.info(f"Events: {args.fromJson}")
    logging.info(f"InfluxDB URL: {config.url}")
    logging.info(f"InfluxDB Database: {config.dbname}")
    logging.info(f"InfluxDB User: {config.user}")
    logging.info("InfluxDB Password/Token: [REDACTED]")
    logging.info(f"Retry: {config.retry if config.retry is not None else 'unlimited'}")
    logging.info(f"Time Key: {config.time_key}, Time Precision: {config.time_precision}")
    logging.info(f"Chunk Size: {config.chunk_size}")
    logging.info("=== Configuration Complete ===")

    metrics = ShipperMetrics()
    if config.prometheus_port:
        metrics.serve(config.prometheus_port)

    writer = WriterFactory.create_writer_from_config(config, metrics=metrics)

    try:
        if args.fromJson == '-':
            written = ship(writer, read_events_file(sys.stdin), config.chunk_size)
        else:
            with open(args.fromJson, 'r', encoding='utf-8') as stream:
                written = ship(writer, read_events_file(stream), config.chunk_size)
        logging.info(f"Shipping complete: {written} points written")

    except KeyboardInterrupt:
        logging.info("Received interrupt, shutting down...")
    except (ShipperError, OSError) as e:
        logging.error(f"Shipper error: {e}")
        if config.log_level.upper() == 'DEBUG':
            raise
        sys.exit(1)


if __name__ == '__main__':
    main()
