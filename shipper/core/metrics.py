"""Prometheus counters describing what the shipper did with incoming events."""

import logging
import threading
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, start_http_server

LOG = logging.getLogger(__name__)


class ShipperMetrics:
    """
    Counters for records, points and writes.

    Each instance owns a separate registry so several shippers (or tests)
    can live in one process.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()

        self.records = Counter('shipper_records', 'Records decoded from chunks',
                               registry=self.registry)
        self.records_dropped = Counter('shipper_records_dropped', 'Records that produced no points',
                                       ['reason'], registry=self.registry)
        self.points = Counter('shipper_points', 'Points emitted from records',
                              registry=self.registry)
        self.writes = Counter('shipper_writes', 'Batch writes submitted to InfluxDB',
                              registry=self.registry)
        self.write_failures = Counter('shipper_write_failures', 'Batch writes that raised',
                                      registry=self.registry)

        self.server_lock = threading.Lock()
        self.server_started = False

    def record_dropped(self, reason: str) -> None:
        self.records_dropped.labels(reason=reason).inc()

    def serve(self, port: int) -> None:
        """Expose the registry over HTTP once."""
        with self.server_lock:
            if not self.server_started:
                try:
                    start_http_server(port, registry=self.registry)
                    self.server_started = True
                    LOG.info(f"Prometheus metrics server started on port {port}")
                except OSError as e:
                    LOG.error(f"Failed to start Prometheus server on port {port}: {e}")
                    raise
