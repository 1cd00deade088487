"""
InfluxDB store client used by the writer.

Wraps the two backend calls the shipper needs:
- listing databases (startup check), via the InfluxDB 3 HTTP API
- writing a batch of points, via influxdb_client_3

Note: the write path follows the synchronous write example from the
https://github.com/InfluxCommunity/influxdb3-python project
License: Apache License, Version 2.0, January 2004 (http://www.apache.org/licenses/)
"""

import logging
import os
from typing import Any, Dict, List, Optional, Sequence

import requests
import urllib3
from urllib3.util import Retry
from influxdb_client_3 import InfluxDBClient3, WritePrecision, SYNCHRONOUS, write_client_options

from ..core.config import ShipperConfig
from ..core.errors import AuthorizationError, StoreError, StoreWriteError
from ..transform.points import Point

LOG = logging.getLogger(__name__)

# time_precision option -> (client precision, timestamp multiplier)
# InfluxDB 3 has no hour/minute precision, so those are scaled to seconds.
WRITE_PRECISIONS = {
    'h': (WritePrecision.S, 3600),
    'm': (WritePrecision.S, 60),
    's': (WritePrecision.S, 1),
    'ms': (WritePrecision.MS, 1),
    'u': (WritePrecision.US, 1),
    'n': (WritePrecision.NS, 1),
}

# Responses worth retrying inside the client
RETRY_STATUSES = (429, 500, 502, 503, 504)


def parse_database_list(databases_data: Any) -> List[str]:
    """
    Extract database names from the database API response.

    Handles the response shapes InfluxDB returns:
    [{"iox::database": "name"}], ["name"], and {"databases": [...]}
    """
    if isinstance(databases_data, list):
        if databases_data and isinstance(databases_data[0], dict) and "iox::database" in databases_data[0]:
            return [db_obj["iox::database"] for db_obj in databases_data]
        return [str(name) for name in databases_data]

    if isinstance(databases_data, dict):
        return [str(name) for name in databases_data.get('databases', [])]

    raise StoreError(f"Unexpected database list response format: {type(databases_data).__name__}")


class InfluxStore:
    """
    Connection to one InfluxDB database.

    Built once from configuration and handed to the writer; tests pass a
    prepared session and client instead of connecting.
    """

    def __init__(self, config: ShipperConfig, session: Optional[requests.Session] = None,
                 client: Optional[Any] = None):
        self.config = config
        self.session = session
        self.client = client
        self.write_precision, self.multiplier = WRITE_PRECISIONS[config.time_precision]

    @property
    def connected(self) -> bool:
        return self.session is not None and self.client is not None

    def _verify(self):
        """TLS verification argument for requests and the client."""
        if not self.config.verify_ssl:
            return False
        ca_cert_path = self.config.tls_ca or os.getenv('INFLUXDB3_TLS_CA')
        if ca_cert_path and os.path.exists(ca_cert_path):
            return ca_cert_path
        if ca_cert_path:
            LOG.warning(f"CA certificate path specified but file not found: {ca_cert_path}")
        return True

    def _retries(self) -> Retry:
        # total=None leaves every counter unset, which urllib3 treats as unlimited
        return Retry(
            total=self.config.retry,
            backoff_factor=0.5,
            status_forcelist=RETRY_STATUSES,
            allowed_methods=None,
        )

    def connect(self) -> None:
        """Create the HTTP session and InfluxDB client. Does nothing if already connected."""
        if self.connected:
            return

        verify = self._verify()
        if self.config.use_ssl and verify is False:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
            LOG.warning("TLS verification is DISABLED for InfluxDB. This is insecure.")

        if self.session is None:
            self.session = requests.Session()
            self.session.verify = verify
            self.session.headers.update({
                'Authorization': f'Bearer {self.config.api_token}',
                'Accept': 'application/json'
            })

        if self.client is None:
            client_kwargs: Dict[str, Any] = {
                'host': self.config.url,
                'database': self.config.dbname,
                'token': self.config.api_token,
                'write_client_options': write_client_options(write_options=SYNCHRONOUS),
                'verify_ssl': verify is not False,
                'timeout': self.config.timeout_ms,
                'retries': self._retries(),
            }
            if isinstance(verify, str):
                LOG.info(f"Using custom CA certificate: {verify}")
                client_kwargs['ssl_ca_cert'] = verify

            self.client = InfluxDBClient3(**client_kwargs)
            LOG.info(f"InfluxDB client created for {self.config.url} -> {self.config.dbname}")

    def list_databases(self) -> List[str]:
        """
        List the databases on the server.

        Raises:
            AuthorizationError: the credentials may not list databases
            StoreError: any other failure
        """
        if self.session is None:
            raise StoreError("InfluxDB store is not connected")

        url = f"{self.config.url}/api/v3/configure/database"
        try:
            response = self.session.get(url, params={'format': 'json'},
                                        timeout=self.config.timeout_ms / 1000)
        except requests.RequestException as e:
            raise StoreError(f"Could not reach InfluxDB at {self.config.url}: {e}") from e

        if response.status_code in (401, 403):
            raise AuthorizationError(f"HTTP {response.status_code} listing databases as '{self.config.user}'")

        if response.status_code != 200:
            raise StoreError(f"Failed to list databases: HTTP {response.status_code}: {response.text}")

        try:
            databases_data = response.json()
        except ValueError as e:
            raise StoreError(f"Database list response is not JSON: {e}") from e

        LOG.debug(f"Database list response: {databases_data}")
        return parse_database_list(databases_data)

    def write_points(self, points: Sequence[Point]) -> None:
        """
        Write a batch of points in one call.

        Raises:
            StoreWriteError: the client failed to write the batch
        """
        if self.client is None:
            raise StoreError("InfluxDB store is not connected")

        records = [point.to_influx_point(self.write_precision, self.multiplier) for point in points]
        try:
            self.client.write(record=records, write_precision=self.write_precision)
        except Exception as e:
            raise StoreWriteError(f"Failed to write {len(records)} points to {self.config.dbname}: {e}") from e

    def close(self) -> None:
        """Close the client and session."""
        if self.client is not None:
            try:
                self.client.close()
            finally:
                self.client = None
        if self.session is not None:
            self.session.close()
            self.session = None
