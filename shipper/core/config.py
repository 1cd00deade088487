"""Core configuration classes for the shipper."""

import json
import logging
import os
from dataclasses import dataclass, fields
from typing import Dict, Any, Optional

import yaml

from .errors import ConfigError

LOG = logging.getLogger(__name__)

# Precisions understood by the time_precision option
TIME_PRECISIONS = ('h', 'm', 's', 'ms', 'u', 'n')

TRUE_VALUES = ('1', 'true', 'yes', 'on')
FALSE_VALUES = ('0', 'false', 'no', 'off')


def parse_bool(value: Any) -> bool:
    """Interpret a config or environment value as a boolean."""
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ConfigError(f"Cannot interpret {value!r} as a boolean")


# Environment variable -> (config field, converter)
ENV_VARS = {
    'INFLUXDB_HOST': ('host', str),
    'INFLUXDB_PORT': ('port', int),
    'INFLUXDB_DATABASE': ('dbname', str),
    'INFLUXDB_USER': ('user', str),
    'INFLUXDB_PASSWORD': ('password', str),
    'INFLUXDB_TOKEN': ('token', str),
    'INFLUXDB_RETRY': ('retry', int),
    'INFLUXDB_TIME_PRECISION': ('time_precision', str),
    'INFLUXDB_USE_SSL': ('use_ssl', parse_bool),
    'INFLUXDB_VERIFY_SSL': ('verify_ssl', parse_bool),
    'TLS_CA': ('tls_ca', str),
    'SHIPPER_TIME_KEY': ('time_key', str),
    'SHIPPER_CHUNK_SIZE': ('chunk_size', int),
    'SHIPPER_LOG_LEVEL': ('log_level', str),
}


@dataclass
class ShipperConfig:
    """Configuration for the InfluxDB event shipper.

    Values come from defaults, then an optional YAML/JSON file, then
    environment variables, then command line arguments.
    """

    # InfluxDB connection
    host: str = 'localhost'
    port: int = 8086
    dbname: str = 'events'
    user: str = 'root'
    password: str = 'root'
    token: Optional[str] = None    # overrides password as the API token
    retry: Optional[int] = None    # None = unlimited client retries
    timeout_ms: int = 10000

    # Event handling
    time_key: str = 'time'
    time_precision: str = 's'

    # TLS
    use_ssl: bool = False
    verify_ssl: bool = True
    tls_ca: Optional[str] = None

    # Replay and observability
    chunk_size: int = 500
    prometheus_port: Optional[int] = None
    log_level: str = 'INFO'
    logfile: Optional[str] = None

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.time_precision not in TIME_PRECISIONS:
            raise ConfigError(f"time_precision must be one of {list(TIME_PRECISIONS)}, got {self.time_precision!r}")

        if not 0 < int(self.port) < 65536:
            raise ConfigError(f"port must be between 1 and 65535, got {self.port}")

        if self.retry is not None and self.retry < 0:
            raise ConfigError(f"retry must be zero or positive, got {self.retry}")

        if self.chunk_size < 1:
            raise ConfigError(f"chunk_size must be positive, got {self.chunk_size}")

        if not self.dbname:
            raise ConfigError("dbname is required")

        if not self.time_key:
            raise ConfigError("time_key must not be empty")

    @property
    def url(self) -> str:
        """Base URL of the InfluxDB server."""
        scheme = 'https' if self.use_ssl else 'http'
        return f"{scheme}://{self.host}:{self.port}"

    @property
    def api_token(self) -> str:
        """Token sent to InfluxDB; the password doubles as token unless one is set."""
        return self.token or self.password

    @classmethod
    def field_names(cls) -> set:
        return {f.name for f in fields(cls)}

    @classmethod
    def read_file(cls, config_file: str) -> Dict[str, Any]:
        """Load settings from a YAML or JSON file.

        Returns an empty dict when the file does not exist. Unknown keys are
        ignored with a warning.
        """
        if not os.path.exists(config_file):
            LOG.warning(f"Config file not found: {config_file}")
            return {}

        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                if config_file.lower().endswith(('.yaml', '.yml')):
                    config = yaml.safe_load(f)
                elif config_file.lower().endswith('.json'):
                    config = json.load(f)
                else:
                    raise ConfigError(f"Unsupported config file format: {config_file}")
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigError(f"Failed to parse config file {config_file}: {e}") from e

        if config is None:
            return {}
        if not isinstance(config, dict):
            raise ConfigError(f"Config file {config_file} must contain a mapping")

        known = cls.field_names()
        values = {}
        for key, value in config.items():
            if key in known:
                values[key] = value
            else:
                LOG.warning(f"Ignoring unknown config option '{key}' in {config_file}")

        LOG.info(f"Loaded configuration from {config_file}")
        return values

    @staticmethod
    def read_env(environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """Load settings from environment variables."""
        environ = os.environ if environ is None else environ
        values = {}
        for var, (name, convert) in ENV_VARS.items():
            raw = environ.get(var)
            if raw is None or raw == '':
                continue
            try:
                values[name] = convert(raw)
            except ValueError as e:
                raise ConfigError(f"Invalid value for {var}: {raw!r}") from e
        return values

    @staticmethod
    def extract_args(args) -> Dict[str, Any]:
        """Extract explicitly given settings from parsed command line arguments."""
        mapping = {
            'host': 'host',
            'port': 'port',
            'dbname': 'dbname',
            'user': 'user',
            'password': 'password',
            'token': 'token',
            'retry': 'retry',
            'time_key': 'timeKey',
            'time_precision': 'timePrecision',
            'use_ssl': 'useSsl',
            'verify_ssl': 'verifySsl',
            'tls_ca': 'tlsCa',
            'chunk_size': 'chunkSize',
            'prometheus_port': 'prometheus_port',
            'log_level': 'log_level',
            'logfile': 'logfile',
        }
        values = {}
        for name, attr in mapping.items():
            value = getattr(args, attr, None)
            if value is not None:
                values[name] = value
        return values

    @classmethod
    def load(cls, config_file: Optional[str] = None, args=None,
             environ: Optional[Dict[str, str]] = None) -> 'ShipperConfig':
        """Build a configuration from file, environment and arguments."""
        values: Dict[str, Any] = {}
        if config_file:
            values.update(cls.read_file(config_file))
        values.update(cls.read_env(environ))
        if args is not None:
            values.update(cls.extract_args(args))

        try:
            return cls(**values)
        except TypeError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to a dictionary."""
        return {f.name: getattr(self, f.name) for f in fields(self)}
