"""Core shipper package initialization."""

from .config import ShipperConfig
from .errors import ShipperError, ConfigError, StoreError, AuthorizationError, StoreWriteError
from .metrics import ShipperMetrics

__all__ = ['ShipperConfig', 'ShipperError', 'ConfigError', 'StoreError',
           'AuthorizationError', 'StoreWriteError', 'ShipperMetrics']
