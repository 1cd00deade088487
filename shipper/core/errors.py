"""Exception types raised by the shipper."""


class ShipperError(Exception):
    """Base class for all shipper errors."""


class ConfigError(ShipperError, ValueError):
    """Invalid configuration, or a target database that does not exist."""


class StoreError(ShipperError):
    """The backend store could not be reached or answered with an error."""


class AuthorizationError(StoreError):
    """The configured credentials are not allowed to perform the request."""


class StoreWriteError(StoreError):
    """A batch write to the backend store failed."""
