"""Logging setup for the shipper.

Third-party HTTP and client libraries log every request at INFO/DEBUG;
they are held at WARNING unless the shipper itself runs at DEBUG.
"""

import logging
import os
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Libraries whose request-level chatter drowns out per-chunk messages
QUIET_LOGGERS = ('urllib3', 'influxdb_client_3', 'requests')


class LoggingConfigurator:
    """Handles all logging setup independently of other configuration."""

    @staticmethod
    def setup_logging(log_level: str = 'INFO', log_file: Optional[str] = None) -> None:
        """Set up logging. DEBUG also logs every batch in line protocol form.

        Args:
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
            log_file: Optional path to log file. If None, logs to console only.
        """
        level = getattr(logging, log_level.upper())

        handlers = [logging.StreamHandler()]
        if log_file:
            log_dir = os.path.dirname(log_file)
            if log_dir and not os.path.exists(log_dir):
                os.makedirs(log_dir, exist_ok=True)
            handlers.append(logging.FileHandler(log_file))

        logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)
        LoggingConfigurator.quiet_libraries(level)

    @staticmethod
    def quiet_libraries(level: int) -> None:
        """Hold library loggers at WARNING unless running at DEBUG."""
        library_level = logging.DEBUG if level <= logging.DEBUG else max(level, logging.WARNING)
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(library_level)
