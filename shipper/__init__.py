"""Ships structured events to InfluxDB as time-series points."""

__version__ = '0.1.0'
