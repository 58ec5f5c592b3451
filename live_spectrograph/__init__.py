"""Live bar-chart client for MQTT spectrometer telemetry."""

__version__ = "0.1.0"
