"""Business telemetry decoding, ECSM API models and metric state tracking."""

__version__ = "0.1.0"