"""TrustBridge chat transfer orchestration."""

__version__ = "0.1.0"
