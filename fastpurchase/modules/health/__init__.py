"""Health Module - ``GET /health``."""

from .controllers import HealthController

__all__ = ["HealthController"]
