"""HTTP API blueprint."""
from modsync.dashboard.blueprint import api_bp

__all__ = ["api_bp"]
