"""Utilities module - lock client and shared helpers."""
from backend.config import get_settings
from backend.utils.lock_client import LockClient, LockTimeoutError

settings = get_settings()

# Create singleton instance
lock_client = LockClient(settings.redis_url if settings.redis_url else None)

__all__ = ["lock_client", "LockTimeoutError"]
