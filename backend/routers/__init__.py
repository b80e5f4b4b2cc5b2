"""API routers."""
from backend.routers import quiz, health

__all__ = [
    "quiz",
    "health",
]
