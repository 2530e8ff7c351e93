"""API routes package."""

from . import (
    health,
    momentum,
)


__all__ = [
    "health",
    "momentum",
]
