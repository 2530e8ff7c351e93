"""Business logic services."""

from . import momentum_service


__all__ = [
    "momentum_service",
]
