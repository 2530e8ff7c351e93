"""Built-in job definitions for scheduled tasks.

Jobs:
- momentum_daily: Momentum cross-section recompute (Mon-Fri 11:30 PM UTC)

Importing this module registers every job with the registry.
"""

from __future__ import annotations

from . import quant  # noqa: F401
from .registry import list_job_names


__all__ = ["list_job_names"]
