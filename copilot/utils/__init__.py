"""Utility helpers for the flow copilot."""

from copilot.utils.config_store import ConfigStore
from copilot.utils.timing import elapsed_ms, utc_timestamp

__all__ = [
    "ConfigStore",
    "elapsed_ms",
    "utc_timestamp",
]
