"""Wall-clock stamps and latency measurement."""

import time
from datetime import datetime, timezone


def utc_timestamp() -> str:
    """ISO8601 UTC timestamp for history records."""
    return datetime.now(timezone.utc).isoformat()


def elapsed_ms(start: float) -> float:
    """Milliseconds since a ``time.perf_counter()`` reading."""
    return (time.perf_counter() - start) * 1000
