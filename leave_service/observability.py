"""
Lightweight execution tracing.

Every lifecycle operation and every SQL store write is wrapped in a span so that
a slow approval or a flaky database shows up in the logs with its duration
and the identifiers involved.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager

logger = logging.getLogger("leave_service.trace")


@contextmanager
def trace_span(name: str, **metadata):
    """
    Measure execution duration of an operation.

    Example log:
    [TRACE] review_leave_request duration_ms=3.12 request=4f1c... status=APPROVED outcome=ok

    Guarantees
    ----------
    - Always logs completion (even if exception occurs)
    - Never suppresses exceptions
    - Produces structured key=value logs, with outcome=error on failure
    """
    start = time.perf_counter()
    outcome = "ok"
    try:
        yield
    except Exception as e:
        outcome = f"error:{type(e).__name__}"
        raise
    finally:
        duration_ms = (time.perf_counter() - start) * 1000

        meta = " ".join(f"{k}={v}" for k, v in metadata.items())
        logger.info("[TRACE] %s duration_ms=%.2f %s outcome=%s", name, duration_ms, meta, outcome)
