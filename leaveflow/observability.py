"""
Lightweight execution tracing.

Every store call, balance computation, workflow action and bulk import is
wrapped in ``trace_span`` so a slow or failing operation can be located from
the logs alone.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager

logger = logging.getLogger("leaveflow.trace")


@contextmanager
def trace_span(name: str, **metadata):
    """
    Measure execution duration of an operation.

    Example log:
    [TRACE] review_leave duration_ms=3.12 leave=9f2c action=Approve status=ok

    Always logs completion, also when the wrapped block raises, and never
    suppresses the exception.
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
        logger.info("[TRACE] %s duration_ms=%.2f %s status=%s", name, duration_ms, meta, outcome)
