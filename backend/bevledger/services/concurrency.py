# Overview: Retry wrapper for store operations that hit transient lock or version conflicts.

from __future__ import annotations

import time

from ..store import Store, StoreBusyError


def run_with_retry(func, *, store: Store, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a store operation with retry on concurrency-related failures.

    Retries on StoreBusyError (database locks, deadlocks, stale versions).
    Any other failure rolls back pending writes and propagates on the
    first attempt.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except StoreBusyError as exc:
            store.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            store.rollback()
            raise
    if last_exc:
        raise last_exc
