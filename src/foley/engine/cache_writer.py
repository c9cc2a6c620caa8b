"""Fire-and-forget persistence of newly synthesized assets.

Writes run on a single background thread. The caller never waits on them
and their outcome is only logged; flush() exists so short-lived processes
can drain pending writes before exiting.
"""

from __future__ import annotations

import contextvars
import logging
import threading
from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from functools import partial

from foley.domain.models import AudioAsset
from foley.providers.interface import AssetStore

logger = logging.getLogger(__name__)


class CacheWriter:
    """Submits AssetStore.insert() calls to a background worker."""

    def __init__(self, store: AssetStore) -> None:
        self._store = store
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="foley-cache"
        )
        self._pending: set[Future[bool]] = set()
        self._lock = threading.Lock()
        self._closed = False
        self.succeeded = 0
        self.failed = 0

    def submit(
        self,
        description: str,
        query: str,
        asset: AudioAsset,
        vector: Sequence[float],
    ) -> Future[bool] | None:
        """Queue an insert and return immediately.

        Returns:
            The pending Future, or None if the writer is already closed.
        """
        with self._lock:
            if self._closed:
                logger.warning("Cache writer closed; dropping write for %r", description)
                return None
            # Carry the caller's logging context into the worker thread.
            ctx = contextvars.copy_context()
            future = self._executor.submit(
                ctx.run, self._store.insert, description, query, asset, list(vector)
            )
            self._pending.add(future)

        future.add_done_callback(partial(self._on_done, description=description))
        return future

    def _on_done(self, future: Future[bool], description: str) -> None:
        with self._lock:
            self._pending.discard(future)

        exc = future.exception()
        if exc is not None:
            self.failed += 1
            logger.warning("Background cache write for %r failed: %s", description, exc)
        elif future.result():
            self.succeeded += 1
            logger.info("Cached new asset %r", description)
        else:
            self.failed += 1
            logger.warning("Asset store declined to cache %r", description)

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._pending)

    def flush(self, timeout: float | None = None) -> bool:
        """Wait for queued writes.

        Returns:
            True if every write finished within ``timeout``.
        """
        with self._lock:
            pending = list(self._pending)
        if not pending:
            return True
        _, not_done = wait_futures(pending, timeout=timeout)
        if not_done:
            logger.warning("%d cache write(s) still pending", len(not_done))
        return not not_done

    def close(self, wait: bool = True) -> None:
        """Stop accepting writes and shut the worker down."""
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=wait)
