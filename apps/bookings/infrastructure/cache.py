"""Per (court, date) cache of computed slot availability."""

from __future__ import annotations

import logging
import threading
import time
from datetime import date
from typing import Callable, List
from uuid import UUID

from django.conf import settings
from django.core.cache import cache as default_cache

logger = logging.getLogger(__name__)

CACHE_PREFIX = "availability"


class AvailabilityCache:
    """
    Memo of ``get_slots`` results keyed by (court_id, date).

    Writers call ``invalidate`` which bumps a version counter for the key;
    entries computed against an older version are never served. Entries
    also expire ``timeout`` seconds after they were computed, measured with
    the injected ``clock``.
    """

    def __init__(
        self,
        backend=None,
        timeout: int | None = None,
        clock: Callable[[], float] | None = None,
    ):
        self._backend = backend if backend is not None else default_cache
        if timeout is None:
            timeout = getattr(settings, "AVAILABILITY_CACHE_TIMEOUT", 300)
        self.timeout = timeout
        self._clock = clock or time.time
        self._lock = threading.Lock()

    @staticmethod
    def _data_key(court_id: UUID, on_date: date) -> str:
        return f"{CACHE_PREFIX}:slots:{court_id}:{on_date.isoformat()}"

    @staticmethod
    def _version_key(court_id: UUID, on_date: date) -> str:
        return f"{CACHE_PREFIX}:version:{court_id}:{on_date.isoformat()}"

    def _version(self, court_id: UUID, on_date: date) -> int:
        return self._backend.get(self._version_key(court_id, on_date), 0)

    def get_or_compute(self, court_id: UUID, on_date: date, compute: Callable[[], List]) -> List:
        if not self.timeout:
            return compute()

        with self._lock:
            version = self._version(court_id, on_date)
        key = self._data_key(court_id, on_date)
        entry = self._backend.get(key)
        now = self._clock()
        if entry is not None and entry["version"] == version and now - entry["stored_at"] < self.timeout:
            return entry["slots"]

        slots = compute()
        with self._lock:
            # Drop the result if a writer invalidated the key while computing
            if self._version(court_id, on_date) == version:
                self._backend.set(
                    key,
                    {"version": version, "stored_at": now, "slots": slots},
                    self.timeout,
                )
        return slots

    def invalidate(self, court_id: UUID, on_date: date) -> None:
        key = self._version_key(court_id, on_date)
        with self._lock:
            self._backend.add(key, 0, None)
            try:
                self._backend.incr(key)
            except ValueError:
                self._backend.set(key, 1, None)
            # A lost version key reads back as 0, so the old entry must go too
            self._backend.delete(self._data_key(court_id, on_date))
        logger.debug("Availability cache invalidated for court %s on %s", court_id, on_date)


__all__ = ["AvailabilityCache"]
