"""Short-lived in-process cache in front of a source adapter."""
import logging
import threading
import time
from typing import Callable, Dict, Optional, Tuple

from processor.models import FetchResult
from sources.base import SourceAdapter

logger = logging.getLogger(__name__)


class CachedSourceAdapter:
    """
    Wraps an adapter and reuses its last successful result for ``ttl`` seconds.

    Debug fetches bypass the cache in both directions, and failed fetches
    are never stored so the next call goes upstream again.
    """

    def __init__(self, adapter: SourceAdapter, ttl: Optional[int] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.adapter = adapter
        self.ttl = adapter.definition.cache_ttl if ttl is None else ttl
        self.clock = clock
        self._entries: Dict[str, Tuple[float, FetchResult]] = {}
        self._lock = threading.Lock()

    @property
    def source_id(self) -> str:
        return self.adapter.source_id

    @property
    def definition(self):
        return self.adapter.definition

    def fetch(self, debug: bool = False) -> FetchResult:
        if not debug:
            cached = self._lookup()
            if cached is not None:
                logger.info(f"Cache hit for {self.source_id}")
                return cached

        result = self.adapter.fetch(debug=debug)

        if not debug and not result.failed:
            with self._lock:
                self._entries[self.source_id] = (self.clock() + self.ttl, result)
        return result

    def _lookup(self) -> Optional[FetchResult]:
        with self._lock:
            entry = self._entries.get(self.source_id)
            if entry is None:
                return None
            expires_at, result = entry
            if self.clock() >= expires_at:
                del self._entries[self.source_id]
                return None
            return result
