"""End-to-end run: fetch every source, canonicalize, filter and sync."""
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Dict, Mapping, Optional

from processor.canonicalizer import Canonicalizer
from processor.models import FetchResult, RunConfig, SyncResult
from processor.window import retain
from storage.calendar_store import CalendarStore
from sync.engine import SyncEngine

logger = logging.getLogger(__name__)


class SyncPipeline:
    """Runs the ingestion pipeline for a set of source adapters."""

    def __init__(self, adapters: Mapping[str, object], store: CalendarStore,
                 canonicalizer: Canonicalizer, config: RunConfig):
        """
        Initialize the pipeline.

        Args:
            adapters: Mapping of source_id to adapter (cached or not), in
                the order sources should be synced
            store: Calendar store to reconcile against
            canonicalizer: Canonicalizer for the display timezone
            config: Run configuration
        """
        self.adapters = adapters
        self.store = store
        self.canonicalizer = canonicalizer
        self.config = config
        self.engine = SyncEngine(store)

    def run(self, now: Optional[datetime] = None) -> Dict[str, SyncResult]:
        """
        Fetch all sources concurrently, then sync them one after another.

        A failure in one source yields an empty SyncResult for that source
        and does not affect the others.

        Args:
            now: Current instant (default: UTC now)

        Returns:
            Mapping of source_id to SyncResult
        """
        now = now or datetime.now(timezone.utc)
        fetched = self._fetch_all()

        results = {}
        for source_id, adapter in self.adapters.items():
            fetch_result = fetched.get(source_id)
            if fetch_result is None or fetch_result.failed:
                results[source_id] = SyncResult()
                continue
            try:
                results[source_id] = self.sync_source(adapter, fetch_result, now)
            except Exception as e:
                logger.error(
                    f"Sync failed for {source_id}: {e}",
                    extra={'error_type': type(e).__name__},
                    exc_info=True
                )
                results[source_id] = SyncResult()
        return results

    def sync_source(self, adapter, fetch_result: FetchResult, now: datetime) -> SyncResult:
        """Canonicalize, window-filter and sync one source's records."""
        source_id = fetch_result.source_id
        events, dropped = self.canonicalizer.canonicalize_all(fetch_result.events, source_id)
        in_window = retain(events, now, self.config.max_past_days)
        logger.info(
            f"{len(in_window)} of {len(events)} {source_id} events inside the "
            f"{self.config.max_past_days}-day window"
        )
        return self.engine.sync(in_window, adapter.definition.category_tag, dropped=dropped)

    def inspect(self, source_id: str) -> FetchResult:
        """
        Fetch one source in diagnostic mode, bypassing the cache.

        Raises:
            KeyError: If the source is not configured
        """
        return self.adapters[source_id].fetch(debug=True)

    def _fetch_all(self) -> Dict[str, FetchResult]:
        results = {}
        if not self.adapters:
            return results

        with ThreadPoolExecutor(max_workers=len(self.adapters)) as executor:
            futures = {
                source_id: executor.submit(adapter.fetch, False)
                for source_id, adapter in self.adapters.items()
            }
            for source_id, future in futures.items():
                try:
                    results[source_id] = future.result()
                except Exception as e:
                    logger.error(
                        f"Fetch raised for {source_id}: {e}",
                        extra={'error_type': type(e).__name__},
                        exc_info=True
                    )
                    results[source_id] = FetchResult(source_id=source_id, error=str(e))
        return results
