from __future__ import annotations

import time
from typing import List, Protocol, Tuple

from loguru import logger

from src.errors import UpstreamError
from src.models.candidate import SnapshotEntry


class SnapshotSource(Protocol):
    def fetch_snapshot_page(self, cursor: str | None = None) -> Tuple[List[SnapshotEntry], str | None]:
        ...


class SnapshotFetcher:
    """Walks the paginated market snapshot and returns the whole universe.

    A failed page aborts the fetch: a partial universe would bias the scan
    toward whatever sorted first upstream.
    """

    def __init__(self, client: SnapshotSource, max_pages: int = 25):
        self.client = client
        self.max_pages = max(1, max_pages)

    def fetch_universe(self) -> List[SnapshotEntry]:
        entries: List[SnapshotEntry] = []
        cursor: str | None = None
        pages = 0
        start = time.perf_counter()
        while True:
            try:
                page_entries, cursor = self.client.fetch_snapshot_page(cursor)
            except UpstreamError:
                logger.error("snapshot page failed", page=pages + 1, accumulated=len(entries))
                raise
            except Exception as exc:  # noqa: BLE001
                logger.error("snapshot page failed", page=pages + 1, accumulated=len(entries), error=str(exc))
                raise UpstreamError(f"snapshot page {pages + 1} failed: {exc}") from exc
            pages += 1
            entries.extend(page_entries)
            if not cursor:
                break
            if pages >= self.max_pages:
                logger.warning(
                    "snapshot page ceiling reached; returning partial universe",
                    pages=pages,
                    max_pages=self.max_pages,
                    entries=len(entries),
                )
                break

        logger.info(
            "snapshot fetched",
            pages=pages,
            entries=len(entries),
            duration_ms=int((time.perf_counter() - start) * 1000),
        )
        return entries
