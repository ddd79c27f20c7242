"""
Stream Aggregation Service.

This module walks the cursor-based pagination of the streams query for one
game category and turns the pages into a single deduplicated list, plus the
filter and sort helpers used to present that list.

Key Components:
- `AggregationService.load_all`: Fetches the first page, then follows cursors
  one page at a time with a fixed delay between requests. It stops on a missing
  cursor, at the page ceiling, or once the raw record ceiling is reached.
- `filter_records`: Case-insensitive substring match on title or channel name.
- `sort_records`: Stable sort by viewer count in either direction.
- `present`: Filter then sort, as the display layer needs it.

Architectural Design:
- Sequential by construction: the cursor for page N+1 only exists once page N
  has returned, so there is exactly one request in flight per load.
- Dedup by overwrite: records are merged into a dict keyed by `id`, so a
  channel seen on two pages keeps the values from the later page.
- All-or-nothing: any page failure propagates and the accumulated records are
  dropped with the local state. Callers never see a partial list.
- The accumulation state is local to each `load_all` call, so concurrent loads
  never share a mutable map.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional
from core.models import StreamRecord
from providers.stream_provider import StreamPageProvider

logger = logging.getLogger(__name__)

MAX_PAGES = 10
MAX_RAW_RECORDS = 1000
PAGE_DELAY_SECONDS = 0.1

ProgressCallback = Callable[[int], None]


@dataclass
class AggregationState:
    """Working state of a single load"""

    records: Dict[str, StreamRecord] = field(default_factory=dict)
    cursor: Optional[str] = None
    pages_fetched: int = 0
    raw_count: int = 0

    def merge(self, page_records: Iterable[StreamRecord]) -> None:
        for record in page_records:
            self.records[record.id] = record
            self.raw_count += 1


class AggregationService:
    """Collects every page of live streams for a category into one list"""

    def __init__(
        self,
        provider: StreamPageProvider,
        max_pages: int = MAX_PAGES,
        max_records: int = MAX_RAW_RECORDS,
        page_delay: float = PAGE_DELAY_SECONDS,
    ):
        self.provider = provider
        self.max_pages = max_pages
        self.max_records = max_records
        self.page_delay = page_delay

    def _should_continue(self, state: AggregationState) -> bool:
        return (
            state.cursor is not None
            and state.pages_fetched < self.max_pages
            and state.raw_count < self.max_records
        )

    async def load_all(
        self, category_id: str, on_progress: Optional[ProgressCallback] = None
    ) -> List[StreamRecord]:
        """
        Load every live stream for a category, up to the page and record ceilings.

        Args:
            category_id: Twitch game id
            on_progress: Called with the raw record count after every page

        Returns:
            Deduplicated records in no particular order

        Raises:
            StreamListException: If any page fails. No partial result is returned.
        """
        state = AggregationState()

        logger.info(f"Loading streams for game_id={category_id}")

        page = await self.provider.fetch_page(category_id)
        self._advance(state, page.data, page.cursor, on_progress)

        while self._should_continue(state):
            await asyncio.sleep(self.page_delay)

            page = await self.provider.fetch_page(category_id, state.cursor)
            self._advance(state, page.data, page.cursor, on_progress)

        logger.info(
            f"Loaded {len(state.records)} unique streams for game_id={category_id}",
            extra={
                "pages_fetched": state.pages_fetched,
                "raw_count": state.raw_count,
                "final_page": state.cursor is None,
            },
        )
        return list(state.records.values())

    @staticmethod
    def _advance(
        state: AggregationState,
        page_records: List[StreamRecord],
        cursor: Optional[str],
        on_progress: Optional[ProgressCallback],
    ) -> None:
        state.merge(page_records)
        state.pages_fetched += 1
        state.cursor = cursor
        if on_progress:
            on_progress(state.raw_count)


def filter_records(records: Iterable[StreamRecord], query: str = "") -> List[StreamRecord]:
    """Keep records whose title or channel name contains the query, ignoring case"""
    needle = (query or "").lower()
    if not needle:
        return list(records)
    return [
        record
        for record in records
        if needle in record.title.lower() or needle in record.user_name.lower()
    ]


def sort_records(
    records: Iterable[StreamRecord], descending: bool = True
) -> List[StreamRecord]:
    """Stable sort by viewer count; ties keep their input order"""
    return sorted(records, key=lambda record: record.viewer_count, reverse=descending)


def present(
    records: Iterable[StreamRecord], query: str = "", order: str = "desc"
) -> List[StreamRecord]:
    return sort_records(filter_records(records, query), descending=order != "asc")
