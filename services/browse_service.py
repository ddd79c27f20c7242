"""
Category Browse Session Service.

This module provides the `BrowseService`, which owns the list currently shown
to a viewer. Selecting a category starts a background load through the
`AggregationService`; selecting another one before it finishes supersedes it.

Key Components:
- `BrowseState`: What the display layer renders: selected category, load
  status, running record count, the loaded records and the last error.
- `BrowseService.select_category`: Bumps the load generation, cancels the
  in-flight load task and starts a new one.
- Generation guard: progress, results and errors from a load are applied only
  while its generation is still the current one. A superseded load can never
  write into the state of the category that replaced it, even if its task
  was already past its last suspension point when it was cancelled.

Architectural Design:
- Single event loop: the generation counter is the only synchronization
  needed, since state is only mutated from coroutines on the same loop.
- A failed load replaces the previous list with an error state; no partial
  records are kept.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
from core.exceptions import StreamListException
from core.models import StreamRecord
from services.aggregation_service import AggregationService, present

logger = logging.getLogger(__name__)


class LoadStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass
class BrowseState:
    category_id: Optional[str] = None
    status: LoadStatus = LoadStatus.IDLE
    loaded_count: int = 0
    records: List[StreamRecord] = field(default_factory=list)
    error: Optional[Dict[str, Any]] = None


class BrowseService:
    """Service that applies at most one category load to the displayed list"""

    def __init__(self, aggregator: AggregationService):
        self.aggregator = aggregator
        self.state = BrowseState()
        self.generation = 0
        self._task: Optional[asyncio.Task] = None

    def is_current(self, generation: int) -> bool:
        return generation == self.generation

    def select_category(self, category_id: str) -> int:
        """
        Start loading a category, superseding any load in flight.

        Must be called from a running event loop.

        Returns:
            int: The generation assigned to the new load
        """
        self.generation += 1
        generation = self.generation

        if self._task and not self._task.done():
            logger.info(
                f"Cancelling load for game_id={self.state.category_id}",
                extra={"superseded_by": category_id},
            )
            self._task.cancel()

        self.state = BrowseState(category_id=category_id, status=LoadStatus.LOADING)
        self._task = asyncio.create_task(self._run(generation, category_id))
        return generation

    async def _run(self, generation: int, category_id: str) -> None:
        def on_progress(count: int) -> None:
            if self.is_current(generation):
                self.state.loaded_count = count

        try:
            records = await self.aggregator.load_all(category_id, on_progress)
        except asyncio.CancelledError:
            logger.debug(f"Load for game_id={category_id} cancelled")
            raise
        except StreamListException as e:
            self._fail(generation, category_id, e.error_code, e.message)
            return
        except Exception as e:
            logger.exception(f"Unexpected error loading game_id={category_id}")
            self._fail(generation, category_id, "INTERNAL_ERROR", str(e))
            return

        if not self.is_current(generation):
            logger.info(f"Discarding superseded result for game_id={category_id}")
            return

        self.state.records = records
        self.state.status = LoadStatus.READY
        logger.info(f"Displaying {len(records)} streams for game_id={category_id}")

    def _fail(self, generation: int, category_id: str, code: str, message: str) -> None:
        if not self.is_current(generation):
            logger.info(f"Ignoring error from superseded load for game_id={category_id}")
            return

        logger.error(f"Load failed for game_id={category_id}: {message}")
        self.state.records = []
        self.state.status = LoadStatus.FAILED
        self.state.error = {"code": code, "message": message}

    async def wait(self) -> BrowseState:
        """Wait until the current load settles, following any supersession"""
        while self._task is not None:
            task = self._task
            await asyncio.gather(task, return_exceptions=True)
            if task is self._task:
                break
        return self.state

    def view(self, query: str = "", order: str = "desc") -> List[StreamRecord]:
        return present(self.state.records, query, order)

    def snapshot(self, query: str = "", order: str = "desc") -> Dict[str, Any]:
        streams = self.view(query, order)
        return {
            "category_id": self.state.category_id,
            "status": self.state.status.value,
            "loaded_count": self.state.loaded_count,
            "total": len(self.state.records),
            "shown": len(streams),
            "error": self.state.error,
            "streams": [record.model_dump() for record in streams],
        }

    async def close(self) -> None:
        """Cancel any in-flight load (used on shutdown)"""
        task = self._task
        if task and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
