"""
Observation Pump - Drives one observation source on a fixed cadence

Each pump owns one producer (faces or objects). A tick fetches an
observation from the source and hands it to the session. Ticks are
started on the wall-clock cadence, but a tick is skipped when the
previous tick of the same pump is still in flight, so slow detector
calls can never reorder state updates. The two pumps of a session are
independent of each other.
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from .utils.logging import log_producer_error, log_tick_skipped

logger = logging.getLogger(__name__)

# Returns an observation, or None when the source has nothing yet (camera not ready)
ObservationSource = Callable[[], Any]


class ObservationPump:
    """Periodic, self-serializing sampler for one producer."""

    def __init__(
        self,
        name: str,
        source: ObservationSource,
        handler: Callable[[Any], Any],
        interval: float,
        session_id: str = "-",
        setup: Optional[Callable[[], Awaitable[Any]]] = None
    ):
        """
        Initialize pump.

        Args:
            name: Producer name used in logs ("face" or "object")
            source: Sync or async callable returning the next observation
            handler: Receives each observation
            interval: Seconds between tick starts
            session_id: Owning session, for logs
            setup: Optional coroutine function run once before the first
                tick (model loading). If it fails the pump never ticks.
        """
        self.name = name
        self.interval = interval
        self.session_id = session_id
        self._source = source
        self._handler = handler
        self._setup = setup

        self._in_flight = False
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._tick_tasks: Set[asyncio.Task] = set()

        self.completed_ticks = 0
        self.empty_ticks = 0
        self.skipped_ticks = 0
        self.failed_ticks = 0
        self.available = True

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def running(self) -> bool:
        return self._running

    async def tick(self) -> bool:
        """
        Run one sampling step unless the previous one is still running.

        Returns:
            True if the tick ran, False if it was skipped
        """
        if self._in_flight:
            self.skipped_ticks += 1
            log_tick_skipped(self.session_id, self.name, self.skipped_ticks)
            return False

        self._in_flight = True
        try:
            observation = self._source()
            if inspect.isawaitable(observation):
                observation = await observation

            if observation is None:
                self.empty_ticks += 1
                return True

            self._handler(observation)
            self.completed_ticks += 1
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # A failing tick is "no new information"; the session keeps going
            self.failed_ticks += 1
            log_producer_error(self.session_id, self.name, e)
        finally:
            self._in_flight = False

        return True

    def start(self):
        """Start ticking on the running event loop"""
        if self._task is not None:
            return
        self._running = True
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info(f"{self.name} pump started for session {self.session_id} (every {self.interval}s)")

    async def _run(self):
        if self._setup is not None:
            try:
                await self._setup()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.available = False
                self._running = False
                log_producer_error(self.session_id, self.name, e)
                logger.warning(f"{self.name} source unavailable for session {self.session_id}")
                return

        while self._running:
            tick_task = asyncio.create_task(self.tick())
            self._tick_tasks.add(tick_task)
            tick_task.add_done_callback(self._tick_tasks.discard)
            await asyncio.sleep(self.interval)

    async def stop(self):
        """Stop ticking and cancel any tick still in flight"""
        self._running = False

        pending = list(self._tick_tasks)
        if self._task is not None:
            pending.append(self._task)
            self._task = None

        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    def get_metrics(self) -> Dict[str, Any]:
        """Get pump counters"""
        return {
            "name": self.name,
            "interval": self.interval,
            "available": self.available,
            "completed_ticks": self.completed_ticks,
            "empty_ticks": self.empty_ticks,
            "skipped_ticks": self.skipped_ticks,
            "failed_ticks": self.failed_ticks,
        }
