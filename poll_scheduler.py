"""Adaptive polling of the work-log backend"""
from enum import Enum
from typing import Callable, List, Optional, Set
import asyncio
import logging

from backend_client import WorkLogFetchError
from config import PollingConfig, backend_config, polling_config
from models import DiffResult
from services import WorkLogMonitor

logger = logging.getLogger(__name__)


class SchedulerState(str, Enum):
    STOPPED = 'stopped'
    ACTIVE = 'active'
    PAUSED = 'paused'


class VisibilityObserver:
    """Foreground/background signal for the scheduler; listeners get the new hidden flag"""

    def __init__(self, hidden: bool = False):
        self._hidden = hidden
        self._listeners: List[Callable[[bool], None]] = []

    @property
    def hidden(self) -> bool:
        return self._hidden

    def subscribe(self, listener: Callable[[bool], None]):
        self._listeners.append(listener)

    def unsubscribe(self, listener: Callable[[bool], None]):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def set_hidden(self, hidden: bool):
        if hidden == self._hidden:
            return
        self._hidden = hidden
        for listener in list(self._listeners):
            listener(hidden)


class PollScheduler:
    """
    Run fetch-diff-regroup cycles on the event loop.

    States: stopped, active (periodic timer armed) and paused. Only one periodic
    cycle is outstanding at a time; a date override change always starts a new
    replace cycle and makes older in-flight results stale.
    """

    def __init__(
        self,
        monitor: WorkLogMonitor,
        source,
        visibility: Optional[VisibilityObserver] = None,
        config: PollingConfig = polling_config,
        request_timeout: float = backend_config.request_timeout
    ):
        self.monitor = monitor
        self.source = source
        self.visibility = visibility or VisibilityObserver()
        self.config = config
        self.request_timeout = request_timeout
        self._state = SchedulerState.STOPPED
        self._timer: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()
        self.visibility.subscribe(self._on_visibility_change)

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def interval(self) -> float:
        if self.visibility.hidden:
            return self.config.background_interval
        return self.config.foreground_interval

    @property
    def in_flight(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def enable(self) -> Optional[asyncio.Task]:
        """Start polling: one cycle now, then one per interval"""
        if self._state == SchedulerState.ACTIVE:
            return None
        self._state = SchedulerState.ACTIVE
        logger.info(f"Polling enabled every {self.interval}s")
        task = self._start_cycle()
        self._arm()
        return task

    def disable(self):
        """Pause polling; an in-flight cycle still completes and is applied"""
        if self._state != SchedulerState.ACTIVE:
            return
        self._state = SchedulerState.PAUSED
        self._disarm()
        logger.info("Polling paused")

    def stop(self):
        self._state = SchedulerState.STOPPED
        self._disarm()
        logger.info("Polling stopped")

    def apply_filters(self, target_date: Optional[str]) -> asyncio.Task:
        """
        Switch the inspected day and reload the snapshot from scratch.

        Raises:
            ValueError: target_date is not 'YYYY-MM-DD'
        """
        self.monitor.set_date_override(target_date)
        return self._start_cycle(replace=True, force=True)

    async def run_cycle(self, replace: bool = False) -> Optional[DiffResult]:
        """One fetch-diff-apply iteration; failures are logged and leave the snapshot as it was"""
        generation = self.monitor.begin_request()
        target_date = self.monitor.state.date_override
        loop = asyncio.get_running_loop()
        try:
            result = await asyncio.wait_for(
                loop.run_in_executor(None, self.source.fetch, target_date),
                timeout=self.request_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"Work-log fetch timed out after {self.request_timeout}s")
            self.monitor.record_failure(generation, WorkLogFetchError("Request timed out"))
            return None
        except WorkLogFetchError as e:
            logger.error(f"Work-log fetch failed: {e}")
            self.monitor.record_failure(generation, e)
            return None
        except Exception as e:
            logger.error(f"Unexpected error during work-log fetch: {e}", exc_info=True)
            self.monitor.record_failure(generation, e)
            return None
        finally:
            self.monitor.finish_request()

        return self.monitor.apply_result(result, generation, replace=replace)

    async def drain(self):
        """Wait for every outstanding cycle"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def status(self) -> dict:
        return {
            'state': self._state.value,
            'interval': self.interval,
            'hidden': self.visibility.hidden,
            'inFlight': self.in_flight,
        }

    def _start_cycle(self, replace: bool = False, force: bool = False) -> Optional[asyncio.Task]:
        if not force and self.in_flight:
            logger.debug("Previous cycle still running, skipping tick")
            return None
        task = asyncio.get_running_loop().create_task(self.run_cycle(replace=replace))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self._inflight = task
        return task

    def _arm(self):
        self._disarm()
        if self._state != SchedulerState.ACTIVE:
            return
        self._timer = asyncio.get_running_loop().create_task(self._periodic(self.interval))

    def _disarm(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def _periodic(self, interval: float):
        while True:
            await asyncio.sleep(interval)
            self._start_cycle()

    def _on_visibility_change(self, hidden: bool):
        logger.info(f"Visibility changed (hidden={hidden}), polling every {self.interval}s")
        if self._state == SchedulerState.ACTIVE:
            self._arm()
