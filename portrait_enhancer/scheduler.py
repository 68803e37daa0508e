"""Debounced recomputation for interactive parameter editing.

The scheduler owns the "current bitmap / current parameters / current result"
slot. Parameter edits and new images arm a short timer; only the last edit in
a burst starts a run. Runs are serialised and never interrupted, so results
are published in generation order and a newer run simply supersedes the last
one. A run owns its bitmap until it finishes, even if a new photo replaces it.
"""
from __future__ import annotations

import enum
import logging
import threading
from typing import Any, Callable, List, Optional, Protocol

import numpy as np

from .errors import EnhancementError
from .io_utils import SourceBitmap
from .parameters import DEFAULT_PARAMETERS, ParameterSet
from .pipeline import EnhancementPipeline, EnhancementRun

LOGGER = logging.getLogger("portrait_enhancer").getChild("scheduler")

DEFAULT_DELAY = 0.120


class Timer(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], Timer]


def _daemon_timer(interval: float, function: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(interval, function)
    timer.daemon = True
    return timer


class SchedulerState(enum.Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"
    RUNNING = "running"


class RecomputeScheduler:
    """Debounce edits and keep at most one enhancement run active.

    Args:
        pipeline: Pipeline used for every run.
        delay: Debounce window in seconds.
        on_result: Called with ``(buffer, run)`` when a result is published.
        on_error: Called with the :class:`EnhancementError` of a failed run.
        timer_factory: Builds a startable/cancellable timer for ``(delay, callback)``.
    """

    def __init__(
        self,
        pipeline: EnhancementPipeline | None = None,
        *,
        delay: float = DEFAULT_DELAY,
        params: ParameterSet = DEFAULT_PARAMETERS,
        on_result: Optional[Callable[[np.ndarray, EnhancementRun], Any]] = None,
        on_error: Optional[Callable[[EnhancementError], Any]] = None,
        timer_factory: TimerFactory = _daemon_timer,
    ) -> None:
        self.pipeline = pipeline or EnhancementPipeline()
        self.delay = delay
        self.on_result = on_result
        self.on_error = on_error
        self._timer_factory = timer_factory

        self._lock = threading.RLock()
        self._run_lock = threading.Lock()
        self._timer: Optional[Timer] = None
        self._running = False
        self._params = params
        self._bitmap: Optional[SourceBitmap] = None
        self._active_source: Optional[SourceBitmap] = None
        self._retired: List[SourceBitmap] = []
        self._generation = 0
        self.result: Optional[np.ndarray] = None
        self.last_error: Optional[EnhancementError] = None

    @property
    def state(self) -> SchedulerState:
        with self._lock:
            if self._running:
                return SchedulerState.RUNNING
            if self._timer is not None:
                return SchedulerState.SCHEDULED
            return SchedulerState.IDLE

    @property
    def params(self) -> ParameterSet:
        with self._lock:
            return self._params

    @property
    def bitmap(self) -> Optional[SourceBitmap]:
        with self._lock:
            return self._bitmap

    def update_parameters(self, params: ParameterSet) -> None:
        """Replace the current parameters and schedule a recompute."""
        with self._lock:
            self._params = params
        self.schedule()

    def set_parameter(self, name: str, value: float) -> None:
        """Change a single knob, e.g. from a slider callback."""
        with self._lock:
            self._params = self._params.replace(**{name: value})
        self.schedule()

    def load_image(self, bitmap: SourceBitmap) -> None:
        """Take ownership of *bitmap*, releasing the one it replaces.

        A replaced bitmap that an active run is still reading is released when
        that run finishes.
        """
        with self._lock:
            previous, self._bitmap = self._bitmap, bitmap
        if previous is not None and previous is not bitmap:
            self._release(previous)
        self.schedule()

    def schedule(self) -> None:
        """Arm (or re-arm) the debounce timer."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            timer = self._timer_factory(self.delay, lambda: self._on_timer(timer))
            self._timer = timer
            LOGGER.debug("Recompute scheduled in %.3fs", self.delay)
        timer.start()

    def cancel(self) -> None:
        """Drop a pending recompute without running it."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def trigger_now(self) -> Optional[np.ndarray]:
        """Run immediately, bypassing the debounce window."""
        self.cancel()
        return self._execute()

    def reset_to_defaults(self) -> Optional[np.ndarray]:
        """Restore :data:`DEFAULT_PARAMETERS` and recompute immediately."""
        with self._lock:
            self._params = DEFAULT_PARAMETERS
        return self.trigger_now()

    def close(self) -> None:
        """Cancel pending work and release the current bitmap."""
        self.cancel()
        with self._lock:
            bitmap, self._bitmap = self._bitmap, None
        if bitmap is not None:
            self._release(bitmap)

    def _release(self, bitmap: SourceBitmap) -> None:
        with self._lock:
            if bitmap is self._active_source:
                LOGGER.debug("Deferring release of %s until its run finishes", bitmap.name)
                self._retired.append(bitmap)
                return
        LOGGER.debug("Releasing replaced bitmap %s", bitmap.name)
        bitmap.close()

    def _on_timer(self, timer: Timer) -> None:
        with self._lock:
            if self._timer is not timer:
                return
            self._timer = None
        self._execute()

    def _execute(self) -> Optional[np.ndarray]:
        with self._run_lock:
            with self._lock:
                self._generation += 1
                run = EnhancementRun(source=self._bitmap, params=self._params, generation=self._generation)
                self._active_source = run.source
                self._running = True
            try:
                buffer = self.pipeline.execute(run)
            except EnhancementError as exc:
                LOGGER.warning("Enhancement run %s failed: %s", run.generation, exc.reason)
                with self._lock:
                    self.last_error = exc
                if self.on_error is not None:
                    self.on_error(exc)
                return None
            finally:
                with self._lock:
                    self._running = False
                    self._active_source = None
                    retired = [bitmap for bitmap in self._retired if bitmap is not self._bitmap]
                    self._retired = []
                for bitmap in retired:
                    LOGGER.debug("Releasing replaced bitmap %s", bitmap.name)
                    bitmap.close()
            with self._lock:
                self.result = buffer
                self.last_error = None
            if self.on_result is not None:
                self.on_result(buffer, run)
            return buffer


__all__ = [
    "DEFAULT_DELAY",
    "RecomputeScheduler",
    "SchedulerState",
]
