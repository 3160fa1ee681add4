"""
Once-per-scope load gate.

Each scope moves Unloaded -> Loading -> Loaded, or back to Unloaded when
the load body fails. Exactly one thread runs the body for a scope at a
time; other callers wait for it instead of starting their own load.
"""

import threading
import time
from collections.abc import Callable, Hashable
from enum import Enum
from typing import Any

from ghcache.context import CancelContext, check_context
from ghcache.exceptions import CacheInvariantError, OperationCancelledError

# Waiters re-check their own context at this interval (seconds)
WAIT_SLICE = 0.05


class LoadState(str, Enum):
    """Load state of one scope."""

    UNLOADED = "unloaded"
    LOADING = "loading"
    LOADED = "loaded"


class _InFlight:
    """A running load that other callers can wait on."""

    def __init__(self, generation: int) -> None:
        self.generation = generation
        self.done = threading.Event()
        self.error: BaseException | None = None
        self.stale = False


class ScopeLoadGuard:
    """Runs a load body at most once per scope until it succeeds."""

    def __init__(self, lock: Any = None) -> None:
        """
        Initialize the guard.

        Args:
            lock: Lock shared with the owning cache; state changes happen under it
        """
        self._lock = lock or threading.RLock()
        self._loaded: set[Hashable] = set()
        self._in_flight: dict[Hashable, _InFlight] = {}
        self._generations: dict[Hashable, int] = {}

    def state(self, scope: Hashable) -> LoadState:
        with self._lock:
            if scope in self._loaded:
                return LoadState.LOADED
            if scope in self._in_flight:
                return LoadState.LOADING
            return LoadState.UNLOADED

    def is_loaded(self, scope: Hashable) -> bool:
        with self._lock:
            return scope in self._loaded

    def generation(self, scope: Hashable) -> int:
        """Counter bumped by every ``reset`` of ``scope``."""
        with self._lock:
            return self._generations.get(scope, 0)

    def run_once(
        self,
        scope: Hashable,
        body: Callable[[], None],
        wait_timeout: float | None = None,
        ctx: CancelContext | None = None,
    ) -> bool:
        """
        Run ``body`` for ``scope`` unless it already completed.

        The body runs outside the lock. If another thread is loading the same
        scope, this call waits for it and re-raises its error, if any. A load
        that was cancelled by its own caller, or reset while running, is
        started over by the next thread instead.

        Args:
            scope: Scope key
            body: Load body; raising leaves the scope Unloaded
            wait_timeout: Seconds to wait for another thread's load (None = forever)
            ctx: This caller's cancellation context, honoured while waiting

        Returns:
            True if this call ran the body to completion, False if the scope
            was already loaded or another thread loaded it

        Raises:
            OperationCancelledError: If ``ctx`` is cancelled or waiting times out
        """
        while True:
            with self._lock:
                if scope in self._loaded:
                    return False
                flight = self._in_flight.get(scope)
                owner = flight is None
                if owner:
                    flight = _InFlight(self._generations.get(scope, 0))
                    self._in_flight[scope] = flight

            if not owner:
                self._wait(scope, flight, wait_timeout, ctx)
                if flight.stale or isinstance(flight.error, OperationCancelledError):
                    continue
                if flight.error is not None:
                    raise flight.error
                return False

            try:
                body()
            except BaseException as e:
                flight.error = e
                with self._lock:
                    del self._in_flight[scope]
                flight.done.set()
                raise

            with self._lock:
                del self._in_flight[scope]
                flight.stale = self._generations.get(scope, 0) != flight.generation
                if not flight.stale:
                    self._loaded.add(scope)
            flight.done.set()
            if not flight.stale:
                return True

    def _wait(
        self,
        scope: Hashable,
        flight: _InFlight,
        wait_timeout: float | None,
        ctx: CancelContext | None,
    ) -> None:
        deadline = time.monotonic() + wait_timeout if wait_timeout is not None else None
        while True:
            check_context(ctx)
            timeout = WAIT_SLICE
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise OperationCancelledError(f"timed out waiting for load of scope {scope!r}")
                timeout = min(timeout, remaining)
            if flight.done.wait(timeout):
                return

    def reset(self, scope: Hashable) -> None:
        """
        Forget that ``scope`` was loaded so the next call reloads it.

        A load of ``scope`` still running is marked stale: it neither inserts
        further pages nor marks the scope Loaded.
        """
        with self._lock:
            self._loaded.discard(scope)
            self._generations[scope] = self._generations.get(scope, 0) + 1

    def is_current(self, scope: Hashable, generation: int) -> bool:
        """Whether ``scope`` was not reset since ``generation`` was read."""
        with self._lock:
            return self._generations.get(scope, 0) == generation

    def require_active(self, scope: Hashable) -> None:
        """
        Assert that ``scope`` is Loading or Loaded.

        Raises:
            CacheInvariantError: If the scope was never marked
        """
        with self._lock:
            if scope not in self._loaded and scope not in self._in_flight:
                raise CacheInvariantError(f"insert into scope {scope!r} which is not loading or loaded")
