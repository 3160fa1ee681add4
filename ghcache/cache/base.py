"""
Generic read-through entity cache.

An EntityCache holds immutable entries grouped by scope (an organization, a
repository, a repository/environment pair, a team). The first read of a
scope bulk-loads the whole collection through the pagination driver; a
miss after that falls back to a point query for the single item.

Thread safety:
    One re-entrant lock per cache guards the in-memory store, the scope
    load states and the eviction log. Remote queries always run outside the
    lock, so a slow page fetch for one scope never blocks another scope.
"""

import logging
import threading
from collections import Counter
from collections.abc import Hashable
from dataclasses import dataclass, replace
from typing import Generic, Protocol, TypeVar

from ghcache.cache.guard import LoadState, ScopeLoadGuard
from ghcache.cache.pagination import paginate
from ghcache.context import CancelContext, check_context
from ghcache.exceptions import (
    EntityNotFoundError,
    GhCacheError,
    OperationCancelledError,
    RemoteQueryError,
)
from ghcache.logging import log_cache_event
from ghcache.types.page import Page

S = TypeVar("S", bound=Hashable)
K = TypeVar("K", bound=Hashable)
E = TypeVar("E")


class EntityClient(Protocol[S, K, E]):
    """Remote collaborator of an EntityCache."""

    def list_page(self, scope: S, cursor: str | None = None, ctx: CancelContext | None = None) -> Page[E]:
        ...

    def get(self, scope: S, key: K, ctx: CancelContext | None = None) -> E | None:
        ...


@dataclass
class CacheStats:
    """Counters for one cache instance."""

    hits: int = 0
    misses: int = 0
    bulk_loads: int = 0
    fallback_fetches: int = 0
    not_found: int = 0
    evictions: int = 0


class EntityCache(Generic[S, K, E]):
    """
    Read-through cache for one entity kind.

    Re-inserting a key always replaces the previous entry: a later bulk
    load, fallback fetch or ``put`` supersedes an earlier one.
    """

    entity = "entity"

    def __init__(
        self,
        client: EntityClient[S, K, E],
        evictable: bool = True,
        wait_timeout: float | None = None,
    ) -> None:
        """
        Initialize the cache.

        Args:
            client: Remote collaborator providing ``list_page`` and ``get``
            evictable: Whether ``evict`` removes entries (False = logged no-op)
            wait_timeout: Seconds to wait for another thread's bulk load
        """
        self.client = client
        self.evictable = evictable
        self.wait_timeout = wait_timeout

        self._lock = threading.RLock()
        self._store: dict[S, dict[K, E]] = {}
        self._guard = ScopeLoadGuard(self._lock)
        self._stats = CacheStats()
        # Eviction log: (scope, key) -> epoch of its latest eviction. Only
        # entries newer than the oldest running load or fetch are kept.
        self._epoch = 0
        self._evicted_at: dict[tuple[S, K], int] = {}
        self._running: Counter[int] = Counter()

    def key_of(self, entry: E) -> K:
        """Key of an entry within its scope."""
        return entry.name  # type: ignore[attr-defined]

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def bulk_load(self, scope: S, ctx: CancelContext | None = None) -> bool:
        """
        Load every entry of ``scope``, once per process lifetime.

        Concurrent callers for the same scope share one load. A failed load
        leaves the scope Unloaded so the next call starts over.

        Returns:
            True if this call performed the load

        Raises:
            RemoteQueryError: If a page fetch fails
            OperationCancelledError: If ``ctx`` is cancelled
        """
        return self._guard.run_once(
            scope, lambda: self._load_scope(scope, ctx), self.wait_timeout, ctx
        )

    def _load_scope(self, scope: S, ctx: CancelContext | None) -> None:
        generation = self._guard.generation(scope)
        started_epoch = self._begin()
        log_cache_event("bulk_load_start", self.entity, scope)

        count = 0
        pages = 0
        try:
            for page in paginate(
                lambda cursor, page_ctx: self.client.list_page(scope, cursor, page_ctx),
                scope,
                ctx=ctx,
            ):
                pages += 1
                inserted = self._insert_page(scope, page.records, started_epoch, generation)
                if inserted is None:
                    log_cache_event("bulk_load_stale", self.entity, scope, level=logging.INFO, pages=pages)
                    return
                count += inserted
        except (RemoteQueryError, OperationCancelledError) as e:
            log_cache_event(
                "bulk_load_failed", self.entity, scope, level=logging.WARNING, pages=pages, error=e
            )
            raise
        finally:
            self._end(started_epoch)

        with self._lock:
            self._stats.bulk_loads += 1
        log_cache_event("bulk_load_done", self.entity, scope, level=logging.INFO, pages=pages, records=count)

    def _insert_page(self, scope: S, records: list[E], started_epoch: int, generation: int) -> int | None:
        """Insert one page; None if the scope was dropped since the load started."""
        inserted = 0
        with self._lock:
            self._guard.require_active(scope)
            if not self._guard.is_current(scope, generation):
                return None
            entries = self._store.setdefault(scope, {})
            for record in records:
                key = self.key_of(record)
                # Skip keys evicted while this load was running
                if self._evicted_at.get((scope, key), -1) > started_epoch:
                    continue
                entries[key] = record
                inserted += 1
        return inserted

    def _begin(self) -> int:
        """Register a running load or fetch; returns its start epoch."""
        with self._lock:
            self._running[self._epoch] += 1
            return self._epoch

    def _end(self, started_epoch: int) -> None:
        with self._lock:
            self._running[started_epoch] -= 1
            if not self._running[started_epoch]:
                del self._running[started_epoch]
            self._prune_evictions()

    def _prune_evictions(self) -> None:
        # An eviction only matters to loads and fetches that started before it
        floor = min(self._running) if self._running else self._epoch
        if self._evicted_at:
            self._evicted_at = {k: v for k, v in self._evicted_at.items() if v > floor}

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def get(self, scope: S, key: K, ctx: CancelContext | None = None) -> E:
        """
        Return the entry for ``key`` in ``scope``.

        Bulk-loads the scope first if needed, then falls back to a point
        query on a miss. Nothing is cached for a key that does not exist.

        Raises:
            EntityNotFoundError: If neither path finds the item
            RemoteQueryError: If a remote query fails
            OperationCancelledError: If ``ctx`` is cancelled
        """
        self.bulk_load(scope, ctx)

        with self._lock:
            entry = self._store.get(scope, {}).get(key)
            if entry is not None:
                self._stats.hits += 1
                return entry
            self._stats.misses += 1

        entry = self.fetch(scope, key, ctx)
        if entry is None:
            with self._lock:
                self._stats.not_found += 1
            log_cache_event("not_found", self.entity, scope, key, level=logging.INFO)
            raise EntityNotFoundError(self.entity, scope, key)
        return entry

    def fetch(self, scope: S, key: K, ctx: CancelContext | None = None) -> E | None:
        """
        Point-query a single item and cache it.

        Entries built here may be less complete than bulk-loaded ones,
        depending on what the point endpoint exposes.

        Returns:
            The entry, or None if the remote reports it does not exist

        Raises:
            RemoteQueryError: On any other remote failure
        """
        check_context(ctx)
        with self._lock:
            self._stats.fallback_fetches += 1
            generation = self._guard.generation(scope)
        started_epoch = self._begin()
        log_cache_event("fallback_fetch", self.entity, scope, key)

        try:
            try:
                entry = self.client.get(scope, key, ctx)
            except (OperationCancelledError, RemoteQueryError):
                raise
            except GhCacheError as e:
                raise RemoteQueryError(scope, e) from e
            except (KeyError, TypeError, ValueError) as e:
                raise RemoteQueryError(scope, e) from e

            if entry is None:
                return None

            with self._lock:
                # An eviction that raced with this query wins, as does a scope
                # reset; the caller still gets what the remote returned.
                raced = self._evicted_at.get((scope, key), -1) > started_epoch
                current = self._guard.is_current(scope, generation)
                if not raced and current and self._guard.state(scope) is not LoadState.UNLOADED:
                    self._store.setdefault(scope, {})[key] = entry
            return entry
        finally:
            self._end(started_epoch)

    def peek(self, scope: S, key: K) -> E | None:
        """Return a cached entry without any remote call."""
        with self._lock:
            return self._store.get(scope, {}).get(key)

    def keys(self, scope: S) -> list[K]:
        """Keys currently cached for ``scope``."""
        with self._lock:
            return list(self._store.get(scope, {}))

    def is_loaded(self, scope: S) -> bool:
        return self._guard.is_loaded(scope)

    def load_state(self, scope: S) -> LoadState:
        return self._guard.state(scope)

    def stats(self) -> CacheStats:
        """Snapshot of the counters."""
        with self._lock:
            return replace(self._stats)

    # ------------------------------------------------------------------
    # Writing and invalidation
    # ------------------------------------------------------------------

    def put(self, scope: S, entry: E) -> None:
        """
        Store an entry known to be current, e.g. after a create or update.

        Only valid for a scope that is loading or loaded; for an unloaded
        scope the entry is dropped and the next read loads the scope.
        """
        key = self.key_of(entry)
        with self._lock:
            if self._guard.state(scope) is LoadState.UNLOADED:
                log_cache_event("put_skipped", self.entity, scope, key)
                return
            self._store.setdefault(scope, {})[key] = entry
        log_cache_event("put", self.entity, scope, key)

    def evict(self, scope: S, key: K) -> bool:
        """
        Remove one entry so the next read re-fetches it.

        Absent keys and unloaded scopes are not an error.

        Returns:
            True if an entry was removed
        """
        if not self.evictable:
            log_cache_event("evict_disabled", self.entity, scope, key, level=logging.WARNING)
            return False

        with self._lock:
            self._epoch += 1
            self._evicted_at[(scope, key)] = self._epoch
            removed = self._store.get(scope, {}).pop(key, None) is not None
            if removed:
                self._stats.evictions += 1
            self._prune_evictions()
        log_cache_event("evict", self.entity, scope, key, removed=removed)
        return removed

    def evict_scope(self, scope: S) -> None:
        """
        Drop a whole scope; the next read bulk-loads it again.

        A load or fallback fetch of the scope still running is discarded.
        """
        if not self.evictable:
            log_cache_event("evict_disabled", self.entity, scope, level=logging.WARNING)
            return

        with self._lock:
            entries = self._store.pop(scope, {})
            self._stats.evictions += len(entries)
            self._guard.reset(scope)
        log_cache_event("evict_scope", self.entity, scope, removed=len(entries))

    def __repr__(self) -> str:
        with self._lock:
            scopes = len(self._store)
            entries = sum(len(v) for v in self._store.values())
        return f"{type(self).__name__}(scopes={scopes}, entries={entries})"

