"""
Per-resource cache with persistence and stale-while-revalidate refresh.

One ``ResourceCache`` owns the payload and version metadata of a single
resource key. Reads are served from memory (seeded from the durable store at
construction); the change oracle decides when a re-fetch is worth doing.
"""

import asyncio
import copy
import json
import time
from typing import Any, Awaitable, Callable, List, Optional

from shared.errors import FetchError, PersistenceError
from shared.logging import get_logger, operation_context
from shared.metrics import MetricsCollector

from ..oracle import ChangeOracle, CoalescingOracle, VersionMarker, is_newer, resolve_marker
from ..storage import DurableStore, metadata_id, value_id
from .debounce import Debouncer
from .models import CacheSnapshot

Fetcher = Callable[[], Awaitable[Any]]
Listener = Callable[[CacheSnapshot], None]

DEFAULT_STALE_TIME = 30.0
DEFAULT_DEBOUNCE = 0.5


class ResourceCache:
    """Cached value and metadata for one resource key.

    Loads come in three flavours: a cold ``load()`` that is skipped while the
    value is younger than ``stale_time``, a forced reload, and a silent
    reload that never raises the ``loading`` flag. ``refresh()`` and
    ``revalidate()`` only reload when the oracle reports a newer marker than
    the one adopted at the last fetch.
    """

    def __init__(
        self,
        key: str,
        fetcher: Fetcher,
        oracle: ChangeOracle,
        *,
        store: Optional[DurableStore] = None,
        auto_load: bool = True,
        stale_time: float = DEFAULT_STALE_TIME,
        persist: bool = True,
        revalidate_on_mount: bool = False,
        debounce: float = DEFAULT_DEBOUNCE,
        clock: Callable[[], float] = time.time,
        metrics: Optional[MetricsCollector] = None,
    ):
        if not key:
            raise ValueError("cache key must be a non-empty string")
        if stale_time <= 0:
            raise ValueError("stale_time must be positive")

        self.key = key
        self.auto_load = auto_load
        self.stale_time = stale_time
        self.revalidate_on_mount = revalidate_on_mount
        self.persist = persist and store is not None
        self.logger = get_logger("catalog_cache.resource_cache")

        self._fetcher = fetcher
        self._oracle = oracle
        self._store = store
        self._clock = clock
        self._metrics = metrics

        self._value: Any = None
        self._last_fetched: Optional[float] = None
        self._last_modified: Optional[VersionMarker] = None
        self._stale = False
        self._error: Optional[FetchError] = None
        self._foreground_loads = 0
        self._last_checked: Optional[float] = None

        # Request numbers: a response older than the last committed one is dropped
        self._issued = 0
        self._committed = 0

        self._listeners: List[Listener] = []
        self._check_task: Optional[asyncio.Task] = None
        self._persister = Debouncer(debounce, self._persist, name=f"persist:{key}")

        if self.persist:
            self._restore()

    # -- state -------------------------------------------------------------

    @property
    def value(self) -> Any:
        return copy.deepcopy(self._value)

    @property
    def has_value(self) -> bool:
        return self._value is not None

    @property
    def last_fetched(self) -> Optional[float]:
        return self._last_fetched

    @property
    def last_modified(self) -> Optional[VersionMarker]:
        return self._last_modified

    @property
    def stale(self) -> bool:
        return self._stale

    @property
    def loading(self) -> bool:
        return self._foreground_loads > 0

    @property
    def error(self) -> Optional[FetchError]:
        return self._error

    @property
    def expired(self) -> bool:
        """True when the value is older than ``stale_time`` or was never fetched."""
        if self._last_fetched is None:
            return True
        return self._clock() - self._last_fetched >= self.stale_time

    @property
    def attached(self) -> bool:
        return self._check_task is not None and not self._check_task.done()

    def snapshot(self) -> CacheSnapshot:
        return CacheSnapshot(
            key=self.key,
            value=copy.deepcopy(self._value),
            last_fetched=self._last_fetched,
            last_modified=self._last_modified,
            stale=self._stale,
            loading=self.loading,
            expired=self.expired,
            error=self._error,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with a fresh snapshot after every state change."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _update(self, **changes: Any) -> None:
        # All fields of one update land before any listener runs
        for name, value in changes.items():
            setattr(self, f"_{name}", value)

        if "stale" in changes and self._metrics:
            self._metrics.set_gauge("cache_stale", 1.0 if self._stale else 0.0, cache_key=self.key)

        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as exc:
                self.logger.error("Cache listener failed", cache_key=self.key, error=str(exc))

    def _set_loading(self, delta: int) -> None:
        was_loading = self.loading
        self._foreground_loads += delta
        if self.loading != was_loading:
            self._update()

    # -- loading -----------------------------------------------------------

    async def load(self, force: bool = False, silent: bool = False) -> None:
        """Fetch the resource unless a fresh value is already cached.

        Failures never raise and never drop the cached value; they are
        reported through ``error``.

        ``None`` means "no value": a fetcher that returns ``None`` (JSON
        ``null``) leaves the entry empty, so the next ``load()`` fetches
        again and nothing is persisted.
        """
        if not force and self._value is not None and not self.expired:
            self._update(stale=False)
            self._record_load("cached", "hit")
            return

        self._issued += 1
        request = self._issued
        mode = "silent" if silent else "foreground"

        with operation_context(self.key):
            if not silent:
                self._set_loading(+1)
            try:
                self._update(error=None)
                await self._fetch_and_commit(request, mode)
            finally:
                if not silent:
                    self._set_loading(-1)

    async def _fetch_and_commit(self, request: int, mode: str) -> None:
        started = time.perf_counter()
        try:
            result = await self._fetcher()
        except Exception as exc:
            self._observe_fetch(started)
            self._fail(request, mode, exc)
            return
        self._observe_fetch(started)

        # This fetch defines the new baseline; it adopts whatever the oracle says now
        marker = await self._current_marker(fallback=self._last_modified)

        if request < self._committed:
            self.logger.debug(
                "Discarding out-of-order response",
                cache_key=self.key,
                request=request,
                committed=self._committed,
            )
            self._record_load(mode, "discarded")
            return

        self._committed = request
        self._update(
            value=result,
            last_fetched=self._clock(),
            last_modified=marker,
            stale=False,
            error=None,
        )
        self._record_load(mode, "success")
        self.logger.info("Loaded resource", cache_key=self.key, mode=mode, last_modified=marker)
        self._schedule_persist()

    def _fail(self, request: int, mode: str, exc: Exception) -> None:
        if request < self._committed:
            self.logger.debug("Ignoring failure of superseded request", cache_key=self.key, error=str(exc))
            self._record_load(mode, "discarded")
            return

        error = exc if isinstance(exc, FetchError) else FetchError(self.key, exc)
        self.logger.error("Failed to load resource", cache_key=self.key, mode=mode, error=str(exc))
        self._record_load(mode, "error")
        self._update(error=error)

    async def _current_marker(self, fallback: Optional[VersionMarker]) -> Optional[VersionMarker]:
        # A shared request that started before the fetch returned may predate the data
        if isinstance(self._oracle, CoalescingOracle):
            query = self._oracle.fetch_fresh_versions
        else:
            query = self._oracle.fetch_versions
        try:
            versions = await query()
            return resolve_marker(versions, self.key)
        except Exception as exc:
            self.logger.warning(
                "Change oracle unavailable after fetch; keeping previous marker",
                cache_key=self.key,
                error=str(exc),
            )
            self._record_check("unavailable")
            return fallback

    # -- change detection --------------------------------------------------

    async def check_for_updates(self) -> bool:
        """Ask the oracle whether the server holds newer data.

        Only ever sets ``stale``; an unreachable oracle counts as "no change".
        """
        self._last_checked = self._clock()
        try:
            versions = await self._oracle.fetch_versions()
            current = resolve_marker(versions, self.key)
            changed = is_newer(current, self._last_modified)
        except Exception as exc:
            self.logger.warning("Failed to check for updates", cache_key=self.key, error=str(exc))
            self._record_check("unavailable")
            return False

        self._record_check("changed" if changed else "unchanged")
        if changed:
            self._update(stale=True)
        return changed

    async def refresh(self) -> None:
        """Reload in the foreground if the oracle reports a change."""
        with operation_context(self.key):
            try:
                if await self.check_for_updates():
                    await self.load(force=True)
                else:
                    self._update(stale=False)
            except Exception as exc:
                self.logger.error("Failed to refresh", cache_key=self.key, error=str(exc))

    async def revalidate(self) -> None:
        """Reload silently if the oracle reports a change."""
        with operation_context(self.key):
            try:
                if await self.check_for_updates():
                    await self.load(force=True, silent=True)
                    self.logger.info("Background revalidation updated", cache_key=self.key)
                else:
                    self._update(stale=False)
                    self.logger.debug("Background revalidation up to date", cache_key=self.key)
            except Exception as exc:
                self.logger.error("Failed to revalidate", cache_key=self.key, error=str(exc))

    # -- lifecycle ---------------------------------------------------------

    async def attach(self) -> None:
        """Start periodic checks and run the mount-time load decision."""
        if not self.attached:
            self._check_task = asyncio.create_task(self._periodic_check())

        if not self.auto_load:
            return

        if self._value is not None and self.revalidate_on_mount:
            self.logger.info("Using cached data, revalidating in background", cache_key=self.key)
            await self.revalidate()
        else:
            await self.load()

    async def detach(self) -> None:
        """Stop periodic checks and write out any pending persistence."""
        task, self._check_task = self._check_task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await self.flush()

    def _next_check_delay(self) -> float:
        anchors = [t for t in (self._last_fetched, self._last_checked) if t is not None]
        if not anchors:
            return self.stale_time
        due = max(anchors) + self.stale_time
        return min(max(due - self._clock(), 0.0), self.stale_time)

    async def _periodic_check(self) -> None:
        while True:
            await asyncio.sleep(self._next_check_delay())
            try:
                if self._value is None:
                    self._last_checked = self._clock()
                    continue
                await self.check_for_updates()
            except Exception as exc:
                self.logger.error("Error in periodic staleness check", cache_key=self.key, error=str(exc))

    # -- persistence -------------------------------------------------------

    async def flush(self) -> bool:
        """Write a pending debounced persist immediately."""
        return await self._persister.flush()

    def _schedule_persist(self) -> None:
        if self.persist:
            self._persister.schedule()

    async def _persist(self) -> None:
        if self._value is None or self._store is None:
            return
        try:
            value_blob = json.dumps(self._value).encode("utf-8")
            meta_blob = json.dumps({
                "lastModified": self._last_modified,
                "lastFetched": int(self._last_fetched * 1000) if self._last_fetched is not None else None,
            }).encode("utf-8")
        except (TypeError, ValueError) as exc:
            self._persist_failed(PersistenceError(
                "Cached value is not JSON serializable",
                details={"cache_key": self.key, "error": str(exc)},
            ))
            return

        try:
            await self._store.set(value_id(self.key), value_blob)
            await self._store.set(metadata_id(self.key), meta_blob)
        except PersistenceError as exc:
            self._persist_failed(exc)
            return

        self._record_persist("written")
        self.logger.debug("Persisted cache", cache_key=self.key, size=len(value_blob))

    def _persist_failed(self, exc: PersistenceError) -> None:
        self.logger.error("Failed to save cache", cache_key=self.key, error=exc.message, details=exc.details)
        self._record_persist("write_error")

    def _restore(self) -> None:
        value = self._read_blob(value_id(self.key))
        if value is None:
            return
        self._value = value
        self._record_persist("restored")

        meta = self._read_blob(metadata_id(self.key))
        if not isinstance(meta, dict):
            return
        self._last_modified = meta.get("lastModified")
        last_fetched = meta.get("lastFetched")
        if isinstance(last_fetched, (int, float)) and not isinstance(last_fetched, bool):
            self._last_fetched = last_fetched / 1000.0

    def _read_blob(self, item_id: str) -> Any:
        try:
            raw = self._store.get(item_id)
            if raw is None:
                return None
            return json.loads(raw)
        except (PersistenceError, ValueError, UnicodeDecodeError) as exc:
            self.logger.error("Failed to load cache from store", cache_key=self.key, item_id=item_id, error=str(exc))
            self._record_persist("read_error")
            return None

    # -- metrics -----------------------------------------------------------

    def _record_load(self, mode: str, result: str) -> None:
        if self._metrics:
            self._metrics.increment_counter("cache_loads_total", cache_key=self.key, mode=mode, result=result)

    def _observe_fetch(self, started: float) -> None:
        if self._metrics:
            self._metrics.observe_histogram(
                "cache_load_duration_seconds", time.perf_counter() - started, cache_key=self.key
            )

    def _record_check(self, result: str) -> None:
        if self._metrics:
            self._metrics.increment_counter("cache_oracle_checks_total", cache_key=self.key, result=result)

    def _record_persist(self, result: str) -> None:
        if self._metrics:
            self._metrics.increment_counter("cache_persist_total", cache_key=self.key, result=result)

    def __repr__(self) -> str:
        return (
            f"ResourceCache(key={self.key!r}, has_value={self.has_value}, "
            f"stale={self._stale}, last_modified={self._last_modified!r})"
        )
