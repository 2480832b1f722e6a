"""Cache-coordinated image generation.

A request for a key is answered from the store when possible. On a miss the
first caller becomes the generator for that key and every concurrent caller
for the same key waits on the generator's future, so ``generate`` runs at most
once per pending episode. Failures are delivered to every waiter and are never
cached: the next request after a failure starts a fresh episode.

Pending records are kept in lock stripes chosen by key hash, so callers for
unrelated keys only ever share a lock for a dict lookup and never wait on each
other's generation.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
import zlib
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable

from placeholder_service.core.keys import key_digest
from placeholder_service.core.perf import log_perf
from placeholder_service.core.store import CacheEntry, ImageStore
from placeholder_service.errors import RenderError, StorageError

if TYPE_CHECKING:
    from placeholder_service.services.renderer import RenderedImage

logger = logging.getLogger(__name__)

Generate = Callable[[], "RenderedImage"]


@dataclass
class InFlightGeneration:
    key: bytes
    future: Future[CacheEntry] = field(default_factory=Future)
    waiters: int = 0
    started_at: float = field(default_factory=time.monotonic)
    thread: threading.Thread | None = None


@dataclass(frozen=True)
class CoordinatorStats:
    hits: int
    misses: int
    generations: int
    failures: int
    joined: int
    store_errors: int
    in_flight: int


@dataclass
class _Stripe:
    lock: threading.Lock = field(default_factory=threading.Lock)
    pending: dict[bytes, InFlightGeneration] = field(default_factory=dict)
    hits: int = 0
    misses: int = 0
    generations: int = 0
    failures: int = 0
    joined: int = 0
    store_errors: int = 0


class GenerationCoordinator:
    def __init__(
        self,
        store: ImageStore,
        *,
        stripes: int = 64,
    ) -> None:
        self._store = store
        self._stripes = [_Stripe() for _ in range(max(1, int(stripes)))]
        self._closed = False

    @property
    def store(self) -> ImageStore:
        return self._store

    def resolve(
        self,
        key: bytes,
        generate: Generate,
        timeout: float | None = None,
    ) -> CacheEntry:
        """Return the entry for ``key``, generating it in this thread on a miss.

        Raises ``RenderError`` when this episode's generation failed, and
        ``concurrent.futures.TimeoutError`` if a waiter gives up after
        ``timeout`` seconds (the generation itself keeps running).
        """
        entry = self._lookup(key)
        if entry is not None:
            return entry
        record, owner = self._claim(key)
        if owner:
            self._generate(record, generate)
        return record.future.result(timeout=timeout)

    async def resolve_async(self, key: bytes, generate: Generate) -> CacheEntry:
        """Asyncio flavour of ``resolve``.

        The winning caller starts a dedicated thread for the generation, so a
        slow render never queues another key behind it. Cancelling the awaiting
        task only stops this caller from waiting.
        """
        entry = await asyncio.to_thread(self._lookup, key)
        if entry is not None:
            return entry
        record, owner = self._claim(key)
        if owner:
            self._start(record, generate)
        outcome = asyncio.wrap_future(record.future)
        # Read the outcome even when every awaiting task has been cancelled.
        outcome.add_done_callback(_consume_outcome)
        return await asyncio.shield(outcome)

    def in_flight(self, key: bytes) -> bool:
        stripe = self._stripe_for(key)
        with stripe.lock:
            return key in stripe.pending

    def stats(self) -> CoordinatorStats:
        totals = dict(
            hits=0, misses=0, generations=0, failures=0, joined=0, store_errors=0, in_flight=0
        )
        for stripe in self._stripes:
            with stripe.lock:
                totals["hits"] += stripe.hits
                totals["misses"] += stripe.misses
                totals["generations"] += stripe.generations
                totals["failures"] += stripe.failures
                totals["joined"] += stripe.joined
                totals["store_errors"] += stripe.store_errors
                totals["in_flight"] += len(stripe.pending)
        return CoordinatorStats(**totals)

    def shutdown(self, wait: bool = True) -> None:
        """Refuse new async generations and optionally join the running ones."""
        self._closed = True
        if not wait:
            return
        threads = []
        for stripe in self._stripes:
            with stripe.lock:
                threads.extend(r.thread for r in stripe.pending.values() if r.thread is not None)
        for thread in threads:
            thread.join()

    def _start(self, record: InFlightGeneration, generate: Generate) -> None:
        if self._closed:
            self._release(record, None, RenderError("Coordinator is shut down"))
            return
        thread = threading.Thread(
            target=self._run_episode,
            args=(record, generate),
            name=f"render-{key_digest(record.key)[:12]}",
            daemon=True,
        )
        record.thread = thread
        try:
            thread.start()
        except RuntimeError as exc:
            self._release(record, None, RenderError(f"Cannot start generation: {exc}"))

    def _run_episode(self, record: InFlightGeneration, generate: Generate) -> None:
        try:
            self._generate(record, generate)
        finally:
            # Dedicated threads are short-lived; do not leave their reader open.
            self._store.release_thread_reader()

    def _stripe_for(self, key: bytes) -> _Stripe:
        return self._stripes[zlib.crc32(key) % len(self._stripes)]

    def _lookup(self, key: bytes) -> CacheEntry | None:
        entry = self._read(key)
        if entry is not None:
            stripe = self._stripe_for(key)
            with stripe.lock:
                stripe.hits += 1
        return entry

    def _read(self, key: bytes) -> CacheEntry | None:
        try:
            return self._store.get(key)
        except StorageError as exc:
            self._count_store_error(key)
            logger.warning("Cache read failed for %s, treating as miss: %s", key_digest(key), exc)
            return None

    def _write(self, entry: CacheEntry) -> None:
        started = time.perf_counter()
        try:
            self._store.put(entry)
        except StorageError as exc:
            self._count_store_error(entry.key)
            logger.warning(
                "Cache write failed for %s, serving uncached: %s", key_digest(entry.key), exc
            )
            return
        log_perf(
            "store_put",
            key=key_digest(entry.key),
            bytes=len(entry.data),
            ms=round((time.perf_counter() - started) * 1000.0, 3),
        )

    def _count_store_error(self, key: bytes) -> None:
        stripe = self._stripe_for(key)
        with stripe.lock:
            stripe.store_errors += 1

    def _claim(self, key: bytes) -> tuple[InFlightGeneration, bool]:
        """Move ``key`` from idle to pending, or join the pending record."""
        stripe = self._stripe_for(key)
        with stripe.lock:
            stripe.misses += 1
            record = stripe.pending.get(key)
            if record is not None:
                record.waiters += 1
                stripe.joined += 1
                return record, False
            record = InFlightGeneration(key=key)
            # A running future cannot be cancelled by any single waiter.
            record.future.set_running_or_notify_cancel()
            stripe.pending[key] = record
            return record, True

    def _generate(self, record: InFlightGeneration, generate: Generate) -> None:
        entry: CacheEntry | None = None
        error: RenderError | None = None
        try:
            # The previous episode may have stored the entry after our lookup.
            entry = self._read(record.key)
            if entry is None:
                entry = self._render(record.key, generate)
                self._write(entry)
        except RenderError as exc:
            logger.warning("Render failed for %s: %s", key_digest(record.key), exc)
            error = exc
        except Exception as exc:
            logger.exception("Render crashed for %s", key_digest(record.key))
            error = RenderError(f"Generation failed: {exc}")
            error.__cause__ = exc
        finally:
            if entry is None and error is None:
                error = RenderError("Generation interrupted")
            self._release(record, entry, error)

    def _render(self, key: bytes, generate: Generate) -> CacheEntry:
        started = time.perf_counter()
        rendered = generate()
        entry = CacheEntry(key=key, data=bytes(rendered.data), content_type=rendered.content_type)
        log_perf(
            "render",
            key=key_digest(key),
            bytes=len(entry.data),
            ms=round((time.perf_counter() - started) * 1000.0, 3),
        )
        stripe = self._stripe_for(key)
        with stripe.lock:
            stripe.generations += 1
        return entry

    def _release(
        self,
        record: InFlightGeneration,
        entry: CacheEntry | None,
        error: RenderError | None,
    ) -> None:
        stripe = self._stripe_for(record.key)
        with stripe.lock:
            if stripe.pending.get(record.key) is record:
                del stripe.pending[record.key]
            if error is not None:
                stripe.failures += 1
        if error is not None:
            record.future.set_exception(error)
        else:
            record.future.set_result(entry)


def _consume_outcome(outcome: asyncio.Future) -> None:
    if not outcome.cancelled():
        outcome.exception()
