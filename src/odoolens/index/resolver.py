"""Merged field and method resolution across model inheritance.

Both resolvers walk the inheritance graph depth-first from a model, parents
in declared order, visiting each identifier at most once. Direct members are
re-extracted from each visited model's stored declaration and merged by
name, first occurrence wins, so a model's own declaration shadows an
ancestor's. Cycles end the walk silently. Parents without a record
contribute nothing.

Field resolution is asynchronous: ``FieldResolver.resolve_fields`` waits
``ResolverConfig.field_wait_ms`` for a background merge and answers ``()``
if it is not done yet; the merge still lands in the cache for later calls.
"""

from __future__ import annotations

import threading
from concurrent.futures import Executor, Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from functools import partial

import structlog

from odoolens.config.models import ResolverConfig
from odoolens.index.fields import extract_fields
from odoolens.index.graph import ModelIndex
from odoolens.index.methods import extract_methods
from odoolens.index.models import FieldRecord, MethodRecord, ModelRecord

logger = structlog.get_logger()


def ancestry(index: ModelIndex, identifier: str) -> list[ModelRecord]:
    """Records visited by the merge walk starting at ``identifier``, in visit order."""
    visited: set[str] = set()
    chain: list[ModelRecord] = []
    stack = [identifier]
    while stack:
        current = stack.pop()
        if current in visited:
            continue
        visited.add(current)
        record = index.get_model(current)
        if record is None:
            continue
        chain.append(record)
        stack.extend(reversed(record.parent_identifiers))
    return chain


def merge_fields(index: ModelIndex, identifier: str) -> tuple[FieldRecord, ...]:
    merged: dict[str, FieldRecord] = {}
    for record in ancestry(index, identifier):
        if record.declaration is None:
            continue
        for field in extract_fields(record.declaration):
            merged.setdefault(field.name, field)
    return tuple(merged.values())


def merge_methods(index: ModelIndex, identifier: str) -> tuple[MethodRecord, ...]:
    merged: dict[str, MethodRecord] = {}
    for record in ancestry(index, identifier):
        if record.declaration is None:
            continue
        for method in extract_methods(record.declaration):
            merged.setdefault(method.name, method)
    return tuple(merged.values())


class FieldResolver:
    """Merged fields per model, cached and computed on the worker pool.

    Cache entries are dropped when the index reports a change to the model
    or one of its ancestors. Each identifier carries an epoch that is bumped
    on invalidation; a merge that started before the bump is not cached.
    """

    def __init__(
        self,
        index: ModelIndex,
        executor: Executor,
        *,
        config: ResolverConfig | None = None,
    ) -> None:
        self._index = index
        self._executor = executor
        self._config = config or ResolverConfig()

        self._lock = threading.Lock()
        self._cache: dict[str, tuple[FieldRecord, ...]] = {}
        self._pending: dict[str, Future[tuple[FieldRecord, ...]]] = {}
        self._epochs: dict[str, int] = {}

        index.add_listener(self.invalidate)

    @property
    def wait_seconds(self) -> float:
        return self._config.field_wait_ms / 1000

    def resolve_fields(self, identifier: str) -> tuple[FieldRecord, ...]:
        """Merged fields of a model, or ``()`` if the merge outlasts the wait window."""
        with self._lock:
            cached = self._cache.get(identifier)
            if cached is not None:
                return cached
            epoch = self._epochs.get(identifier, 0)
            future = self._pending.get(identifier)
            started = future is None
            if future is None:
                future = self._executor.submit(merge_fields, self._index, identifier)
                self._pending[identifier] = future

        if started:
            future.add_done_callback(partial(self._store, identifier, epoch))

        try:
            fields = future.result(timeout=self.wait_seconds)
        except FutureTimeoutError:
            logger.debug(
                "field_resolution_deferred",
                model=identifier,
                wait_ms=self._config.field_wait_ms,
            )
            return ()
        except Exception as e:
            logger.warning("field_resolution_failed", model=identifier, error=str(e))
            return ()
        self._store(identifier, epoch, future)
        return fields

    def resolve_fields_sync(self, identifier: str) -> tuple[FieldRecord, ...]:
        """Merged fields of a model, computed on the calling thread if not cached."""
        with self._lock:
            cached = self._cache.get(identifier)
            if cached is not None:
                return cached
            epoch = self._epochs.get(identifier, 0)

        fields = merge_fields(self._index, identifier)
        with self._lock:
            if self._epochs.get(identifier, 0) == epoch:
                self._cache[identifier] = fields
        return fields

    def _store(
        self,
        identifier: str,
        epoch: int,
        future: Future[tuple[FieldRecord, ...]],
    ) -> None:
        with self._lock:
            if self._pending.get(identifier) is future:
                del self._pending[identifier]
            if future.cancelled() or future.exception() is not None:
                return
            if self._epochs.get(identifier, 0) != epoch:
                logger.debug("field_resolution_discarded", model=identifier)
                return
            self._cache[identifier] = future.result()

    def is_cached(self, identifier: str) -> bool:
        with self._lock:
            return identifier in self._cache

    def invalidate(self, identifiers: frozenset[str]) -> None:
        with self._lock:
            for identifier in identifiers:
                self._cache.pop(identifier, None)
                self._pending.pop(identifier, None)
                self._epochs[identifier] = self._epochs.get(identifier, 0) + 1

    def clear(self) -> None:
        with self._lock:
            for identifier in set(self._cache) | set(self._pending):
                self._epochs[identifier] = self._epochs.get(identifier, 0) + 1
            self._cache.clear()
            self._pending.clear()


class MethodResolver:
    """Merged methods per model, computed synchronously and cached."""

    def __init__(self, index: ModelIndex) -> None:
        self._index = index
        self._lock = threading.Lock()
        self._cache: dict[str, tuple[MethodRecord, ...]] = {}
        self._epochs: dict[str, int] = {}
        index.add_listener(self.invalidate)

    def resolve_methods(self, identifier: str) -> tuple[MethodRecord, ...]:
        with self._lock:
            cached = self._cache.get(identifier)
            if cached is not None:
                return cached
            epoch = self._epochs.get(identifier, 0)

        methods = merge_methods(self._index, identifier)
        with self._lock:
            if self._epochs.get(identifier, 0) == epoch:
                self._cache[identifier] = methods
        return methods

    def invalidate(self, identifiers: frozenset[str]) -> None:
        with self._lock:
            for identifier in identifiers:
                self._cache.pop(identifier, None)
                self._epochs[identifier] = self._epochs.get(identifier, 0) + 1

    def clear(self) -> None:
        with self._lock:
            for identifier in self._cache:
                self._epochs[identifier] = self._epochs.get(identifier, 0) + 1
            self._cache.clear()
