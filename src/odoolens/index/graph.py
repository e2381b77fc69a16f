"""Incremental model inheritance index.

The index maps model identifiers to their records and keeps two adjacency
maps derived from each record's declared parents:

- ``children``: parent identifier -> identifiers declaring it as a parent
- ``parents``: child identifier -> parent identifiers

Both maps are mutated together, under one lock, by ``_GraphState`` methods
only. An identifier may appear in the maps without a record (a parent that is
not indexed yet). When several files declare the same identifier, the most
recently indexed declaration is the visible record; dropping it falls back to
the remaining ones.

Lifecycle::

    index = ModelIndex(root, executor)
    index.rebuild_all()                      # background, returns a Future
    index.get_model("res.partner")           # waits for the first build (bounded)
    index.schedule_update([changed_path])    # background, per-file linearized

A full rebuild is staged in a fresh ``_GraphState`` and swapped in when
complete; file updates that arrive meanwhile are replayed after the swap.
"""

from __future__ import annotations

import itertools
import threading
import time
from collections.abc import Callable, Iterable
from concurrent.futures import Executor, Future
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TypeVar

import structlog

from odoolens.config.constants import MANIFEST_FILENAME, SOURCE_SUFFIX
from odoolens.config.models import IndexConfig
from odoolens.core.errors import InternalError, SyntaxReadError
from odoolens.index.discovery import is_pruned, iter_source_files, pruned_dirs
from odoolens.index.extractor import extract_models
from odoolens.index.models import ModelRecord
from odoolens.syntax.parser import parse_file

logger = structlog.get_logger()

K = TypeVar("K")

ChangeListener = Callable[[frozenset[str]], None]
"""Called with every identifier whose record or ancestry changed."""


class IndexState(Enum):
    """Model index state."""

    EMPTY = "empty"
    INDEXING = "indexing"
    READY = "ready"


@dataclass
class IndexStats:
    """Statistics from a rebuild or an update batch."""

    files_processed: int = 0
    files_failed: int = 0
    files_skipped: int = 0
    models_indexed: int = 0
    duration_seconds: float = 0.0


@dataclass
class _GraphState:
    models: dict[str, ModelRecord] = field(default_factory=dict)
    # Every declaration of an identifier by file, in indexing order; the last
    # one is the record held in ``models``
    declarers: dict[str, dict[Path | None, ModelRecord]] = field(default_factory=dict)
    by_file: dict[Path, set[str]] = field(default_factory=dict)
    children: dict[str, set[str]] = field(default_factory=dict)
    parents: dict[str, set[str]] = field(default_factory=dict)
    # Edges dropped because their parent was removed, restored if it returns
    detached: dict[str, set[str]] = field(default_factory=dict)

    def _link(self, parent: str, child: str) -> None:
        self.children.setdefault(parent, set()).add(child)
        self.parents.setdefault(child, set()).add(parent)

    def _unlink(self, parent: str, child: str) -> None:
        _discard(self.children, parent, child)
        _discard(self.parents, child, parent)

    def _show(self, record: ModelRecord) -> None:
        identifier = record.identifier
        hidden = self.models.get(identifier)
        if hidden is not None:
            for parent in hidden.parent_identifiers:
                self._unlink(parent, identifier)
                _discard(self.detached, parent, identifier)

        self.models[identifier] = record
        for parent in record.parent_identifiers:
            self._link(parent, identifier)

        for child_id in self.detached.pop(identifier, set()):
            child = self.models.get(child_id)
            if child is not None and identifier in child.parent_identifiers:
                self._link(identifier, child_id)

    def add(self, record: ModelRecord) -> None:
        identifier = record.identifier
        declared = self.declarers.setdefault(identifier, {})
        declared.pop(record.path, None)
        declared[record.path] = record
        if record.path is not None:
            self.by_file.setdefault(record.path, set()).add(identifier)
        self._show(record)

    def remove(self, identifier: str) -> ModelRecord | None:
        """Drop ``identifier`` with every declaration of it."""
        record = self.models.pop(identifier, None)
        if record is None:
            return None

        for path in self.declarers.pop(identifier, {}):
            if path is not None:
                _discard(self.by_file, path, identifier)
        for parent in record.parent_identifiers:
            self._unlink(parent, identifier)
            _discard(self.detached, parent, identifier)

        for child_id in self.children.pop(identifier, set()):
            _discard(self.parents, child_id, identifier)
            self.detached.setdefault(identifier, set()).add(child_id)
        return record

    def retract(self, path: Path, identifier: str) -> None:
        """Forget the declaration of ``identifier`` in ``path``.

        The identifier stays indexed while another file still declares it;
        the most recently indexed remaining declaration becomes visible.
        """
        declared = self.declarers.get(identifier)
        if declared is None or path not in declared:
            return
        if len(declared) == 1:
            self.remove(identifier)
            return

        visible = next(reversed(declared))
        del declared[path]
        _discard(self.by_file, path, identifier)
        if visible == path:
            self._show(declared[next(reversed(declared))])

    def descendants(self, identifier: str) -> set[str]:
        found: set[str] = set()
        stack = [identifier]
        while stack:
            for child in self.children.get(stack.pop(), ()):
                if child not in found:
                    found.add(child)
                    stack.append(child)
        found.discard(identifier)
        return found

    def replace_file(self, path: Path, records: Iterable[ModelRecord]) -> set[str]:
        """Swap the declarations made by ``path``; returns affected identifiers."""
        affected: set[str] = set()
        for identifier in sorted(self.by_file.get(path, ())):
            affected.add(identifier)
            affected |= self.descendants(identifier)
            self.retract(path, identifier)
        for record in records:
            self.add(record)
            affected.add(record.identifier)
            affected |= self.descendants(record.identifier)
        return affected


def _discard(mapping: dict[K, set[str]], key: K, value: str) -> None:
    values = mapping.get(key)
    if values is None:
        return
    values.discard(value)
    if not values:
        del mapping[key]


class ModelIndex:
    """Per-workspace model index with background (re)indexing.

    Reads block until the first full build has completed, for at most
    ``IndexConfig.ready_wait_sec``; after that they answer from whatever has
    been committed so far.

    Thread safety: every access to the graph state goes through ``_lock``.
    Parsing happens outside the lock; only the per-file commit is locked, so
    a record is never visible with part of its edges.
    """

    def __init__(
        self,
        root: Path,
        executor: Executor,
        *,
        config: IndexConfig | None = None,
    ) -> None:
        self.root = root.resolve()
        self._executor = executor
        self._config = config or IndexConfig()
        self._excluded = pruned_dirs(self._config.extra_excluded_dirs)

        self._lock = threading.RLock()
        self._graph = _GraphState()
        self._ready = threading.Event()
        self._built = False

        self._rebuild_future: Future[IndexStats] | None = None
        self._rebuilding = False
        self._deferred: set[Path] = set()

        self._generation = itertools.count(1)
        self._pending: dict[Path, int] = {}
        self._active_updates = 0

        self._listeners: list[ChangeListener] = []

    # =========================================================================
    # State
    # =========================================================================

    @property
    def state(self) -> IndexState:
        with self._lock:
            if self._rebuilding or self._active_updates:
                return IndexState.INDEXING
            return IndexState.READY if self._built else IndexState.EMPTY

    def is_ready(self) -> bool:
        return self.state is IndexState.READY

    def wait_until_ready(self, timeout: float | None = None) -> bool:
        """Block until the first build completes. Returns False on timeout."""
        return self._ready.wait(timeout)

    def add_listener(self, listener: ChangeListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: ChangeListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _notify(self, affected: Iterable[str]) -> None:
        identifiers = frozenset(affected)
        if not identifiers:
            return
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(identifiers)
            except Exception:
                logger.exception("index_listener_failed", affected=len(identifiers))

    # =========================================================================
    # Full rebuild
    # =========================================================================

    def rebuild_all(self) -> Future[IndexStats]:
        """Rebuild the index from the project tree on a background worker.

        If a rebuild is already running its future is returned and no new
        work is scheduled.
        """
        with self._lock:
            if self._rebuild_future is not None and not self._rebuild_future.done():
                logger.debug("index_rebuild_coalesced")
                return self._rebuild_future
            self._rebuilding = True
            try:
                future = self._executor.submit(self._rebuild)
            except RuntimeError:
                self._rebuilding = False
                raise
            self._rebuild_future = future
            return future

    def _rebuild(self) -> IndexStats:
        start = time.perf_counter()
        stats = IndexStats()
        staged = _GraphState()
        previous: _GraphState | None = None
        deferred: set[Path] = set()

        try:
            for path in iter_source_files(
                self.root,
                max_file_size_mb=self._config.max_file_size_mb,
                extra_excluded_dirs=self._config.extra_excluded_dirs,
            ):
                stats.files_processed += 1
                records = self._scan(path)
                if records is None:
                    stats.files_failed += 1
                    continue
                for record in records:
                    staged.add(record)

            with self._lock:
                previous = self._graph
                self._graph = staged
                self._built = True
                deferred, self._deferred = self._deferred, set()
        except Exception as e:
            logger.exception("index_rebuild_failed", root=str(self.root))
            raise InternalError.unexpected(
                "index rebuild failed", root=str(self.root), error=str(e)
            ) from e
        finally:
            with self._lock:
                self._rebuilding = False
            self._ready.set()

        stats.models_indexed = len(staged.models)
        stats.duration_seconds = time.perf_counter() - start
        logger.info(
            "index_rebuild_complete",
            files=stats.files_processed,
            failed=stats.files_failed,
            models=stats.models_indexed,
            duration_ms=round(stats.duration_seconds * 1000, 1),
        )

        self._notify(set(previous.models) | set(staged.models))
        if deferred:
            logger.debug("deferred_updates_replayed", count=len(deferred))
            self.update_for_files(deferred)
        return stats

    # =========================================================================
    # Incremental updates
    # =========================================================================

    def _is_candidate(self, path: Path) -> bool:
        if path.suffix != SOURCE_SUFFIX or path.name == MANIFEST_FILENAME:
            return False
        return not is_pruned(path, self.root, self._excluded)

    def _begin_update(self, paths: Iterable[Path]) -> dict[Path, int]:
        tickets: dict[Path, int] = {}
        for raw in paths:
            path = Path(raw).resolve()
            if self._is_candidate(path):
                tickets[path] = 0
        with self._lock:
            for path in tickets:
                tickets[path] = next(self._generation)
                self._pending[path] = tickets[path]
            if self._rebuilding:
                self._deferred.update(tickets)
            self._active_updates += 1
        return tickets

    def _end_update(self) -> None:
        with self._lock:
            self._active_updates -= 1

    def update_for_files(self, paths: Iterable[Path]) -> IndexStats:
        """Re-index the given files now, on the calling thread."""
        tickets = self._begin_update(paths)
        try:
            return self._apply_update(tickets)
        finally:
            self._end_update()

    def schedule_update(self, paths: Iterable[Path]) -> Future[IndexStats]:
        """Re-index the given files on a background worker.

        A later update of the same file supersedes an earlier one that has not
        committed yet; the earlier one is dropped.
        """
        tickets = self._begin_update(paths)
        try:
            return self._executor.submit(self._run_update, tickets)
        except RuntimeError:
            self._end_update()
            raise

    def _run_update(self, tickets: dict[Path, int]) -> IndexStats:
        try:
            return self._apply_update(tickets)
        finally:
            self._end_update()

    def _apply_update(self, tickets: dict[Path, int]) -> IndexStats:
        start = time.perf_counter()
        stats = IndexStats()
        affected: set[str] = set()
        limit = self._config.max_file_size_mb * 1024 * 1024

        for path, generation in tickets.items():
            records: list[ModelRecord] = []
            size = _file_size(path)
            if size is not None:
                if size > limit:
                    stats.files_skipped += 1
                else:
                    scanned = self._scan(path)
                    if scanned is None:
                        stats.files_failed += 1
                    else:
                        records = scanned

            with self._lock:
                if self._pending.get(path) != generation:
                    logger.debug("stale_update_dropped", path=str(path))
                    continue
                del self._pending[path]
                affected |= self._graph.replace_file(path, records)
            stats.files_processed += 1
            stats.models_indexed += len(records)

        stats.duration_seconds = time.perf_counter() - start
        if tickets:
            logger.debug(
                "index_update_complete",
                files=stats.files_processed,
                models=stats.models_indexed,
                affected=len(affected),
            )
        self._notify(affected)
        return stats

    def _scan(self, path: Path) -> list[ModelRecord] | None:
        """Records declared in one file, or None if the file could not be read."""
        try:
            return extract_models(parse_file(path))
        except SyntaxReadError as e:
            logger.warning("file_index_failed", path=str(path), error=e.message)
        except Exception as e:
            logger.error("file_index_failed", path=str(path), error=str(e), exc_info=True)
        return None

    # =========================================================================
    # Record mutation
    # =========================================================================

    def add_record(self, record: ModelRecord) -> None:
        """Insert or replace a record and link it to its declared parents."""
        with self._lock:
            self._graph.add(record)
            affected = {record.identifier} | self._graph.descendants(record.identifier)
        self._notify(affected)

    def remove_record(self, identifier: str) -> ModelRecord | None:
        """Remove a record and every edge it takes part in. No-op if absent."""
        with self._lock:
            affected = {identifier} | self._graph.descendants(identifier)
            removed = self._graph.remove(identifier)
        if removed is not None:
            self._notify(affected)
        return removed

    # =========================================================================
    # Reads
    # =========================================================================

    def _await_ready(self) -> None:
        if self._ready.is_set():
            return
        with self._lock:
            start_build = self._rebuild_future is None
        if start_build:
            self.rebuild_all()
        if not self._ready.wait(self._config.ready_wait_sec):
            logger.debug(
                "index_read_before_ready",
                state=self.state.value,
                waited_sec=self._config.ready_wait_sec,
            )

    def get_model(self, identifier: str) -> ModelRecord | None:
        self._await_ready()
        with self._lock:
            return self._graph.models.get(identifier)

    def get_all_models(self) -> frozenset[ModelRecord]:
        self._await_ready()
        with self._lock:
            return frozenset(self._graph.models.values())

    def get_children(self, identifier: str) -> frozenset[str]:
        """Identifiers declaring ``identifier`` as a direct parent."""
        self._await_ready()
        with self._lock:
            return frozenset(self._graph.children.get(identifier, ()))

    def get_parents(self, identifier: str) -> frozenset[str]:
        self._await_ready()
        with self._lock:
            return frozenset(self._graph.parents.get(identifier, ()))

    def get_descendants(self, identifier: str) -> frozenset[str]:
        """Identifiers inheriting from ``identifier`` directly or transitively."""
        self._await_ready()
        with self._lock:
            return frozenset(self._graph.descendants(identifier))

    def records_in_file(self, path: Path) -> frozenset[ModelRecord]:
        """Declarations made in ``path``, including ones shadowed by another file."""
        self._await_ready()
        path = path.resolve()
        with self._lock:
            graph = self._graph
            return frozenset(graph.declarers[i][path] for i in graph.by_file.get(path, ()))

    def adjacency(self) -> tuple[dict[str, frozenset[str]], dict[str, frozenset[str]]]:
        """Copies of the ``children`` and ``parents`` maps."""
        self._await_ready()
        with self._lock:
            return (
                {k: frozenset(v) for k, v in self._graph.children.items()},
                {k: frozenset(v) for k, v in self._graph.parents.items()},
            )


def _file_size(path: Path) -> int | None:
    """Size of a regular file, None if it is gone or not a file."""
    try:
        if not path.is_file():
            return None
        return path.stat().st_size
    except OSError:
        return None
