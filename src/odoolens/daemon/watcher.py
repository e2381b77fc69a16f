"""File-change feed for the model index, built on watchfiles.

Design:
- watchfiles ``awatch`` over the project root, filtered to Python sources
  outside pruned directories
- mtime polling instead, for cross-filesystem mounts (WSL /mnt/*, network
  drives) where native events are unreliable
- Sliding-window debounce: changes are buffered until ``debounce_window``
  of quiet, capped at ``max_debounce_wait`` for a steady stream
- The callback receives one batch of absolute paths per flush
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

import structlog
from watchfiles import Change, DefaultFilter, awatch

from odoolens.config.constants import MANIFEST_FILENAME, PRUNED_DIRS, SOURCE_SUFFIX

logger = structlog.get_logger()

DEBOUNCE_WINDOW_SEC = 0.3
MAX_DEBOUNCE_WAIT_SEC = 2.0
FLUSH_CHECK_INTERVAL_SEC = 0.05


class SourceFilter(DefaultFilter):
    """Accept Python sources and manifests, skipping pruned directories."""

    def __init__(self, excluded_dirs: Iterable[str] = PRUNED_DIRS) -> None:
        self.excluded_dirs = frozenset(excluded_dirs)
        super().__init__(ignore_dirs=sorted(self.excluded_dirs))

    def __call__(self, change: Change, path: str) -> bool:
        return path.endswith(SOURCE_SUFFIX) and super().__call__(change, path)


_REMOTE_MOUNT_ROOTS = frozenset({"media", "net"})


def _is_cross_filesystem(path: Path) -> bool:
    """True for WSL drive mounts (``/mnt/c``) and removable or network mounts."""
    parts = path.resolve().parts[1:]
    if not parts:
        return False
    head = parts[0]
    if head == "mnt":
        return len(parts) > 2 and len(parts[1]) == 1 and parts[1].isalpha()
    if head == "run":
        return parts[1:2] == ("user",)
    return head in _REMOTE_MOUNT_ROOTS


async def _cancel(task: asyncio.Task[None] | None, timeout: float | None = None) -> None:
    if task is None or task.done():
        return
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError, asyncio.TimeoutError):
        await asyncio.wait_for(task, timeout=timeout)


@dataclass
class FileWatcher:
    """
    Async file watcher with sliding-window debouncing.

    ``on_change`` is called on the event loop thread with a list of absolute
    paths; it should hand work off (e.g. ``ModelIndex.schedule_update``)
    rather than index inline.
    """

    root: Path
    on_change: Callable[[list[Path]], None]
    excluded_dirs: frozenset[str] = PRUNED_DIRS
    poll_interval: float = 1.0
    debounce_window: float = DEBOUNCE_WINDOW_SEC
    max_debounce_wait: float = MAX_DEBOUNCE_WAIT_SEC
    force_polling: bool = False

    _filter: SourceFilter = field(init=False)
    _polling: bool = field(init=False)
    _watch_task: asyncio.Task[None] | None = field(default=None, init=False)
    _debounce_task: asyncio.Task[None] | None = field(default=None, init=False)
    _stop_event: asyncio.Event = field(default_factory=asyncio.Event, init=False)
    _pending_changes: set[Path] = field(default_factory=set, init=False)
    _last_change_time: float = field(default=0.0, init=False)
    _first_change_time: float = field(default=0.0, init=False)
    _loop: asyncio.AbstractEventLoop | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        self.root = self.root.resolve()
        self._filter = SourceFilter(self.excluded_dirs)
        self._polling = self.force_polling or _is_cross_filesystem(self.root)

    @property
    def is_running(self) -> bool:
        return self._watch_task is not None and not self._watch_task.done()

    async def start(self) -> None:
        """Begin delivering change batches. Starting twice is a no-op."""
        if self._watch_task is not None:
            return

        self._loop = asyncio.get_running_loop()
        self._stop_event.clear()
        source = self._poll_loop() if self._polling else self._watch_loop()
        self._watch_task = asyncio.create_task(source, name="odoolens-watch")
        self._debounce_task = asyncio.create_task(
            self._debounce_flush_loop(), name="odoolens-debounce"
        )
        logger.info(
            "watch_started",
            root=str(self.root),
            polling=self._polling,
            debounce_window=self.debounce_window,
        )

    async def stop(self) -> None:
        """Stop watching, delivering any changes still buffered."""
        self._stop_event.set()
        await _cancel(self._debounce_task)
        self._debounce_task = None
        self._flush_pending()
        await _cancel(self._watch_task, timeout=2.0)
        self._watch_task = None
        logger.info("watch_stopped", root=str(self.root))

    def abort(self) -> None:
        """Stop at once, dropping buffered changes. Callable from any thread."""
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        try:
            current = asyncio.get_running_loop()
        except RuntimeError:
            current = None
        if current is loop:
            self._abort_tasks()
        else:
            loop.call_soon_threadsafe(self._abort_tasks)

    def _abort_tasks(self) -> None:
        self._stop_event.set()
        dropped = len(self._pending_changes)
        self._pending_changes.clear()
        self._first_change_time = 0.0
        self._last_change_time = 0.0
        for task in (self._debounce_task, self._watch_task):
            if task is not None:
                task.cancel()
        self._debounce_task = None
        self._watch_task = None
        logger.info("watch_aborted", root=str(self.root), dropped=dropped)

    # =========================================================================
    # Debouncing
    # =========================================================================

    def _queue_change(self, path: Path) -> None:
        now = time.monotonic()
        if not self._pending_changes:
            self._first_change_time = now
        self._pending_changes.add(path)
        self._last_change_time = now

    def _should_flush(self) -> bool:
        if not self._pending_changes:
            return False
        now = time.monotonic()
        return (
            now - self._last_change_time >= self.debounce_window
            or now - self._first_change_time >= self.max_debounce_wait
        )

    def _flush_pending(self) -> None:
        if not self._pending_changes:
            return

        paths = sorted(self._pending_changes)
        self._pending_changes.clear()
        self._first_change_time = 0.0
        self._last_change_time = 0.0

        manifests = sum(1 for p in paths if p.name == MANIFEST_FILENAME)
        logger.info("changes_detected", count=len(paths), manifests=manifests)
        try:
            self.on_change(paths)
        except Exception as e:
            logger.error("change_callback_failed", error=str(e), count=len(paths))

    async def _debounce_flush_loop(self) -> None:
        try:
            while not self._stop_event.is_set():
                await asyncio.sleep(FLUSH_CHECK_INTERVAL_SEC)
                if self._should_flush():
                    self._flush_pending()
        except asyncio.CancelledError:
            pass

    # =========================================================================
    # Change sources
    # =========================================================================

    def _accepts(self, path: Path) -> bool:
        try:
            rel = path.relative_to(self.root)
        except ValueError:
            return False
        if any(part in self.excluded_dirs for part in rel.parts[:-1]):
            return False
        return path.suffix == SOURCE_SUFFIX

    def _handle_changes(self, changes: set[tuple[Change, str]]) -> int:
        """Queue accepted paths from one watchfiles batch. Returns how many were queued."""
        queued = 0
        for change_type, path_str in changes:
            path = Path(path_str)
            if not self._accepts(path):
                continue
            self._queue_change(path)
            queued += 1
            logger.debug("path_queued", path=str(path), change_type=change_type.name)
        return queued

    async def _watch_loop(self) -> None:
        try:
            while not self._stop_event.is_set():
                try:
                    async for changes in awatch(
                        self.root,
                        watch_filter=self._filter,
                        step=100,
                        rust_timeout=10_000,
                        stop_event=self._stop_event,
                        ignore_permission_denied=True,
                    ):
                        self._handle_changes(changes)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    if self._stop_event.is_set():
                        return
                    logger.error("watcher_error", error=str(e))
                    await asyncio.sleep(1.0)
        except asyncio.CancelledError:
            pass

    async def _poll_loop(self) -> None:
        """Poll source mtimes; deletions and new files are changes too."""
        mtimes = self._scan_mtimes()
        try:
            while not self._stop_event.is_set():
                await asyncio.sleep(self.poll_interval)
                try:
                    current = self._scan_mtimes()
                    for path, mtime in current.items():
                        previous = mtimes.get(path)
                        if previous is None or mtime > previous:
                            self._queue_change(path)
                    for path in mtimes.keys() - current.keys():
                        self._queue_change(path)
                    mtimes = current
                except Exception as e:
                    logger.error("poll_error", error=str(e))
        except asyncio.CancelledError:
            pass

    def _scan_mtimes(self) -> dict[Path, int]:
        mtimes: dict[Path, int] = {}
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames[:] = [d for d in dirnames if d not in self.excluded_dirs]
            for filename in filenames:
                if not filename.endswith(SOURCE_SUFFIX):
                    continue
                file_path = Path(dirpath) / filename
                with contextlib.suppress(OSError):
                    mtimes[file_path] = file_path.stat().st_mtime_ns
        return mtimes
