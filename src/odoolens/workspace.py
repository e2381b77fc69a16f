"""Workspace: one opened project root and everything indexed for it.

A workspace owns the worker pool, the model index, the field and method
resolvers and, optionally, a file watcher. Nothing is shared between
workspaces; closing one releases all of it.

Usage::

    with Workspace(Path("~/src/addons").expanduser()) as ws:
        ws.rebuild().result()
        partner = ws.find_model("res.partner")
        for field in ws.fields_of("res.partner"):
            ...
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from types import TracebackType

import structlog

from odoolens.config.constants import MANIFEST_FILENAME
from odoolens.config.loader import load_config
from odoolens.config.models import OdooLensConfig
from odoolens.core.errors import WorkspaceError
from odoolens.core.logging import bind_workspace, unbind_workspace
from odoolens.daemon.watcher import FileWatcher
from odoolens.index.discovery import has_manifest, iter_manifests, pruned_dirs
from odoolens.index.graph import IndexStats, ModelIndex
from odoolens.index.manifest import read_manifest
from odoolens.index.models import FieldRecord, MethodRecord, ModelRecord, ModuleRecord
from odoolens.index.resolver import FieldResolver, MethodResolver

logger = structlog.get_logger()


class Workspace:
    """Code intelligence context for one project root."""

    def __init__(self, root: Path, config: OdooLensConfig | None = None) -> None:
        self.root = root.resolve()
        self._config = config
        self._lock = threading.Lock()

        self._executor: ThreadPoolExecutor | None = None
        self._index: ModelIndex | None = None
        self._fields: FieldResolver | None = None
        self._methods: MethodResolver | None = None
        self._watcher: FileWatcher | None = None
        self._modules: tuple[ModuleRecord, ...] | None = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def config(self) -> OdooLensConfig:
        if self._config is None:
            self._config = load_config(self.root)
        return self._config

    @property
    def is_open(self) -> bool:
        return self._executor is not None

    def open(self) -> Workspace:
        """Create the worker pool and index, and start the first build."""
        if self.is_open:
            return self
        if not self.root.is_dir():
            raise WorkspaceError.not_a_directory(str(self.root))

        config = self.config
        bind_workspace(self.root)
        self._executor = ThreadPoolExecutor(
            max_workers=config.indexer.max_workers,
            thread_name_prefix="odoolens-worker",
            initializer=bind_workspace,
            initargs=(self.root,),
        )
        self._index = ModelIndex(self.root, self._executor, config=config.index)
        self._fields = FieldResolver(self._index, self._executor, config=config.resolver)
        self._methods = MethodResolver(self._index)
        self._index.rebuild_all()
        logger.info("workspace_opened", max_workers=config.indexer.max_workers)
        return self

    def close(self) -> None:
        """Release the worker pool and stop any watcher.

        Pending work is cancelled; running work finishes. Changes the watcher
        has buffered but not delivered are dropped.
        """
        if self._executor is None:
            return
        if self._watcher is not None:
            self._watcher.abort()
        self._executor.shutdown(wait=True, cancel_futures=True)
        self._executor = None
        self._index = None
        self._fields = None
        self._methods = None
        self._watcher = None
        self._modules = None
        logger.info("workspace_closed")
        unbind_workspace()

    def __enter__(self) -> Workspace:
        return self.open()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _require_index(self) -> ModelIndex:
        if self._index is None:
            raise WorkspaceError.closed(str(self.root))
        return self._index

    @property
    def index(self) -> ModelIndex:
        return self._require_index()

    @property
    def field_resolver(self) -> FieldResolver:
        self._require_index()
        assert self._fields is not None
        return self._fields

    @property
    def method_resolver(self) -> MethodResolver:
        self._require_index()
        assert self._methods is not None
        return self._methods

    # =========================================================================
    # Index maintenance
    # =========================================================================

    def rebuild(self) -> Future[IndexStats]:
        return self._require_index().rebuild_all()

    def notify_changed(self, paths: Iterable[Path]) -> Future[IndexStats]:
        """Feed file changes into the index. Manifest changes refresh the module list."""
        index = self._require_index()
        changed = [Path(p) for p in paths]
        if any(p.name == MANIFEST_FILENAME for p in changed):
            with self._lock:
                self._modules = None
        return index.schedule_update(changed)

    async def watch(self, *, force_polling: bool = False) -> FileWatcher:
        """Start feeding file-system changes into the index from the running event loop."""
        self._require_index()
        if self._watcher is None:
            config = self.config
            self._watcher = FileWatcher(
                root=self.root,
                on_change=self.notify_changed,
                excluded_dirs=pruned_dirs(config.index.extra_excluded_dirs),
                debounce_window=config.watcher.debounce_sec,
                max_debounce_wait=config.watcher.max_debounce_wait_sec,
                force_polling=force_polling,
            )
        await self._watcher.start()
        return self._watcher

    async def stop_watching(self) -> None:
        if self._watcher is not None:
            await self._watcher.stop()
            self._watcher = None

    # =========================================================================
    # Queries
    # =========================================================================

    def is_framework_project(self) -> bool:
        """Whether at least one addon manifest exists under the root."""
        self._require_index()
        return has_manifest(self.root, extra_excluded_dirs=self.config.index.extra_excluded_dirs)

    def find_model(self, identifier: str) -> ModelRecord | None:
        return self._require_index().get_model(identifier)

    def all_models(self) -> frozenset[ModelRecord]:
        return self._require_index().get_all_models()

    def models_inheriting(self, identifier: str) -> frozenset[ModelRecord]:
        """Indexed models that list ``identifier`` as a direct parent."""
        index = self._require_index()
        records = (index.get_model(child) for child in index.get_children(identifier))
        return frozenset(r for r in records if r is not None)

    def fields_of(self, identifier: str) -> tuple[FieldRecord, ...]:
        """Merged fields; empty while a background merge is still running."""
        return self.field_resolver.resolve_fields(identifier)

    def methods_of(self, identifier: str) -> tuple[MethodRecord, ...]:
        return self.method_resolver.resolve_methods(identifier)

    @staticmethod
    def related_model_of(field: FieldRecord) -> str | None:
        if not field.kind.is_relational:
            return None
        return field.related_model

    def find_field(self, identifier: str, name: str) -> FieldRecord | None:
        for field in self.field_resolver.resolve_fields_sync(identifier):
            if field.name == name:
                return field
        return None

    def model_at_path(self, identifier: str, path: str) -> str | None:
        """Model reached by following relational fields, e.g. ``"partner_id.company_id"``.

        Returns None as soon as a segment is unknown or not relational.
        """
        current: str | None = identifier
        for segment in path.split("."):
            if current is None or not segment:
                return None
            field = self.find_field(current, segment)
            if field is None:
                return None
            current = self.related_model_of(field)
        return current

    def all_modules(self) -> tuple[ModuleRecord, ...]:
        """Addons found under the root, by manifest; cached until a manifest changes."""
        self._require_index()
        with self._lock:
            if self._modules is not None:
                return self._modules
        modules: list[ModuleRecord] = []
        for manifest in iter_manifests(
            self.root, extra_excluded_dirs=self.config.index.extra_excluded_dirs
        ):
            module = read_manifest(manifest)
            if module is not None:
                modules.append(module)
        result = tuple(modules)
        with self._lock:
            self._modules = result
        return result
