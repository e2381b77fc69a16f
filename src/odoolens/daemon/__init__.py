"""File-change feed for keeping a workspace index current."""

from odoolens.daemon.watcher import FileWatcher, SourceFilter

__all__ = [
    "FileWatcher",
    "SourceFilter",
]
