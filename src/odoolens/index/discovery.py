"""Source and manifest discovery under a project root."""

from __future__ import annotations

import os
from collections.abc import Iterable, Iterator
from pathlib import Path

import structlog

from odoolens.config.constants import MANIFEST_FILENAME, PRUNED_DIRS, SOURCE_SUFFIX

logger = structlog.get_logger()

_BYTES_PER_MB = 1024 * 1024


def pruned_dirs(extra: Iterable[str] = ()) -> frozenset[str]:
    return PRUNED_DIRS | frozenset(extra)


def is_pruned(path: Path, root: Path, excluded: frozenset[str]) -> bool:
    """Whether any directory between ``root`` and ``path`` is excluded."""
    try:
        rel = path.relative_to(root)
    except ValueError:
        return True
    return any(part in excluded for part in rel.parts[:-1])


def _walk(root: Path, excluded: frozenset[str]) -> Iterator[Path]:
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in excluded)
        base = Path(dirpath)
        for filename in sorted(filenames):
            yield base / filename


def iter_source_files(
    root: Path,
    *,
    max_file_size_mb: int = 2,
    extra_excluded_dirs: Iterable[str] = (),
) -> Iterator[Path]:
    """Python files that may declare models, skipping pruned directories and oversized files."""
    excluded = pruned_dirs(extra_excluded_dirs)
    limit = max_file_size_mb * _BYTES_PER_MB
    for path in _walk(root, excluded):
        if path.suffix != SOURCE_SUFFIX or path.name == MANIFEST_FILENAME:
            continue
        try:
            size = path.stat().st_size
        except OSError:
            continue
        if size > limit:
            logger.debug("file_skipped_too_large", path=str(path), size=size)
            continue
        yield path


def iter_manifests(root: Path, *, extra_excluded_dirs: Iterable[str] = ()) -> Iterator[Path]:
    """Every addon manifest under ``root``."""
    excluded = pruned_dirs(extra_excluded_dirs)
    for path in _walk(root, excluded):
        if path.name == MANIFEST_FILENAME:
            yield path


def has_manifest(root: Path, *, extra_excluded_dirs: Iterable[str] = ()) -> bool:
    return next(iter_manifests(root, extra_excluded_dirs=extra_excluded_dirs), None) is not None
