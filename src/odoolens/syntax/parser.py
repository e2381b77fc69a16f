"""Tree-sitter parsing for Python source files.

The grammar is loaded once per process. Parsers are not shared between
threads: every ``parse_source`` call builds its own ``tree_sitter.Parser``,
which is cheap next to the parse itself.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

import tree_sitter
import tree_sitter_python

from odoolens.config.constants import SOURCE_SUFFIX
from odoolens.core.errors import SyntaxReadError
from odoolens.syntax.nodes import SourceUnit

_language: Any = None
_language_lock = threading.Lock()


def python_language() -> tree_sitter.Language:
    """The tree-sitter Python grammar."""
    global _language
    with _language_lock:
        if _language is None:
            _language = tree_sitter.Language(tree_sitter_python.language())
        return _language  # type: ignore[no-any-return]


def parse_source(source: bytes | str, path: Path | None = None) -> SourceUnit:
    """Parse in-memory Python source."""
    if isinstance(source, str):
        source = source.encode("utf-8")
    parser = tree_sitter.Parser()
    parser.language = python_language()
    tree = parser.parse(source)
    return SourceUnit(path=path, source=source, tree=tree)


def parse_file(path: Path) -> SourceUnit:
    """Read and parse a Python file.

    Raises:
        SyntaxReadError: The file is not a Python source file or cannot be read.
    """
    if path.suffix != SOURCE_SUFFIX:
        raise SyntaxReadError.unsupported(str(path))
    try:
        content = path.read_bytes()
    except OSError as e:
        raise SyntaxReadError.unreadable(str(path), str(e)) from e
    return parse_source(content, path)
