"""Dependency discovery — follows relative imports out from a file, bounded by depth."""

from __future__ import annotations

import logging
import posixpath
import re
from pathlib import Path

from archaeologist.deepdive.models import DependencyNode

logger = logging.getLogger("archaeologist.deepdive")

_RELATIVE = r"""['"](\.{1,2}/[^'"]+)['"]"""

_SCRIPT_IMPORTS: tuple[tuple[str, re.Pattern], ...] = (
    ("import", re.compile(r"\bimport\s+[^'\";]*?\bfrom\s*" + _RELATIVE)),
    ("import", re.compile(r"\bimport\s*" + _RELATIVE)),
    ("import", re.compile(r"\bimport\s*\(\s*" + _RELATIVE + r"\s*\)")),
    ("import", re.compile(r"\brequire\s*\(\s*" + _RELATIVE + r"\s*\)")),
    ("export", re.compile(r"\bexport\s+[^'\";]*?\bfrom\s*" + _RELATIVE)),
)
_PYTHON_RELATIVE_IMPORT = re.compile(
    r"^[ \t]*from[ \t]+(\.+)([\w.]*)[ \t]+import[ \t]+\(?([\w, \t]+)", re.MULTILINE
)

RESOLUTION_SUFFIXES = (
    "", ".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs", ".py",
    "/index.ts", "/index.tsx", "/index.js", "/__init__.py",
)

_DECLARATION_START = re.compile(
    r"^(?:export\s+)?(?:default\s+)?(?:async\s+)?"
    r"(?:def|class|function\*?|interface|type)\b"
    r"|^(?:export\s+)?const\s+\w+\s*="
)
EXCERPT_LINES = 6


def find_import_specifiers(text: str) -> list[tuple[str, str]]:
    """Return ``(relation, specifier)`` for every relative import, in source order.

    Python relative imports come back as path-like specifiers (``./x``, ``../pkg/y``).
    """
    hits: list[tuple[int, str, str]] = []
    for relation, pattern in _SCRIPT_IMPORTS:
        for m in pattern.finditer(text):
            hits.append((m.start(1), relation, m.group(1)))

    for m in _PYTHON_RELATIVE_IMPORT.finditer(text):
        dots, module, names = m.group(1), m.group(2), m.group(3)
        prefix = "./" if len(dots) == 1 else "../" * (len(dots) - 1)
        if module:
            hits.append((m.start(), "import", prefix + module.replace(".", "/")))
        else:
            for name in (n.strip() for n in names.split(",")):
                if name:
                    hits.append((m.start(), "import", prefix + name))

    hits.sort(key=lambda h: h[0])
    seen: set[str] = set()
    ordered = []
    for _pos, relation, target in hits:
        if target not in seen:
            seen.add(target)
            ordered.append((relation, target))
    return ordered


def resolve_import(repo_path: str | Path, from_file: str, specifier: str) -> str | None:
    """Resolve a relative specifier to a repository-relative file path, or ``None``."""
    root = Path(repo_path).resolve()
    base = posixpath.normpath(posixpath.join(posixpath.dirname(from_file), specifier))
    if base == ".." or base.startswith("../") or posixpath.isabs(base):
        return None

    for suffix in RESOLUTION_SUFFIXES:
        candidate = base + suffix
        full = (root / candidate).resolve()
        if not full.is_relative_to(root):
            return None
        if full.is_file():
            return candidate
    return None


def _read(repo_path: str | Path, file: str) -> str | None:
    try:
        return (Path(repo_path) / file).read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.debug("Cannot read %s for dependency scan: %s", file, exc)
        return None


def discover_dependencies(repo_path: str | Path, file: str, max_depth: int) -> DependencyNode:
    """Build the dependency tree rooted at ``file``.

    Each file appears at most once in the tree. A node at depth ``d`` is only
    expanded when ``d < max_depth``, so no node is deeper than ``max_depth``.
    """
    root = DependencyNode(file=file, relation="root", depth=0)
    seen = {posixpath.normpath(file)}
    stack = [root]

    while stack:
        node = stack.pop()
        if node.depth >= max_depth:
            continue
        text = _read(repo_path, node.file)
        if text is None:
            continue

        for relation, specifier in find_import_specifiers(text):
            resolved = resolve_import(repo_path, node.file, specifier)
            if resolved is None or resolved in seen:
                continue
            seen.add(resolved)
            node.children.append(
                DependencyNode(file=resolved, relation=relation, depth=node.depth + 1)
            )
        stack.extend(reversed(node.children))

    logger.info("Discovered %d files reachable from %s (max_depth=%d)", root.count() - 1, file, max_depth)
    return root


def representative_excerpt(text: str) -> tuple[int, int, str]:
    """Pick the first top-level declaration (else line 1) and return ``(start, end, excerpt)``."""
    lines = text.split("\n")
    start = 1
    for i, line in enumerate(lines):
        if _DECLARATION_START.match(line):
            start = i + 1
            break
    chunk = lines[start - 1 : start - 1 + EXCERPT_LINES]
    return start, start + len(chunk) - 1, "\n".join(chunk)
