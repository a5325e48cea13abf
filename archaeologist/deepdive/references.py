"""Codebase reference scan — finds where a selection's identifiers are used."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

from archaeologist.deepdive.models import ReferenceKind, ReferenceSummary, ReferenceUsage

logger = logging.getLogger("archaeologist.deepdive")

EXCLUDED_DIRS = frozenset({
    "node_modules", ".git", "dist", "build", "coverage",
    "__pycache__", ".venv", "venv", "out", "target",
})
SOURCE_SUFFIXES = frozenset({
    ".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs", ".py",
    ".go", ".rs", ".java", ".kt", ".rb", ".php", ".cs", ".swift", ".vue", ".svelte",
})

_DECLARATIONS = (
    re.compile(r"\bfunction\s*\*?\s*([A-Za-z_$][\w$]*)"),
    re.compile(r"\bclass\s+([A-Za-z_$][\w$]*)"),
    re.compile(r"\bdef\s+([A-Za-z_]\w*)"),
    re.compile(
        r"\bexport\s+(?:default\s+)?(?:const|let|var|function|class|interface|type|enum)\s+([A-Za-z_$][\w$]*)"
    ),
)
_SNIPPET_CHARS = 120


def extract_identifiers(text: str) -> list[str]:
    hits: list[tuple[int, str]] = []
    for pattern in _DECLARATIONS:
        hits.extend((m.start(1), m.group(1)) for m in pattern.finditer(text))
    hits.sort()
    return list(dict.fromkeys(name for _pos, name in hits if len(name) > 2))


def classify_usage(line: str, identifier: str) -> ReferenceKind:
    ident = re.escape(identifier)
    stripped = line.strip()
    if re.match(r"(?:import|from)\b", stripped) or re.search(r"\brequire\s*\(", stripped):
        return "import"
    if re.search(rf"\bextends\s+{ident}\b", line) or re.search(rf"\bclass\s+\w+\s*\([^)]*\b{ident}\b", line):
        return "extends"
    if re.search(rf"\bimplements\b[^{{]*\b{ident}\b", line):
        return "implements"
    if re.search(rf"\b{ident}\s*\(", line):
        return "call"
    return "reference"


def scan_references(
    repo_path: str | Path,
    identifiers: list[str],
    exclude_file: str | None = None,
    max_files: int = 2000,
    max_hits: int = 200,
) -> ReferenceSummary:
    """Walk the source tree and record every line mentioning one of ``identifiers``.

    Build, dependency and VCS directories are skipped. The walk stops after
    ``max_files`` source files or ``max_hits`` usages and marks the summary truncated.
    """
    summary = ReferenceSummary(identifiers=list(identifiers))
    if not identifiers:
        return summary

    root = Path(repo_path)
    matcher = re.compile(r"\b(" + "|".join(re.escape(i) for i in identifiers) + r")\b")
    excluded = Path(exclude_file).as_posix() if exclude_file else None

    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in EXCLUDED_DIRS)
        for name in sorted(filenames):
            path = Path(dirpath) / name
            if path.suffix not in SOURCE_SUFFIXES:
                continue
            rel = path.relative_to(root).as_posix()
            if rel == excluded:
                continue
            if summary.files_scanned >= max_files or len(summary.usages) >= max_hits:
                summary.truncated = True
                return summary

            try:
                text = path.read_text(encoding="utf-8", errors="replace")
            except OSError as exc:
                logger.debug("Skipping unreadable file %s: %s", rel, exc)
                continue
            summary.files_scanned += 1

            for number, line in enumerate(text.split("\n"), start=1):
                m = matcher.search(line)
                if not m:
                    continue
                summary.usages.append(ReferenceUsage(
                    file=rel,
                    line=number,
                    identifier=m.group(1),
                    kind=classify_usage(line, m.group(1)),
                    snippet=line.strip()[:_SNIPPET_CHARS],
                ))
                if len(summary.usages) >= max_hits:
                    summary.truncated = True
                    break

    logger.info(
        "Reference scan: %d usages of %d identifiers in %d files",
        len(summary.usages),
        len(identifiers),
        summary.files_scanned,
    )
    return summary
