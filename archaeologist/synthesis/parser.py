"""Response parser — turns the detective's free text into structured findings.

Extraction is layered and the order matters: the strict section parser runs
first, heuristic patterns cover responses that ignore the format, and defaults
cover everything else.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from archaeologist.config import Settings
from archaeologist.evidence.models import (
    BlameEvidence,
    Case,
    CommitEvidence,
    FileHistoryEvidence,
    IssueEvidence,
    PullRequestEvidence,
    clamp_confidence,
)
from archaeologist.reporting.models import Recommendation, Source

_SECTION_HEADER = re.compile(
    r"^#{1,6}\s*(SUMMARY|CONFIDENCE|INVESTIGATION FINDINGS|SOURCES|RECOMMENDATIONS?)\b[ \t]*:?[ \t]*(.*)$",
    re.IGNORECASE | re.MULTILINE,
)
_STRICT_CONFIDENCE = re.compile(r"^(\d{1,3})\s*%")
_STRICT_ACTION = re.compile(r"\b(KEEP|DOCUMENT|REFACTOR|REMOVE|INVESTIGATE)\b")

_CONFIDENCE_PATTERNS = (
    re.compile(r"CONFIDENCE[:\s]*(\d+)\s*%?", re.IGNORECASE),
    re.compile(r"(\d+)\s*%?\s*confidence", re.IGNORECASE),
    re.compile(r"confidence[:\s]*(\d+)", re.IGNORECASE),
    re.compile(r"(\d+)%"),
)
_SUMMARY_PATTERN = re.compile(r"(?:summary|overview)[:\s]*([^\n]+(?:\n[^\n#]+)*)", re.IGNORECASE)

_HASH_REF = re.compile(r"\b([a-f0-9]{7,40})\b", re.IGNORECASE)
_PR_REF = re.compile(r"(?:\bPR|\bpull request)\s*#?(\d+)", re.IGNORECASE)
_ISSUE_REF = re.compile(r"\bissue\s*#?(\d+)", re.IGNORECASE)
_BARE_REF = re.compile(r"(?<![\w#/])#(\d+)\b")

_TRIGGER_PHRASES: tuple[tuple[str, str], ...] = (
    ("should be kept", "keep"),
    ("recommend keeping", "keep"),
    ("still necessary", "keep"),
    ("should be refactored", "refactor"),
    ("recommend refactoring", "refactor"),
    ("needs documentation", "document"),
    ("should be documented", "document"),
    ("can be removed", "remove"),
    ("should be removed", "remove"),
    ("dead code", "remove"),
    ("warrants further investigation", "investigate"),
    ("needs more analysis", "investigate"),
)

_MARKDOWN_RULES: tuple[tuple[re.Pattern, str], ...] = (
    (re.compile(r"```[\s\S]*?```"), ""),
    (re.compile(r"`([^`]+)`"), r"\1"),
    (re.compile(r"^#{1,6}\s+", re.MULTILINE), ""),
    (re.compile(r"\*\*([^*]+)\*\*"), r"\1"),
    (re.compile(r"__([^_]+)__"), r"\1"),
    (re.compile(r"(?<![\w*])\*([^*\n]+)\*(?![\w*])"), r"\1"),
    (re.compile(r"(?<![\w_])_([^_\n]+)_(?![\w_])"), r"\1"),
    (re.compile(r"^[ \t]*[-*+][ \t]+", re.MULTILINE), "• "),
    (re.compile(r"^[ \t]*\d+\.[ \t]+", re.MULTILINE), ""),
    (re.compile(r"^[-*_]{3,}$", re.MULTILINE), ""),
    (re.compile(r"\[([^\]]+)\]\([^)]+\)"), r"\1"),
    (re.compile(r"\n{3,}"), "\n\n"),
)


def clean_markdown(text: str) -> str:
    for pattern, replacement in _MARKDOWN_RULES:
        text = pattern.sub(replacement, text)
    return text.strip()


@dataclass
class ParsedResponse:
    narrative: str
    summary: str
    confidence: int
    sources: list[Source] = field(default_factory=list)
    recommendations: list[Recommendation] = field(default_factory=list)


# ── Layer 1: strict sections ───────────────────────────────────────


def parse_sections(text: str) -> dict[str, tuple[str, str]]:
    """Map upper-cased section name to (header remainder, body)."""
    matches = list(_SECTION_HEADER.finditer(text))
    sections: dict[str, tuple[str, str]] = {}
    for i, m in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(text)
        name = m.group(1).upper()
        if name == "RECOMMENDATIONS":
            name = "RECOMMENDATION"
        sections.setdefault(name, (m.group(2).strip(), text[m.end():end].strip()))
    return sections


def _strict_confidence(sections: dict[str, tuple[str, str]]) -> int | None:
    if "CONFIDENCE" not in sections:
        return None
    header, _body = sections["CONFIDENCE"]
    m = _STRICT_CONFIDENCE.match(header)
    return int(m.group(1)) if m else None


def _strict_summary(sections: dict[str, tuple[str, str]]) -> str | None:
    if "SUMMARY" not in sections:
        return None
    header, body = sections["SUMMARY"]
    summary = clean_markdown("\n".join(part for part in (header, body) if part))
    return summary or None


def _strict_recommendation(sections: dict[str, tuple[str, str]]) -> Recommendation | None:
    if "RECOMMENDATION" not in sections:
        return None
    header, body = sections["RECOMMENDATION"]
    m = _STRICT_ACTION.search(header) or _STRICT_ACTION.search(body.split("\n", 1)[0])
    if not m:
        return None
    action = m.group(1).lower()
    reasons = [
        clean_markdown(line).lstrip("• ").strip()
        for line in body.split("\n")
        if line.strip().startswith(("•", "-", "*"))
    ]
    return Recommendation(
        action=action,
        reason=reasons[0] if reasons else f"Detective recommends: {action}",
        priority=_priority(action),
    )


# ── Layer 2: heuristics ───────────────────────────────────────────


def _heuristic_confidence(text: str) -> int | None:
    for pattern in _CONFIDENCE_PATTERNS:
        m = pattern.search(text)
        if m:
            return int(m.group(1))
    return None


def _heuristic_summary(text: str) -> str | None:
    m = _SUMMARY_PATTERN.search(text)
    return clean_markdown(m.group(1).strip()) if m else None


def _priority(action: str) -> str:
    return "high" if action in ("remove", "refactor") else "medium"


def _trigger_recommendations(text: str) -> list[Recommendation]:
    lowered = text.lower()
    found = []
    for phrase, action in _TRIGGER_PHRASES:
        if phrase not in lowered:
            continue
        sentence = re.search(r"[^.]*" + r"\s+".join(phrase.split()) + r"[^.]*\.", text, re.IGNORECASE)
        found.append(Recommendation(
            action=action,
            reason=sentence.group(0).strip() if sentence else phrase,
            priority=_priority(action),
        ))
    return found


# ── Public extraction functions ───────────────────────────────────


def extract_confidence(text: str, has_evidence: bool, cfg: Settings) -> int:
    sections = parse_sections(text)
    value = _strict_confidence(sections)
    if value is None:
        value = _heuristic_confidence(text)
    if value is None:
        value = cfg.confidence_with_evidence if has_evidence else cfg.confidence_without_evidence
    return clamp_confidence(value)


def extract_summary(text: str) -> str:
    sections = parse_sections(text)
    summary = _strict_summary(sections) or _heuristic_summary(text)
    if summary:
        return summary
    return clean_markdown(text.split("\n\n", 1)[0][:300])


def extract_recommendations(text: str) -> list[Recommendation]:
    """Primary recommendation from the strict section, then trigger phrases; one per action."""
    candidates: list[Recommendation] = []
    primary = _strict_recommendation(parse_sections(text))
    if primary:
        candidates.append(primary)
    candidates.extend(_trigger_recommendations(text))

    seen: set[str] = set()
    unique = []
    for rec in candidates:
        if rec.action not in seen:
            seen.add(rec.action)
            unique.append(rec)
    return unique


def extract_sources(text: str, case: Case) -> list[Source]:
    """Citations in the text that match evidence on the case. Unmatched ones are dropped."""
    commits: dict[str, str] = {}  # full hash -> description
    prs = {}
    issues = {}
    for item in case.evidence:
        match item:
            case BlameEvidence(data=blame):
                commits.setdefault(blame.commit_hash, f"Commit {blame.commit_hash[:7]}")
            case CommitEvidence(data=commit):
                commits[commit.hash] = commit.subject or f"Commit {commit.short_hash}"
            case FileHistoryEvidence(data=history):
                for c in history:
                    commits.setdefault(c.hash, c.subject or f"Commit {c.short_hash}")
            case PullRequestEvidence(data=pr):
                prs[pr.number] = pr
            case IssueEvidence(data=issue):
                issues[issue.number] = issue

    sources: list[Source] = []
    seen: set[str] = set()

    def add(source: Source) -> None:
        if source.id not in seen:
            seen.add(source.id)
            sources.append(source)

    for m in _HASH_REF.finditer(text):
        token = m.group(1).lower()
        full = next((h for h in commits if h.lower().startswith(token)), None)
        if full is None:
            continue
        url = None
        if case.repository:
            url = f"https://github.com/{case.repository.slug}/commit/{full}"
        add(Source(type="commit", id=full[:7], url=url, description=commits[full]))

    for m in _PR_REF.finditer(text):
        pr = prs.get(int(m.group(1)))
        if pr:
            add(Source(type="pr", id=f"PR#{pr.number}", url=pr.url or None, description=pr.title))

    for m in _ISSUE_REF.finditer(text):
        issue = issues.get(int(m.group(1)))
        if issue:
            add(Source(type="issue", id=f"Issue#{issue.number}", url=issue.url or None, description=issue.title))

    for m in _BARE_REF.finditer(text):
        number = int(m.group(1))
        if number in issues:
            issue = issues[number]
            add(Source(type="issue", id=f"Issue#{number}", url=issue.url or None, description=issue.title))
        elif number in prs:
            pr = prs[number]
            add(Source(type="pr", id=f"PR#{number}", url=pr.url or None, description=pr.title))

    return sources


def parse_investigation_response(text: str, case: Case, cfg: Settings) -> ParsedResponse:
    return ParsedResponse(
        narrative=clean_markdown(text),
        summary=extract_summary(text),
        confidence=extract_confidence(text, bool(case.evidence), cfg),
        sources=extract_sources(text, case),
        recommendations=extract_recommendations(text),
    )
