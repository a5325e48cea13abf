"""Markdown and ADR exports. Pure functions of an ``InvestigationResult``."""

from __future__ import annotations

from archaeologist.reporting.models import ADRExport, InvestigationResult, MarkdownExport

_ADR_DECISION_CHARS = 1000
_TIMELINE_TITLE_CHARS = 40


def _link(label: str, url: str | None) -> str:
    return f"[{label}]({url})" if url else label


def render_markdown(result: InvestigationResult) -> str:
    """Render the report: summary, narrative, timeline, sources, recommendations."""
    timeline_rows = "\n".join(
        f"| {e.date.date().isoformat()} | {e.title[:_TIMELINE_TITLE_CHARS]} | {e.author} "
        f"| {_link(e.source_id, e.source_url)} |"
        for e in result.timeline
    )
    sources = "\n".join(
        f"- **{s.type.upper()}** {_link(s.id, s.url)}: {s.description}" for s in result.sources
    )
    recommendations = "\n".join(
        f"- **{r.action.upper()}** ({r.priority} priority): {r.reason}" for r in result.recommendations
    )

    return (
        "# Code Archaeology Investigation Report\n\n"
        f"**File:** {result.file_path}\n"
        f"**Confidence:** {result.confidence}%\n\n"
        f"## Summary\n\n{result.summary}\n\n"
        f"## Investigation Narrative\n\n{result.narrative}\n\n"
        "## Timeline\n\n"
        "| Date | Event | Author | Source |\n"
        "|------|-------|--------|--------|\n"
        f"{timeline_rows}\n\n"
        f"## Sources\n\n{sources or '_No sources cited._'}\n\n"
        f"## Recommendations\n\n{recommendations or '_No recommendations._'}\n\n"
        "---\n\n"
        "*Generated by Repo Archaeologist*\n"
    )


def export_markdown(result: InvestigationResult) -> MarkdownExport:
    return MarkdownExport(
        content=render_markdown(result),
        filename=f"investigation-{result.case_id[:8]}.md",
    )


def render_adr(result: InvestigationResult, title: str) -> ADRExport:
    """Distill a result into an Architecture Decision Record.

    The record is ``accepted`` when the investigation recommends keeping the
    code and ``proposed`` otherwise.
    """
    keep = any(r.action == "keep" for r in result.recommendations)
    return ADRExport(
        title=title,
        status="accepted" if keep else "proposed",
        context=result.summary,
        decision=result.narrative[:_ADR_DECISION_CHARS],
        consequences="\n".join(f"- {r.action}: {r.reason}" for r in result.recommendations),
    )


def format_adr(adr: ADRExport) -> str:
    return (
        f"# {adr.title}\n\n"
        f"## Status\n\n{adr.status.capitalize()}\n\n"
        f"## Context\n\n{adr.context}\n\n"
        f"## Decision\n\n{adr.decision}\n\n"
        f"## Consequences\n\n{adr.consequences or 'None recorded.'}\n"
    )
