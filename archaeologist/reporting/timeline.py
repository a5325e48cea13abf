"""Timeline builder — deterministic chronology derived from case evidence."""

from __future__ import annotations

from archaeologist.evidence.models import (
    BlameEvidence,
    CommitEvidence,
    Evidence,
    FileHistoryEvidence,
    IssueEvidence,
    PullRequestEvidence,
)
from archaeologist.reporting.models import TimelineEvent


def _events_for(item: Evidence, blamed_subjects: dict[str, str]) -> list[TimelineEvent]:
    match item:
        case BlameEvidence(data=blame):
            description = f"Line {blame.line_number} written"
            subject = blamed_subjects.get(blame.commit_hash)
            if subject:
                description = f"{description}: {subject}"
            return [TimelineEvent(
                date=blame.timestamp,
                type=item.kind,
                title="Code Authored",
                description=description,
                author=blame.author,
                source_id=blame.commit_hash[:7],
            )]
        case CommitEvidence(data=commit):
            if commit.hash in blamed_subjects:
                return []
            return [TimelineEvent(
                date=commit.date,
                type=item.kind,
                title=commit.subject[:60],
                description=commit.message,
                author=commit.author,
                source_id=commit.short_hash,
            )]
        case PullRequestEvidence(data=pr):
            events = [TimelineEvent(
                date=pr.created_at,
                type=item.kind,
                title=f"PR #{pr.number}: {pr.title}",
                description=pr.body[:200],
                author=pr.author,
                source_id=f"PR#{pr.number}",
                source_url=pr.url or None,
            )]
            if pr.merged_at:
                events.append(TimelineEvent(
                    date=pr.merged_at,
                    type=item.kind,
                    title=f"PR #{pr.number} Merged",
                    description="Pull request merged",
                    author=pr.author,
                    source_id=f"PR#{pr.number}",
                    source_url=pr.url or None,
                ))
            return events
        case IssueEvidence(data=issue):
            return [TimelineEvent(
                date=issue.created_at,
                type=item.kind,
                title=f"Issue #{issue.number}: {issue.title}",
                description=issue.body[:200],
                author=issue.author,
                source_id=f"Issue#{issue.number}",
                source_url=issue.url or None,
            )]
        case FileHistoryEvidence():
            # Broad context only; individual history commits are not milestones.
            return []
    raise TypeError(f"Unhandled evidence kind: {item.kind}")


def build_timeline(evidence: list[Evidence]) -> list[TimelineEvent]:
    """One event per blame, commit, PR created/merged and issue created; oldest first.

    The commit that blame points at is folded into the blame event rather than
    listed twice.
    """
    blamed = {e.data.commit_hash for e in evidence if isinstance(e, BlameEvidence)}
    blamed_subjects = {
        e.data.hash: e.data.subject
        for e in evidence
        if isinstance(e, CommitEvidence) and e.data.hash in blamed
    }

    events: list[TimelineEvent] = []
    for item in evidence:
        events.extend(_events_for(item, blamed_subjects))
    return sorted(events, key=lambda e: e.date)
