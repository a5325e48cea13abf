"""Investigation prompt — code snippet, every evidence item, and the response contract."""

from __future__ import annotations

from archaeologist.config import Settings
from archaeologist.evidence.models import (
    BlameEvidence,
    Case,
    CommitEvidence,
    Evidence,
    FileHistoryEvidence,
    IssueEvidence,
    PullRequestEvidence,
)
from archaeologist.reasoning.models import ReasoningTrace

_SYSTEM_PROMPT = """\
You are the Lead Detective in a code archaeology investigation. You are an expert at \
understanding code history and making precise, confident assessments.

## Your Mission
Analyze evidence gathered from git blame, commit history, pull requests and issues to \
explain WHY code exists. Connect the dots across the history and reach definitive \
conclusions.

## Analysis Protocol
1. Examine ALL provided evidence; every commit and every comment matters
2. Identify the PRIMARY PURPOSE of the code based on hard evidence
3. Trace the code's evolution through the commit history
4. Determine the current relevance and technical debt status
5. Make recommendations backed by specific evidence

## Confidence Scoring Guidelines
- 90-100: Commit messages and history explain the purpose
- 80-89: Good evidence, clear pattern of development
- 70-79: Some evidence, reasonable inferences
- Below 70: Truly mysterious code with little or no history

## Response Format (STRICT)
Your response MUST include these sections with exact headers:

### SUMMARY
• [Main purpose of this code]
• [Key problem it solves]
• [Current status/relevance]

### CONFIDENCE: [NUMBER]%
• [Justification based on evidence quality]

### INVESTIGATION FINDINGS
Key Discoveries:
• [Discovery with its evidence]

Evolution:
• [How the code evolved over time]

Technical Assessment:
• [Code quality, technical debt, concerns]

### SOURCES
• Commit: [hash] - [brief description]
• PR #[number] - [if applicable]
• Issue #[number] - [if applicable]

### RECOMMENDATION
[One of: KEEP | DOCUMENT | REFACTOR | REMOVE | INVESTIGATE]
• [Why this recommendation]
• [Action item for the developer]

## Critical Rules
- ALWAYS give a specific confidence percentage (e.g. "CONFIDENCE: 92%")
- CITE specific evidence (commit SHAs, PR numbers, issue numbers) for every claim
- Only cite commits, PRs and issues that appear in the evidence below
- Use bullet points (•) for all lists
"""


def _truncate(text: str, budget: int, marker: str = "...") -> str:
    if len(text) <= budget:
        return text
    return text[:budget] + marker


def _render_evidence(item: Evidence, cfg: Settings) -> str:
    match item:
        case BlameEvidence(data=blame):
            return (
                "### Git Blame\n"
                f"- Commit: {blame.commit_hash}\n"
                f"- Author: {blame.author} <{blame.author_email}>\n"
                f"- Date: {blame.timestamp.isoformat()}\n"
                f"- Line Content: {blame.line_content}\n"
            )
        case CommitEvidence(data=commit):
            diff = _truncate(commit.diff, cfg.diff_char_budget, "\n... (truncated)")
            return (
                "### Commit Details\n"
                f"- Hash: {commit.hash}\n"
                f"- Author: {commit.author}\n"
                f"- Date: {commit.date.isoformat()}\n"
                f"- Message:\n{commit.message}\n\n"
                f"- Changed Files: {', '.join(commit.changed_files)}\n\n"
                f"- Diff (relevant portion):\n```diff\n{diff}\n```\n"
            )
        case PullRequestEvidence(data=pr):
            comments = "\n".join(
                f"- **{c.author}** ({c.created_at.isoformat()}): "
                f"{_truncate(c.body, cfg.pr_comment_char_budget)}"
                for c in pr.comments[: cfg.pr_comment_limit]
            )
            reviews = "\n".join(
                f"- **{r.author}**: {r.state} - {_truncate(r.body, cfg.review_char_budget)}"
                for r in pr.reviews
            )
            return (
                f"### Pull Request #{pr.number}\n"
                f"- Title: {pr.title}\n"
                f"- Author: {pr.author}\n"
                f"- State: {pr.state}\n"
                f"- Created: {pr.created_at.isoformat()}\n"
                f"- URL: {pr.url}\n\n"
                f"#### Description:\n{pr.body or '(No description provided)'}\n\n"
                f"#### Discussion ({len(pr.comments)} comments):\n{comments}\n\n"
                f"#### Reviews:\n{reviews}\n"
            )
        case IssueEvidence(data=issue):
            comments = "\n".join(
                f"- **{c.author}**: {_truncate(c.body, cfg.issue_comment_char_budget)}"
                for c in issue.comments[: cfg.issue_comment_limit]
            )
            return (
                f"### Issue #{issue.number}: {issue.title}\n"
                f"- Author: {issue.author}\n"
                f"- State: {issue.state}\n"
                f"- Labels: {', '.join(issue.labels) or 'none'}\n"
                f"- Created: {issue.created_at.isoformat()}\n"
                f"- URL: {issue.url}\n\n"
                f"{_truncate(issue.body, cfg.issue_body_char_budget)}\n\n"
                f"Comments ({len(issue.comments)}):\n{comments}\n"
            )
        case FileHistoryEvidence(data=commits):
            shown = commits[: cfg.file_history_prompt_limit]
            lines = "\n".join(
                f"- {c.short_hash} - {c.date.date().isoformat()} - {c.author}: {c.subject}"
                for c in shown
            )
            more = len(commits) - len(shown)
            tail = f"\n... and {more} more commits" if more > 0 else ""
            return f"### File History ({len(commits)} commits)\n{lines}{tail}\n"
    raise TypeError(f"Unhandled evidence kind: {item.kind}")


def build_investigation_prompt(
    case: Case,
    trace: ReasoningTrace,
    cfg: Settings,
    extra_context: str | None = None,
) -> str:
    selection = case.selection
    parts = [
        _SYSTEM_PROMPT,
        "## The Code Under Investigation\n\n"
        f"File: {selection.file_path}\n"
        f"Lines: {selection.line_start}-{selection.line_end}\n\n"
        f"```\n{selection.text}\n```\n",
        "## Evidence Collected\n",
    ]

    if case.evidence:
        parts.extend(_render_evidence(item, cfg) for item in case.evidence)
    else:
        parts.append("No history evidence could be gathered for this code.\n")

    if case.gaps:
        parts.append(
            "### Unavailable Evidence\n"
            + "\n".join(f"- {g.step}: {g.reason}" for g in case.gaps)
            + "\n"
        )

    if extra_context:
        parts.append(f"## Additional Context\n\n{extra_context}\n")

    if trace.signatures:
        chain = " → ".join(s.signature for s in trace.signatures)
        parts.append(
            "### Previous Investigation Steps\n"
            f"This investigation has {trace.total_steps} previous reasoning steps.\n"
            f"Thought chain signatures: {chain}\n"
        )

    parts.append(
        "## Your Investigation\n\n"
        "Based on all evidence above, provide your investigation findings following the "
        "format specified in your instructions. Cite specific evidence for all claims."
    )
    return "\n".join(parts)
