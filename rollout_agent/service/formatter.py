"""Markdown rendering of decision records for A2A text artifacts."""

from rollout_agent.model import DecisionRecord


def format_decision(record: DecisionRecord) -> str:
    """Render a DecisionRecord as markdown."""
    verdict = "PROMOTE" if record.promote else "DO NOT PROMOTE"
    lines = [
        "# Kubernetes Analysis",
        "",
        f"**Decision**: {verdict} (confidence: {record.confidence}%)",
        "",
        "## Root Cause",
        record.root_cause,
        "",
        "## Remediation",
        record.remediation,
    ]
    if record.pr_link:
        lines.extend(["", "## Pull Request", record.pr_link])
    if record.analysis:
        lines.extend(["", "## Full Analysis", record.analysis])
    return "\n".join(lines)
