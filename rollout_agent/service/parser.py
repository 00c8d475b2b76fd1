"""Parsing of free-form agent answers into decision records.

The agent is asked to answer with labelled markdown sections, but nothing
guarantees it does. Every extraction here degrades to a default value rather
than failing.
"""

import re
from typing import Optional, Sequence

import structlog

from rollout_agent.model import DEFAULT_SECTION_TEXT, DecisionRecord

logger = structlog.get_logger(__name__)

# Labels are tried in order; the first one present in the text wins.
ROOT_CAUSE_LABELS = ("root cause",)
REMEDIATION_LABELS = ("remediation",)

# A section ends at the nearest of these markers after its label.
SECTION_BOUNDARIES = ("\n## ", "\n# ", "\n\n## ")

NEGATIVE_SIGNALS = ("do not promote", "abort", "rollback")

PROMOTE_CONFIDENCE = 80
ABORT_CONFIDENCE = 50

PR_LINK_PATTERNS = (
    re.compile(r"github\.com/.+/pull/\d+"),
    re.compile(r"PR: https?://[^\s]+"),
)

CONFIDENCE_PATTERN = re.compile(r"confidence\**\s*[:=]\s*\**\s*(\d{1,3}(?:\.\d+)?)(?!\d)\s*(%?)", re.IGNORECASE)


def extract_section(text: str, labels: Sequence[str]) -> Optional[str]:
    """Extract the section introduced by the first label found in the text.

    Returns None if no label is present.
    """
    lower_text = text.lower()
    for label in labels:
        start = lower_text.find(label.lower())
        if start == -1:
            continue

        end = len(text)
        for marker in SECTION_BOUNDARIES:
            marker_pos = text.find(marker, start + len(label))
            if marker_pos != -1 and marker_pos < end:
                end = marker_pos

        section = text[start:end].strip()
        if section:
            return section
    return None


def should_promote(text: str) -> bool:
    """Promote unless the text contains an explicit negative signal."""
    lower_text = text.lower()
    return not any(signal in lower_text for signal in NEGATIVE_SIGNALS)


def extract_confidence(text: str) -> Optional[int]:
    """Explicit "confidence: N" value, clamped to 0-100.

    A fraction such as 0.9 without a percent sign is read as a ratio.
    """
    match = CONFIDENCE_PATTERN.search(text)
    if not match:
        return None
    number, percent = match.groups()
    value = float(number)
    if "." in number and value <= 1 and not percent:
        value *= 100
    return max(0, min(100, round(value)))


def extract_pr_link(text: str) -> Optional[str]:
    """Extract PR link from the response if available."""
    for pattern in PR_LINK_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(0)
    return None


class ResponseParser:
    """Turns the Kubernetes agent's answer into a DecisionRecord."""

    def parse(self, full_response: Optional[str]) -> DecisionRecord:
        """Parse the agent's response into a structured DecisionRecord.

        Never raises: missing sections fall back to "See analysis", and an
        empty response yields a record made only of defaults.
        """
        text = full_response or ""

        root_cause = extract_section(text, ROOT_CAUSE_LABELS) or DEFAULT_SECTION_TEXT
        remediation = extract_section(text, REMEDIATION_LABELS) or DEFAULT_SECTION_TEXT

        promote = should_promote(text)
        confidence = extract_confidence(text)
        if confidence is None:
            confidence = PROMOTE_CONFIDENCE if promote else ABORT_CONFIDENCE

        record = DecisionRecord(
            analysis=text,
            root_cause=root_cause,
            remediation=remediation,
            pr_link=extract_pr_link(text),
            promote=promote,
            confidence=confidence,
        )
        logger.debug(
            "Parsed agent response",
            promote=record.promote,
            confidence=record.confidence,
            pr_link=record.pr_link,
        )
        return record
