"""Unit tests for decision formatting."""

from rollout_agent.model import DecisionRecord
from rollout_agent.service.formatter import format_decision


def test_format_promote():
    record = DecisionRecord(analysis="all good", root_cause="None found", remediation="Nothing to do")

    text = format_decision(record)

    assert text.startswith("# Kubernetes Analysis")
    assert "**Decision**: PROMOTE (confidence: 80%)" in text
    assert "## Root Cause\nNone found" in text
    assert "## Remediation\nNothing to do" in text
    assert "## Full Analysis\nall good" in text
    assert "Pull Request" not in text


def test_format_abort_with_pr():
    record = DecisionRecord(
        analysis="crashloop",
        root_cause="Bad env var",
        remediation="Fix the env var",
        pr_link="https://github.com/acme/shop/pull/1",
        promote=False,
        confidence=90,
    )

    text = format_decision(record)

    assert "**Decision**: DO NOT PROMOTE (confidence: 90%)" in text
    assert "## Pull Request\nhttps://github.com/acme/shop/pull/1" in text


def test_format_without_analysis():
    assert "Full Analysis" not in format_decision(DecisionRecord())
