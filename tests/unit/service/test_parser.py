"""Unit tests for the agent response parser."""

import pytest

from rollout_agent.model import DEFAULT_SECTION_TEXT
from rollout_agent.service.parser import (
    ResponseParser,
    extract_confidence,
    extract_pr_link,
    extract_section,
    should_promote,
)


@pytest.fixture
def parser():
    return ResponseParser()


class TestResponseParser:
    """Test parsing of full agent answers."""

    def test_structured_answer_with_abort(self, parser):
        text = "## Root Cause\nDisk full\n## Remediation\nExpand volume\nDo not promote"

        record = parser.parse(text)

        assert "Disk full" in record.root_cause
        assert "Expand volume" not in record.root_cause
        assert "Expand volume" in record.remediation
        assert record.promote is False
        assert record.confidence == 50
        assert record.analysis == text

    def test_unstructured_healthy_answer(self, parser):
        text = "The canary looks healthy. Error rates and latency match the stable version."

        record = parser.parse(text)

        assert record.root_cause == DEFAULT_SECTION_TEXT
        assert record.remediation == DEFAULT_SECTION_TEXT
        assert record.promote is True
        assert record.confidence == 80
        assert record.pr_link is None

    @pytest.mark.parametrize("text", [None, ""])
    def test_empty_response(self, parser, text):
        record = parser.parse(text)

        assert record.analysis == ""
        assert record.root_cause == DEFAULT_SECTION_TEXT
        assert record.remediation == DEFAULT_SECTION_TEXT
        assert record.promote is True
        assert record.confidence == 80

    @pytest.mark.parametrize("text", [
        "We should ROLLBACK immediately",
        "Recommend to abort the rollout",
        "Verdict: Do Not Promote",
    ])
    def test_negative_signals_case_insensitive(self, parser, text):
        record = parser.parse(text)

        assert record.promote is False
        assert record.confidence == 50

    def test_explicit_confidence_overrides_default(self, parser):
        record = parser.parse("All good.\n## Confidence\nConfidence: 95")

        assert record.promote is True
        assert record.confidence == 95

    def test_fractional_confidence_read_as_ratio(self, parser):
        record = parser.parse("Confidence: 0.9\nlooks healthy")

        assert record.promote is True
        assert record.confidence == 90

    def test_pr_link_extracted(self, parser):
        text = "## Remediation\nRaised the memory limit.\nPR: https://github.com/acme/shop/pull/17"

        record = parser.parse(text)

        assert record.pr_link == "github.com/acme/shop/pull/17"

    def test_to_dict_uses_wire_names(self, parser):
        data = parser.parse("## Root Cause\nOOM").to_dict()

        assert set(data) == {"analysis", "rootCause", "remediation", "prLink", "promote", "confidence"}

    @pytest.mark.parametrize("text", [
        "root cause",
        "## Root Cause",
        "Remediation:",
        "\n## \n# \n\n## ",
        "confidence: 999",
        "PR: ",
        "🚀" * 100,
    ])
    def test_never_raises(self, parser, text):
        record = parser.parse(text)

        assert record.root_cause
        assert record.remediation
        assert 0 <= record.confidence <= 100


class TestExtractSection:
    def test_label_not_found(self):
        assert extract_section("nothing here", ("root cause",)) is None

    def test_section_stops_at_next_heading(self):
        text = "# Report\nRoot cause: bad config\n# Next\nother"

        assert extract_section(text, ("root cause",)) == "Root cause: bad config"

    def test_section_runs_to_end_without_boundary(self):
        assert extract_section("Remediation: restart the pod", ("remediation",)) == "Remediation: restart the pod"

    def test_first_occurrence_used(self):
        text = "Remediation one\n## Other\nRemediation two"

        assert extract_section(text, ("remediation",)) == "Remediation one"


class TestHelpers:
    def test_should_promote(self):
        assert should_promote("looks fine")
        assert not should_promote("please ABORT")

    @pytest.mark.parametrize("text,expected", [
        ("Confidence: 72", 72),
        ("**Confidence**: 65%", 65),
        ("confidence = 0", 0),
        ("Confidence: 150", 100),
        ("Confidence: 0.9", 90),
        ("Confidence: 0.95.", 95),
        ("Confidence: 87.5%", 88),
        ("Confidence: 1.0", 100),
        ("Confidence: 1234", None),
        ("no number here", None),
    ])
    def test_extract_confidence(self, text, expected):
        assert extract_confidence(text) == expected

    @pytest.mark.parametrize("text,expected", [
        ("see https://github.com/o/r/pull/3 for details", "github.com/o/r/pull/3"),
        ("PR: https://gitlab.example.com/o/r/-/merge_requests/9", "PR: https://gitlab.example.com/o/r/-/merge_requests/9"),
        ("no link", None),
    ])
    def test_extract_pr_link(self, text, expected):
        assert extract_pr_link(text) == expected
