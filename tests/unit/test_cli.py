"""
Unit tests for CLI commands.
"""
from unittest.mock import AsyncMock, patch

import pytest
import typer
from typer.testing import CliRunner

from rollout_agent.cli import app, parse_context, render_decision
from rollout_agent.config import Config
from rollout_agent.model import DecisionRecord

runner = CliRunner()


@pytest.fixture
def cli_env():
    """Patch config loading, logging setup and the agent."""
    with patch("rollout_agent.cli.load_config", return_value=Config(_env_file=None)), \
            patch("rollout_agent.cli.configure_logging"), \
            patch("rollout_agent.cli.KubernetesPlugin"), \
            patch("rollout_agent.cli.GitHubPRPlugin"), \
            patch("rollout_agent.cli.KubernetesAgent") as mock_agent:
        yield mock_agent


class TestVersionCommand:
    def test_version_displays_version(self):
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert "0.1.0" in result.stdout


class TestAnalyzeCommand:
    def test_analyze_prints_decision(self, cli_env):
        engine = cli_env.return_value
        engine.chat = AsyncMock(return_value="## Root Cause\nBad image\nDo not promote")

        result = runner.invoke(app, ["analyze", "Check canary", "--memory-id", "m1", "-c", "namespace=shop"])

        assert result.exit_code == 0
        assert "DO NOT PROMOTE" in result.stdout
        assert "50%" in result.stdout
        session_key, prompt = engine.chat.await_args.args
        assert session_key == "m1"
        assert "- namespace: shop" in prompt

    def test_analyze_failure_exits_non_zero(self, cli_env):
        cli_env.side_effect = ValueError("OpenAI API key not found")

        result = runner.invoke(app, ["analyze", "Check canary"])

        assert result.exit_code == 1
        assert "OpenAI API key not found" in result.stdout
        assert "Analysis failed" in result.stdout

    def test_bad_context(self, cli_env):
        result = runner.invoke(app, ["analyze", "Check canary", "--context", "novalue"])

        assert result.exit_code != 0


class TestServeCommand:
    def test_serve_uses_config_defaults(self):
        with patch("rollout_agent.cli.load_config", return_value=Config(_env_file=None, api_port=9090)), \
                patch("rollout_agent.cli.configure_logging"), \
                patch("rollout_agent.cli.uvicorn.run") as mock_run:
            result = runner.invoke(app, ["serve", "--host", "127.0.0.1"])

        assert result.exit_code == 0
        mock_run.assert_called_once_with("rollout_agent.api:app", host="127.0.0.1", port=9090, reload=False)


class TestParseContext:
    def test_pairs(self):
        assert parse_context(["a=1", " b = two "]) == {"a": "1", "b": "two"}

    def test_value_may_contain_equals(self):
        assert parse_context(["query=a=b"]) == {"query": "a=b"}

    def test_empty(self):
        assert parse_context(None) == {}

    def test_invalid(self):
        with pytest.raises(typer.BadParameter):
            parse_context(["=x"])


def test_render_decision_rows():
    table = render_decision(DecisionRecord(pr_link="https://github.com/o/r/pull/1"))

    assert table.row_count == 5
