"""
Command-line interface for the rollout agent.

Runs the API server or a single analysis from the terminal.
"""
import asyncio
from typing import List, Optional

import typer
import uvicorn
from rich.console import Console
from rich.table import Table

from rollout_agent import __version__
from rollout_agent.agents.kubernetes_agent import KubernetesAgent
from rollout_agent.config import load_config
from rollout_agent.model import AnalysisRequest, DecisionRecord
from rollout_agent.plugins.github import GitHubPRPlugin
from rollout_agent.plugins.kubernetes import KubernetesPlugin
from rollout_agent.service.analysis import AnalysisService
from rollout_agent.service.policy import error_decision
from rollout_agent.utils.logging import configure_logging

app = typer.Typer(
    name="rollout-agent",
    help="Kubernetes canary analysis agent",
    add_completion=False,
)

console = Console()


def parse_context(items: Optional[List[str]]) -> dict:
    """Parse repeated key=value options into a dict."""
    context = {}
    for item in items or []:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise typer.BadParameter(f"Expected key=value, got '{item}'", param_hint="--context")
        context[key.strip()] = value.strip()
    return context


def render_decision(record: DecisionRecord) -> Table:
    table = Table(title="Kubernetes Analysis", show_lines=True)
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value", style="green")

    verdict = "[green]PROMOTE[/green]" if record.promote else "[bold red]DO NOT PROMOTE[/bold red]"
    table.add_row("Decision", verdict)
    table.add_row("Confidence", f"{record.confidence}%")
    table.add_row("Root Cause", record.root_cause)
    table.add_row("Remediation", record.remediation)
    table.add_row("Pull Request", record.pr_link or "-")
    return table


@app.command()
def version() -> None:
    """Display the version of the rollout agent."""
    typer.echo(f"Rollout agent version {__version__}")


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default from config)"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port (default from config)"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
) -> None:
    """Start the REST API server."""
    config = load_config()
    configure_logging(config.log_level, json_output=config.log_json)
    uvicorn.run(
        "rollout_agent.api:app",
        host=host or config.api_host,
        port=port or config.api_port,
        reload=reload,
    )


@app.command()
def analyze(
    prompt: str = typer.Argument(..., help="What to analyze"),
    memory_id: Optional[str] = typer.Option(None, "--memory-id", "-m", help="Conversation memory identifier"),
    context: Optional[List[str]] = typer.Option(None, "--context", "-c", help="Context entry as key=value (repeatable)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
    show_analysis: bool = typer.Option(False, "--show-analysis", help="Print the agent's full answer"),
) -> None:
    """Run one canary analysis and print the decision."""
    config = load_config()
    configure_logging("DEBUG" if verbose else config.log_level, json_output=config.log_json)
    request = AnalysisRequest(prompt=prompt, memory_id=memory_id, context=parse_context(context) or None)

    try:
        engine = KubernetesAgent(config, plugins=[KubernetesPlugin(config), GitHubPRPlugin(config)])
        with console.status("[cyan]Analyzing...[/cyan]"):
            record = asyncio.run(AnalysisService(engine).analyze(request))
    except Exception as e:
        console.print(f"[red]Error during analysis: {e}[/red]")
        console.print(render_decision(error_decision(e, promote_on_error=config.promote_on_error)))
        raise typer.Exit(1) from e

    console.print(render_decision(record))
    if show_analysis and record.analysis:
        console.print(record.analysis)


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
