"""
Utility functions and helpers.

Logging configuration and command execution shared by the plugins and the API.
"""

from rollout_agent.utils.command import run_command, redact_command
from rollout_agent.utils.logging import configure_logging

__all__ = [
    "run_command",
    "redact_command",
    "configure_logging",
]
