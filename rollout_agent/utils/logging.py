"""Structured logging configuration for the rollout agent."""

from __future__ import annotations

import logging

import structlog


def configure_logging(level: int | str = logging.INFO, json_output: bool = False) -> None:
    """Configure structlog for the rollout agent.

    At DEBUG level, prompts, tool calls and parsed decisions are logged.
    At INFO level and above, only request and task lifecycle events are logged.

    Args:
        level: Standard logging level (e.g., logging.DEBUG, "INFO").
        json_output: Render one JSON object per line instead of console output.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
