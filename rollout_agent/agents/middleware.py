"""Middleware implementations for logging agent activities."""
from typing import Awaitable, Callable

import structlog
from agent_framework import FunctionMiddleware, FunctionInvocationContext
from agent_framework import AgentMiddleware, AgentRunContext

logger = structlog.get_logger(__name__)


class LoggingFunctionMiddleware(FunctionMiddleware):
    """Function middleware that logs tool execution."""

    async def process(
        self,
        context: FunctionInvocationContext,
        next: Callable[[FunctionInvocationContext], Awaitable[None]],
    ) -> None:
        logger.info("Executing tool", tool=context.function.name)
        logger.debug("Tool arguments", tool=context.function.name, arguments=str(context.arguments))

        await next(context)

        logger.debug("Tool completed", tool=context.function.name)


class LoggingAgentMiddleware(AgentMiddleware):
    """Agent middleware that logs execution."""

    async def process(
        self,
        context: AgentRunContext,
        next: Callable[[AgentRunContext], Awaitable[None]],
    ) -> None:
        logger.debug("Agent run started", agent=context.agent.name)

        await next(context)

        logger.debug("Agent run completed", agent=context.agent.name)
