"""Kubernetes analysis agent backed by agent_framework."""
from typing import Dict, Protocol, Sequence

import structlog
from agent_framework import AgentThread, ChatAgent

from rollout_agent.agents.client import LLMClient
from rollout_agent.agents.middleware import LoggingAgentMiddleware, LoggingFunctionMiddleware
from rollout_agent.config import Config
from rollout_agent.plugins.base import BasePlugin

logger = structlog.get_logger(__name__)

INSTRUCTIONS = """You are an expert Kubernetes SRE specializing in canary deployment analysis.
Analyze the provided metrics, events and logs to determine if a canary deployment is healthy.
Use the available tools to gather evidence before answering; never guess resource names.
When a code or configuration fix is clear and a repository is known, you may open a pull request.
Be thorough but concise in your analysis."""


class ReasoningEngine(Protocol):
    """Anything that can answer a prompt, optionally within a conversation."""

    async def chat(self, session_key: str, prompt: str) -> str:
        """Answer within the conversation identified by session_key."""
        ...

    async def chat_once(self, prompt: str) -> str:
        """Answer without conversation memory."""
        ...


class KubernetesAgent:
    """Conversational agent with read-only Kubernetes tools.

    Conversation memory is one AgentThread per session key, held in process.
    Threads are never locked: two requests with the same key may interleave
    their messages, exactly as two chat windows on the same thread would.

    Attributes:
        agent: The underlying ChatAgent
        threads: Conversation threads by session key
    """

    def __init__(
        self,
        config: Config,
        plugins: Sequence[BasePlugin] = (),
        name: str = "kubernetes_agent",
        instructions: str = INSTRUCTIONS,
        chat_client=None,
    ):
        tools = []
        for plugin in plugins:
            tools.extend(plugin.get_tools())

        self.name = name
        self.agent = ChatAgent(
            name=name,
            description="Kubernetes canary analysis agent",
            instructions=instructions,
            chat_client=chat_client or LLMClient(config).get_client(),
            tools=tools,
            middleware=[LoggingAgentMiddleware(), LoggingFunctionMiddleware()],
            temperature=config.llm_temperature,
        )
        self.threads: Dict[str, AgentThread] = {}
        logger.info("Kubernetes agent initialized", agent=name, tools=len(tools))

    def get_thread(self, session_key: str) -> AgentThread:
        """Return the conversation thread for a session key, creating it on first use."""
        thread = self.threads.get(session_key)
        if thread is None:
            thread = self.agent.get_new_thread()
            self.threads[session_key] = thread
            logger.debug("Created conversation thread", session_key=session_key)
        return thread

    async def chat(self, session_key: str, prompt: str) -> str:
        """Send a prompt within the conversation identified by session_key."""
        response = await self.agent.run(prompt, thread=self.get_thread(session_key))
        return str(response.text)

    async def chat_once(self, prompt: str) -> str:
        """Send a prompt on a fresh thread."""
        response = await self.agent.run(prompt, thread=self.agent.get_new_thread())
        return str(response.text)
