"""Synchronous analysis: one request in, one DecisionRecord out."""

from typing import Optional

import structlog
from structlog.contextvars import bound_contextvars

from rollout_agent.agents.kubernetes_agent import ReasoningEngine
from rollout_agent.memory import resolve_session_key
from rollout_agent.model import AnalysisRequest, DecisionRecord
from rollout_agent.service.parser import ResponseParser
from rollout_agent.service.prompts import build_prompt

logger = structlog.get_logger(__name__)


class AnalysisService:
    """Runs a single analysis outside the task protocol.

    Errors propagate to the caller, which decides how to report them.
    """

    def __init__(self, engine: ReasoningEngine, parser: Optional[ResponseParser] = None):
        self.engine = engine
        self.parser = parser or ResponseParser()

    async def analyze(self, request: AnalysisRequest) -> DecisionRecord:
        session_key = resolve_session_key(request.identity_metadata(), request.task_id)
        prompt = build_prompt(request.prompt, request.context, include_guidance=True)

        with bound_contextvars(session_key=str(session_key)):
            logger.info("Running synchronous analysis", prompt_length=len(prompt))
            if session_key.shared:
                # Anonymous callers get a one-off conversation instead of the shared one
                response = await self.engine.chat_once(prompt)
            else:
                response = await self.engine.chat(str(session_key), prompt)

        record = self.parser.parse(response)
        logger.info("Analysis finished", promote=record.promote, confidence=record.confidence)
        return record
