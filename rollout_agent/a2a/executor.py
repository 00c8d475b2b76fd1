"""A2A executor running Kubernetes analyses as lifecycle-tracked tasks."""

import asyncio
from typing import Optional

import structlog
from structlog.contextvars import bound_contextvars

from rollout_agent.a2a.tasks import EventQueue, InMemoryTaskStore, RequestContext, TaskUpdater
from rollout_agent.a2a.types import DataPart, TaskNotCancelableError, TaskNotFoundError, TextPart
from rollout_agent.agents.kubernetes_agent import ReasoningEngine
from rollout_agent.memory import resolve_session_key
from rollout_agent.model import DecisionRecord
from rollout_agent.service.formatter import format_decision
from rollout_agent.service.parser import ResponseParser
from rollout_agent.service.policy import error_decision
from rollout_agent.service.prompts import build_prompt

logger = structlog.get_logger(__name__)

ARTIFACT_NAME = "kubernetes-analysis"


class AnalysisExecutor:
    """Executes analysis requests against the reasoning engine.

    A task goes SUBMITTED (new tasks only), WORKING, then COMPLETED with one
    artifact. Engine and interpretation failures still complete the task,
    carrying the failure-safe decision. A cancel that lands while the engine
    is running wins: the engine's answer is dropped. A follow-up on a task
    that is still WORKING is rejected before the engine is called.

    Attributes:
        engine: Reasoning engine answering the prompts
        parser: Turns the engine's text into a DecisionRecord
        task_store: Registry new tasks are saved to, if any
        promote_on_error: Verdict used by the failure-safe decision
    """

    def __init__(
        self,
        engine: ReasoningEngine,
        parser: Optional[ResponseParser] = None,
        task_store: Optional[InMemoryTaskStore] = None,
        promote_on_error: bool = True,
    ):
        self.engine = engine
        self.parser = parser or ResponseParser()
        self.task_store = task_store
        self.promote_on_error = promote_on_error

    async def _analyze(self, context: RequestContext) -> DecisionRecord:
        text = context.message.text() if context.message is not None else ""
        metadata = context.metadata

        # Only a task the caller already had counts as an identity signal
        existing_task_id = context.task.id if context.task is not None else None
        session_key = resolve_session_key(metadata, existing_task_id)

        with bound_contextvars(session_key=str(session_key)):
            prompt = build_prompt(text, metadata.get("context"), include_guidance=False)
            logger.info("Invoking Kubernetes agent", prompt_length=len(prompt))
            response = await self.engine.chat(str(session_key), prompt)
            logger.debug("Agent response received", response_length=len(response or ""))
            return self.parser.parse(response)

    async def execute(self, context: RequestContext, event_queue: Optional[EventQueue] = None):
        """Run the analysis for one request and record the outcome on its task.

        Returns:
            The task, in its final state
        """
        updater = TaskUpdater(context, event_queue, self.task_store)
        task = updater.task

        with bound_contextvars(task_id=task.id):
            logger.info("Processing A2A request", new_task=context.task is None)
            if context.task is None:
                updater.submit()
            updater.start_work()

            try:
                record = await self._analyze(context)
            except asyncio.CancelledError:
                if not task.is_terminal:
                    updater.cancel()
                raise
            except Exception as e:
                logger.exception("Error processing Kubernetes analysis request")
                record = error_decision(e, promote_on_error=self.promote_on_error)

            if task.is_terminal:
                logger.warning("Task finished during analysis, discarding result", state=task.state.value)
                return task

            try:
                updater.add_artifact(
                    [TextPart(format_decision(record)), DataPart(record.to_dict())],
                    name=ARTIFACT_NAME,
                )
                updater.complete()
            except Exception as e:
                logger.error("Failed to publish analysis result", error=str(e))
                if not task.is_terminal:
                    updater.failed(str(e))
                raise

            logger.info("Analysis completed", promote=record.promote, confidence=record.confidence)
            return task

    async def cancel(self, context: RequestContext, event_queue: Optional[EventQueue] = None):
        """Cancel the task in context.

        Raises:
            TaskNotFoundError: If the context has no task
            TaskNotCancelableError: If the task already reached a terminal state
        """
        task = context.task
        if task is None:
            raise TaskNotFoundError(context.task_id)
        if task.is_terminal:
            raise TaskNotCancelableError(task.id, task.state)

        TaskUpdater(context, event_queue).cancel()
        logger.info("Task canceled", task_id=task.id)
        return task
