"""A2A task protocol: lifecycle types, plumbing and the analysis executor."""

from rollout_agent.a2a.executor import AnalysisExecutor
from rollout_agent.a2a.tasks import EventQueue, InMemoryTaskStore, RequestContext, TaskUpdater
from rollout_agent.a2a.types import (
    InvalidTaskTransitionError,
    Message,
    Task,
    TaskError,
    TaskNotCancelableError,
    TaskNotFoundError,
    TaskState,
    TextPart,
)

__all__ = [
    "AnalysisExecutor",
    "EventQueue",
    "InMemoryTaskStore",
    "InvalidTaskTransitionError",
    "Message",
    "RequestContext",
    "Task",
    "TaskError",
    "TaskNotCancelableError",
    "TaskNotFoundError",
    "TaskState",
    "TaskUpdater",
    "TextPart",
]
