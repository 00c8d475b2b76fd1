"""Task lifecycle plumbing: event queue, task store and updater."""

import asyncio
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

import structlog

from rollout_agent.a2a.types import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATES,
    Artifact,
    InvalidTaskTransitionError,
    Message,
    Part,
    Task,
    TaskArtifactUpdateEvent,
    TaskState,
    TaskStatus,
    TaskStatusUpdateEvent,
)

logger = structlog.get_logger(__name__)

Event = Union[TaskStatusUpdateEvent, TaskArtifactUpdateEvent]


class EventQueue:
    """Unbounded queue of task events.

    Publishing never suspends, so a state change is visible to everyone
    sharing the Task object before the publisher awaits anything else.
    """

    def __init__(self):
        self._queue: "asyncio.Queue[Event]" = asyncio.Queue()

    def enqueue_event(self, event: Event) -> None:
        self._queue.put_nowait(event)

    def drain(self) -> List[Event]:
        """Remove and return every queued event."""
        events = []
        while not self._queue.empty():
            events.append(self._queue.get_nowait())
        return events


class InMemoryTaskStore:
    """Process-local task registry. Tasks are lost on restart.

    Each task id also owns one event queue, shared by every request on it.
    """

    def __init__(self):
        self._tasks: Dict[str, Task] = {}
        self._queues: Dict[str, EventQueue] = {}

    def save(self, task: Task) -> None:
        self._tasks[task.id] = task

    def get(self, task_id: str) -> Optional[Task]:
        return self._tasks.get(task_id)

    def queue_for(self, task_id: str) -> EventQueue:
        if task_id not in self._queues:
            self._queues[task_id] = EventQueue()
        return self._queues[task_id]


@dataclass
class RequestContext:
    """Everything the executor gets for one request.

    ``task`` is the pre-existing task the message belongs to, if any. For a
    new request it is None and the task is created under ``task_id``.
    """

    message: Optional[Message] = None
    task: Optional[Task] = None
    task_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self):
        if self.task is not None:
            self.task_id = self.task.id

    @property
    def metadata(self) -> dict:
        if self.message is None:
            return {}
        return self.message.metadata or {}


class TaskUpdater:
    """Applies lifecycle transitions to one task and publishes them.

    Every transition is validated against the state machine; an illegal move
    raises InvalidTaskTransitionError and leaves the task untouched.
    """

    def __init__(
        self,
        context: RequestContext,
        event_queue: Optional[EventQueue] = None,
        task_store: Optional[InMemoryTaskStore] = None,
    ):
        self.event_queue = event_queue
        if context.task is not None:
            self.task = context.task
        else:
            self.task = Task(id=context.task_id)
            if task_store is not None:
                task_store.save(self.task)

    def _publish(self, event: Event) -> None:
        if self.event_queue is not None:
            self.event_queue.enqueue_event(event)

    def _transition(self, state: TaskState, message: Optional[str] = None) -> None:
        current = self.task.state
        if state not in ALLOWED_TRANSITIONS[current]:
            raise InvalidTaskTransitionError(self.task.id, current, state)

        self.task.history.append(self.task.status)
        self.task.status = TaskStatus(state=state, message=message)
        logger.debug("Task state changed", task_id=self.task.id, from_state=current.value, to_state=state.value)
        self._publish(
            TaskStatusUpdateEvent(task_id=self.task.id, status=self.task.status, final=state in TERMINAL_STATES)
        )

    def submit(self) -> None:
        self._transition(TaskState.SUBMITTED)

    def start_work(self) -> None:
        """Move to WORKING.

        A task that is already WORKING has an execution in flight, so a second
        start raises InvalidTaskTransitionError.
        """
        self._transition(TaskState.WORKING)

    def add_artifact(self, parts: List[Part], name: Optional[str] = None) -> Artifact:
        """Attach the task's single result artifact."""
        if self.task.is_terminal:
            raise InvalidTaskTransitionError(self.task.id, self.task.state, self.task.state)
        if self.task.artifacts:
            raise ValueError(f"Task {self.task.id} already has an artifact")

        artifact = Artifact(parts=list(parts), name=name)
        self._publish(TaskArtifactUpdateEvent(task_id=self.task.id, artifact=artifact))
        self.task.artifacts.append(artifact)
        return artifact

    def complete(self) -> None:
        self._transition(TaskState.COMPLETED)

    def cancel(self) -> None:
        self._transition(TaskState.CANCELED)

    def failed(self, message: Optional[str] = None) -> None:
        self._transition(TaskState.FAILED, message=message)
