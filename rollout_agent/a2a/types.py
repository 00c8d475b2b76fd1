"""Task, message and event types for the A2A task protocol."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class TaskState(Enum):
    """Lifecycle states of an analysis task."""

    CREATED = "created"
    SUBMITTED = "submitted"
    WORKING = "working"
    COMPLETED = "completed"
    CANCELED = "canceled"
    FAILED = "failed"


TERMINAL_STATES = frozenset({TaskState.COMPLETED, TaskState.CANCELED, TaskState.FAILED})

# Tasks only move forward; terminal states have no outgoing transitions.
ALLOWED_TRANSITIONS = {
    TaskState.CREATED: frozenset({TaskState.SUBMITTED, TaskState.CANCELED, TaskState.FAILED}),
    TaskState.SUBMITTED: frozenset({TaskState.WORKING, TaskState.CANCELED, TaskState.FAILED}),
    TaskState.WORKING: frozenset({TaskState.COMPLETED, TaskState.CANCELED, TaskState.FAILED}),
    TaskState.COMPLETED: frozenset(),
    TaskState.CANCELED: frozenset(),
    TaskState.FAILED: frozenset(),
}


class TaskError(Exception):
    """Base class for task protocol errors."""


class TaskNotFoundError(TaskError):
    """Raised when a task ID is unknown."""

    def __init__(self, task_id: Optional[str]):
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class TaskNotCancelableError(TaskError):
    """Raised when canceling a task that already reached a terminal state."""

    def __init__(self, task_id: str, state: TaskState):
        super().__init__(f"Task {task_id} is not cancelable (state: {state.value})")
        self.task_id = task_id
        self.state = state


class InvalidTaskTransitionError(TaskError):
    """Raised on a lifecycle transition the state machine does not allow."""

    def __init__(self, task_id: str, current: TaskState, requested: TaskState):
        super().__init__(f"Task {task_id} cannot move from {current.value} to {requested.value}")
        self.task_id = task_id
        self.current = current
        self.requested = requested


@dataclass
class TextPart:
    text: str
    kind: str = "text"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "text": self.text}


@dataclass
class DataPart:
    data: Dict[str, Any]
    kind: str = "data"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "data": self.data}


Part = Union[TextPart, DataPart]


@dataclass
class Message:
    """Inbound A2A message: text parts plus free-form metadata."""

    parts: List[Part] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    message_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    role: str = "user"

    def text(self) -> str:
        """Concatenate the text parts, one per line."""
        return "\n".join(part.text for part in self.parts if isinstance(part, TextPart)).strip()


@dataclass
class Artifact:
    parts: List[Part]
    name: Optional[str] = None
    artifact_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "artifactId": self.artifact_id,
            "name": self.name,
            "parts": [part.to_dict() for part in self.parts],
        }


@dataclass
class TaskStatus:
    state: TaskState
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"state": self.state.value, "timestamp": self.timestamp, "message": self.message}


@dataclass
class Task:
    """One unit of lifecycle-tracked work. Never reused once terminal."""

    id: str
    status: TaskStatus = field(default_factory=lambda: TaskStatus(TaskState.CREATED))
    artifacts: List[Artifact] = field(default_factory=list)
    history: List[TaskStatus] = field(default_factory=list)

    @property
    def state(self) -> TaskState:
        return self.status.state

    @property
    def is_terminal(self) -> bool:
        return self.status.state in TERMINAL_STATES

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "status": self.status.to_dict(),
            "artifacts": [artifact.to_dict() for artifact in self.artifacts],
            "history": [status.to_dict() for status in self.history],
        }


@dataclass
class TaskStatusUpdateEvent:
    task_id: str
    status: TaskStatus
    final: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "status-update", "taskId": self.task_id, "status": self.status.to_dict(), "final": self.final}


@dataclass
class TaskArtifactUpdateEvent:
    task_id: str
    artifact: Artifact

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "artifact-update", "taskId": self.task_id, "artifact": self.artifact.to_dict()}
