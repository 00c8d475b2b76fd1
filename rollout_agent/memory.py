"""Conversation memory identity resolution.

The Kubernetes agent keeps one conversation thread per session key. The key
is derived from the request metadata with a fixed priority order:

1. ``memoryId`` from message metadata
2. ``userId`` from message metadata
3. ``sessionId`` from message metadata
4. Task ID (fallback for backward compatibility)
5. ``"default"`` (last resort)

Falling back to the task ID means history is lost between requests, and the
``"default"`` key shares history between every caller. Both are logged as
warnings and flagged on the returned key.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_SESSION_KEY = "default"


class SessionKeySource(Enum):
    """Where a session key came from, highest priority first."""

    MEMORY_ID = "memoryId"
    USER_ID = "userId"
    SESSION_ID = "sessionId"
    TASK_ID = "taskId"
    DEFAULT = "default"


# Metadata fields checked in priority order
METADATA_SOURCES = (
    SessionKeySource.MEMORY_ID,
    SessionKeySource.USER_ID,
    SessionKeySource.SESSION_ID,
)


@dataclass(frozen=True)
class SessionKey:
    """Key scoping the agent's conversation memory."""

    value: str
    source: SessionKeySource

    @property
    def degraded(self) -> bool:
        """True when the key will not carry history across requests as the caller expects."""
        return self.source in (SessionKeySource.TASK_ID, SessionKeySource.DEFAULT)

    @property
    def shared(self) -> bool:
        """True when the key is shared by all callers that sent no identity."""
        return self.source is SessionKeySource.DEFAULT

    def __str__(self) -> str:
        return self.value


def _present(value: Any) -> bool:
    return value is not None and str(value) != ""


def resolve_session_key(
    metadata: Optional[Mapping[str, Any]], task_id: Optional[str] = None
) -> SessionKey:
    """Resolve the session key for a request.

    Args:
        metadata: Message metadata (may be None)
        task_id: ID of the task already associated with this exchange, if any

    Returns:
        SessionKey for the highest-priority signal present
    """
    if metadata:
        for source in METADATA_SOURCES:
            value = metadata.get(source.value)
            if _present(value):
                logger.debug("Using session key from metadata", source=source.value, session_key=str(value))
                return SessionKey(str(value), source)

    if _present(task_id):
        logger.warning(
            "No persistent identifier found in metadata, falling back to task ID. "
            "This will NOT maintain conversation history across requests.",
            task_id=task_id,
        )
        return SessionKey(str(task_id), SessionKeySource.TASK_ID)

    logger.warning(
        "No memory identifier found, using 'default'. "
        "Conversation history will be shared across all sessions."
    )
    return SessionKey(DEFAULT_SESSION_KEY, SessionKeySource.DEFAULT)
