# Rollout agent request/response models
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_SECTION_TEXT = "See analysis"


class DecisionRecord(BaseModel):
    """Structured verdict derived from the agent's free-form analysis."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    analysis: str = ""  # Raw agent output, or an error explanation
    root_cause: str = Field(default=DEFAULT_SECTION_TEXT, min_length=1, alias="rootCause")
    remediation: str = Field(default=DEFAULT_SECTION_TEXT, min_length=1)
    pr_link: Optional[str] = Field(default=None, alias="prLink")  # Fix PR, when one was found
    promote: bool = True  # True to continue the rollout, False to abort/rollback
    confidence: int = Field(default=80, ge=0, le=100)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase wire representation."""
        return self.model_dump(by_alias=True)


class AnalysisRequest(BaseModel):
    """Request body for the synchronous analysis endpoint."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    prompt: str = ""
    context: Optional[Dict[str, Any]] = None  # Interpolated into the prompt as "- key: value"
    user_id: Optional[str] = Field(default=None, alias="userId")
    memory_id: Optional[str] = Field(default=None, alias="memoryId")
    session_id: Optional[str] = Field(default=None, alias="sessionId")
    task_id: Optional[str] = Field(default=None, alias="taskId")  # Prior task, for continuity

    @field_validator("user_id", "memory_id", "session_id", "task_id", mode="before")
    @classmethod
    def _stringify_ids(cls, value: Any) -> Any:
        # Numeric ids are accepted, as in A2A message metadata
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    def identity_metadata(self) -> Dict[str, Any]:
        """Identity signals in the same shape as A2A message metadata."""
        return {
            "memoryId": self.memory_id,
            "userId": self.user_id,
            "sessionId": self.session_id,
        }
