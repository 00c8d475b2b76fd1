"""Decision records reported when the analysis itself fails.

A failed analysis never blocks the rollout by default: the verdict is
"promote" with zero confidence, so controllers that gate on confidence can
still tell it apart from a real approval. ``promote_on_error=False`` turns
this into fail-closed.
"""

from rollout_agent.model import DecisionRecord

ERROR_ROOT_CAUSE = "Analysis failed"
ERROR_REMEDIATION = "Unable to provide remediation"
SYSTEM_ERROR_REMEDIATION = "Unable to provide remediation due to system error"
ERROR_CONFIDENCE = 0


def error_decision(error: BaseException, promote_on_error: bool = True) -> DecisionRecord:
    """Decision for a fault while calling the agent or parsing its answer."""
    return DecisionRecord(
        analysis=f"Error processing Kubernetes analysis request: {error}",
        root_cause=ERROR_ROOT_CAUSE,
        remediation=ERROR_REMEDIATION,
        pr_link=None,
        promote=promote_on_error,
        confidence=ERROR_CONFIDENCE,
    )


def system_error_decision(error: BaseException, promote_on_error: bool = True) -> DecisionRecord:
    """Decision for an unhandled exception caught at the HTTP boundary."""
    return DecisionRecord(
        analysis=f"Unhandled error: {error}",
        root_cause=f"System error: {type(error).__name__}",
        remediation=SYSTEM_ERROR_REMEDIATION,
        pr_link=None,
        promote=promote_on_error,
        confidence=ERROR_CONFIDENCE,
    )
