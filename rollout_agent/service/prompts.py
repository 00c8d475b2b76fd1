"""Prompt assembly for the Kubernetes agent."""

from typing import Any, Mapping, Optional

from jinja2 import Template

ANALYSIS_PROMPT_TEMPLATE = Template(
    """{{ message }}
{% if context %}

Context:
{% for key, value in context.items() if value is not none -%}
- {{ key }}: {{ value }}
{% endfor %}
{%- endif %}
{% if include_guidance %}

You have access to Kubernetes tools. Use them to gather information:
1. Use get_logs to fetch pod logs for analysis
2. Use get_events to see recent events
3. Use debug_pod to check pod status
4. Use get_metrics and inspect_resources to compare resource usage
5. Compare stable vs canary pod behavior

Provide a structured response with markdown sections:
## Analysis
Detailed analysis text
## Root Cause
Identified root cause
## Remediation
Suggested remediation steps
## PR
GitHub PR link if one was created, as "PR: <url>"
## Decision
State "promote" to promote the canary, or "do not promote" to abort
## Confidence
Confidence level 0-100, as "Confidence: <n>"
{% endif %}""",
    trim_blocks=True,
)


def build_prompt(
    message: str,
    context: Optional[Mapping[str, Any]] = None,
    include_guidance: bool = True,
) -> str:
    """Build the prompt sent to the agent.

    Args:
        message: The caller's request text
        context: Optional key/value pairs listed under "Context:" (None values are skipped)
        include_guidance: Append tool usage and response format instructions
    """
    return ANALYSIS_PROMPT_TEMPLATE.render(
        message=message.strip(),
        context=dict(context) if context else None,
        include_guidance=include_guidance,
    ).strip()
