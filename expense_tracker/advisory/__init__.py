"""AI advisory: prompt, transports, client and refresh state."""

from expense_tracker.advisory.client import AdvisoryClient, parse_response
from expense_tracker.advisory.prompt import build_analysis_prompt
from expense_tracker.advisory.state import AdvisoryProjection
from expense_tracker.advisory.transport import (
    CompletionTransport,
    GeminiCompletionTransport,
    HttpCompletionTransport,
    create_transport,
)

__all__ = [
    "AdvisoryClient",
    "AdvisoryProjection",
    "CompletionTransport",
    "GeminiCompletionTransport",
    "HttpCompletionTransport",
    "build_analysis_prompt",
    "create_transport",
    "parse_response",
]
