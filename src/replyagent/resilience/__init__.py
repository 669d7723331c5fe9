"""Resilience infrastructure for API calls with retry and failure logging."""

from replyagent.resilience.retry import log_final_failure, resilient_api_call

__all__ = [
    "log_final_failure",
    "resilient_api_call",
]
