"""Error handling for ScholarForge.

This module provides:
- Custom exception types for configuration, upstream and phase errors
- RetryPolicy configurations shared by the external clients
"""

from scholarforge.errors.exceptions import (
    ScholarForgeError,
    ConfigurationError,
    OutputSchemaError,
    APIError,
    TransientAPIError,
    RateLimitError,
    LLMInvocationError,
    LiteratureSearchError,
    PhaseError,
    RevisionError,
    RecordNotFoundError,
    InvalidStateError,
)
from scholarforge.errors.policies import (
    RetryPolicy,
    retry_async,
    parse_retry_after,
    create_llm_retry_policy,
    create_literature_retry_policy,
)

__all__ = [
    # Exceptions
    "ScholarForgeError",
    "ConfigurationError",
    "OutputSchemaError",
    "APIError",
    "TransientAPIError",
    "RateLimitError",
    "LLMInvocationError",
    "LiteratureSearchError",
    "PhaseError",
    "RevisionError",
    "RecordNotFoundError",
    "InvalidStateError",
    # Policies
    "RetryPolicy",
    "retry_async",
    "parse_retry_after",
    "create_llm_retry_policy",
    "create_literature_retry_policy",
]
