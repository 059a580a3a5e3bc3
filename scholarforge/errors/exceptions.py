"""Custom exception types for ScholarForge.

This module defines a hierarchy of exceptions for categorizing errors
throughout the generation pipeline, enabling targeted retry and
failure-recording strategies.
"""

from typing import Any


class ScholarForgeError(Exception):
    """Base exception for all ScholarForge errors.
    
    Attributes:
        message: Human-readable error description
        details: Additional error context
        recoverable: Whether a retry could succeed
    """
    
    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        recoverable: bool = False,
    ):
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable
        super().__init__(message)
    
    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(ScholarForgeError):
    """Missing credential or malformed request setup.
    
    Raised before any network attempt and never retried.
    """
    
    def __init__(
        self,
        message: str,
        setting: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if setting:
            details["setting"] = setting
        super().__init__(message, details, recoverable=False)
        self.setting = setting


class OutputSchemaError(ConfigurationError):
    """Structured-output request without both a schema name and body."""


# =============================================================================
# API-Related Errors
# =============================================================================


class APIError(ScholarForgeError):
    """Error from external API calls.
    
    Base class for upstream failures of the model and literature backends.
    """
    
    def __init__(
        self,
        message: str,
        service: str,
        status_code: int | None = None,
        response_body: str | None = None,
        details: dict[str, Any] | None = None,
        recoverable: bool = False,
    ):
        details = details or {}
        details["service"] = service
        if status_code:
            details["status_code"] = status_code
        if response_body:
            details["response_body"] = response_body[:500]  # Truncate
        super().__init__(message, details, recoverable)
        self.service = service
        self.status_code = status_code
        self.response_body = response_body


class TransientAPIError(APIError):
    """Upstream answered 429 or 5xx; worth another attempt.
    
    Attributes:
        retry_after: Server-requested delay in seconds (if provided)
    """
    
    def __init__(
        self,
        message: str,
        service: str,
        status_code: int,
        retry_after: float | None = None,
        response_body: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if retry_after is not None:
            details["retry_after"] = retry_after
        super().__init__(
            message,
            service=service,
            status_code=status_code,
            response_body=response_body,
            details=details,
            recoverable=True,
        )
        self.retry_after = retry_after


class RateLimitError(TransientAPIError):
    """Rate limit exceeded on an external API (HTTP 429)."""
    
    def __init__(
        self,
        message: str,
        service: str,
        retry_after: float | None = None,
        response_body: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message,
            service=service,
            status_code=429,
            retry_after=retry_after,
            response_body=response_body,
            details=details,
        )


class LLMInvocationError(APIError):
    """Terminal failure of the chat-completion backend.
    
    Attributes:
        hint: Provider-specific remediation advice, if any
    """
    
    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
        hint: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if hint:
            details["hint"] = hint
        super().__init__(
            message,
            service="llm",
            status_code=status_code,
            response_body=response_body,
            details=details,
        )
        self.hint = hint


class LiteratureSearchError(APIError):
    """Terminal failure of the Semantic Scholar API."""
    
    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
        query: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if query:
            details["query"] = query[:200]  # Truncate
        super().__init__(
            message,
            service="semantic_scholar",
            status_code=status_code,
            response_body=response_body,
            details=details,
        )
        self.query = query


# =============================================================================
# Workflow-Level Errors
# =============================================================================


class PhaseError(ScholarForgeError):
    """A pipeline phase failed; the message carries the phase name prefix.
    
    Example:
        >>> str(PhaseError("Section Writing", "LLM invoke failed: 400"))
        '[Section Writing] LLM invoke failed: 400'
    """
    
    def __init__(
        self,
        phase: str,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        details["phase"] = phase
        super().__init__(f"[{phase}] {message}", details, recoverable=False)
        self.phase = phase


class RevisionError(ScholarForgeError):
    """Error while processing a revision request."""
    
    def __init__(
        self,
        message: str,
        request_id: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if request_id is not None:
            details["request_id"] = request_id
        super().__init__(message, details)
        self.request_id = request_id


class RecordNotFoundError(ScholarForgeError):
    """A stored record addressed by id does not exist."""
    
    def __init__(self, kind: str, record_id: int):
        super().__init__(
            f"{kind} {record_id} not found",
            details={"kind": kind, "record_id": record_id},
        )
        self.kind = kind
        self.record_id = record_id


class InvalidStateError(ScholarForgeError):
    """Operation not allowed in the record's current status."""
