"""
Custom Exception Hierarchy - Domain-specific error types

Provides clear, typed exceptions for the failure modes of the analytics engine.
All custom exceptions inherit from DeliberationError for easy catching.

Error classes and how they travel:
- Input-integrity problems (unknown topic, empty topic) are NOT exceptions;
  they surface as empty/neutral results.
- Collaborator unavailability (SemanticAnalysisError and subclasses) is raised
  by adapters and always recovered locally by the enhancement layer.
- Programming-contract violations (InvalidTopicDataError, pydantic validation)
  are the only errors allowed to propagate to callers.
"""

from typing import Optional, Dict, Any


class DeliberationError(Exception):
    """Base exception for all deliberation engine errors

    All custom exceptions inherit from this, enabling:
    - Catch all engine errors with single except clause
    - Distinguish our errors from library errors
    - Add common attributes (context, original_error)
    - Check if error is retryable via is_retryable property
    """

    # Default: errors are not retryable (permanent failure)
    _retryable: bool = False

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.context = context or {}
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        """Check if this error represents a transient failure that should be retried."""
        return self._retryable

    def __str__(self):
        base_msg = super().__str__()
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{base_msg} (context: {context_str})"
        return base_msg


# ========== Database Errors ==========


class DatabaseError(DeliberationError):
    """Database operation failures

    Examples:
    - Query errors
    - Transaction rollbacks
    - Undecodable stored analysis payloads
    """
    pass


class DatabaseConnectionError(DatabaseError):
    """Failed to establish or maintain database connection"""
    _retryable = True


# ========== Semantic Analysis Errors ==========


class SemanticAnalysisError(DeliberationError):
    """Semantic-analysis collaborator failures

    Examples:
    - Hosted model unreachable
    - API rate limit exhausted after retries
    - Request timed out

    Always recovered by falling back to the pattern-based result.
    """

    _retryable = True

    def __init__(
        self,
        message: str,
        capability: Optional[str] = None,
        provider: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        self.capability = capability
        self.provider = provider
        self.original_error = original_error

        context = {}
        if capability:
            context['capability'] = capability
        if provider:
            context['provider'] = provider
        if original_error:
            context['original_error'] = str(original_error)

        super().__init__(message, context)


class SemanticResponseError(SemanticAnalysisError):
    """Collaborator answered, but the payload was empty or malformed

    Examples:
    - No JSON array in model output
    - JSON array of the wrong shape
    """

    _retryable = False


# ========== Configuration Errors ==========


class ConfigurationError(DeliberationError):
    """Configuration or environment errors

    Examples:
    - Missing API key for the selected semantic provider
    - Unknown semantic provider
    """

    def __init__(self, message: str, config_key: Optional[str] = None):
        self.config_key = config_key
        context = {}
        if config_key:
            context['config_key'] = config_key
        super().__init__(message, context)


# ========== Validation Errors ==========


class InvalidTopicDataError(DeliberationError):
    """Malformed topic snapshot handed to the engine

    Examples:
    - Proposition counters disagree with a negative total
    - Alignment referencing a proposition outside the topic
    """

    def __init__(self, message: str, topic_id: Optional[str] = None, field: Optional[str] = None):
        self.topic_id = topic_id
        self.field = field

        context = {}
        if topic_id:
            context['topic_id'] = topic_id
        if field:
            context['field'] = field

        super().__init__(message, context)
