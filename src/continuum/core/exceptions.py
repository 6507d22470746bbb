"""
Core Exceptions for the Continuum memory system.

The exceptions are organized into three categories that callers handle
differently:

- ValidationError: a malformed memory record, rejected before scoring
- ConfigurationError: an invalid weight vector or tier table, fatal at construction
- PersistenceError: a failed store operation for a single memory, recorded in the
  cycle report while processing continues

Decision outcomes (kept, below threshold, too young) are plain values and are
never represented as exceptions.
"""

import logging
from typing import Any, Dict, Optional, Sequence

logger = logging.getLogger(__name__)


class ContinuumError(Exception):
    """Base exception class for all Continuum errors."""

    def __init__(self, message: str, error_code: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        """
        Initialize a Continuum error.

        Args:
            message: Human-readable error message
            error_code: Optional error code for programmatic handling
            context: Optional context information for debugging
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}

        logger.debug(f"ContinuumError: {message}", extra={
            "error_code": error_code,
            "context": context
        })


class ValidationError(ContinuumError):
    """Raised when a memory record is missing required fields or holds invalid values."""

    def __init__(self, message: str, memory_id: Optional[str] = None, errors: Optional[Sequence[Any]] = None):
        self.memory_id = memory_id
        self.errors = list(errors or [])
        super().__init__(
            message,
            error_code="VALIDATION_ERROR",
            context={"memory_id": memory_id, "errors": self.errors}
        )


class ConfigurationError(ContinuumError):
    """Raised when scoring weights or tier tables are invalid."""

    def __init__(self, message: str, setting: Optional[str] = None):
        self.setting = setting
        super().__init__(
            message,
            error_code="CONFIGURATION_ERROR",
            context={"setting": setting}
        )


class InvalidTierError(ContinuumError):
    """Raised when an operation is requested for a tier that does not support it."""

    def __init__(self, tier: Any, message: Optional[str] = None):
        self.tier = tier
        super().__init__(
            message or f"Invalid tier for this operation: {tier}",
            error_code="INVALID_TIER",
            context={"tier": str(tier)}
        )


class PersistenceError(ContinuumError):
    """Raised when a store operation fails for a single memory."""

    def __init__(
        self,
        operation: str,
        memory_id: Optional[str] = None,
        message: Optional[str] = None,
        cause: Optional[BaseException] = None,
        completed_steps: Optional[Sequence[str]] = None,
        error_code: str = "PERSISTENCE_ERROR",
    ):
        """
        Initialize a persistence error.

        Args:
            operation: The store operation that failed
            memory_id: The memory the operation was applied to
            message: Optional custom message
            cause: Optional underlying exception that caused this error
            completed_steps: Mutation steps that finished before the failure
        """
        self.operation = operation
        self.memory_id = memory_id
        self.cause = cause
        self.completed_steps = list(completed_steps or [])
        default_message = f"Store operation '{operation}' failed"
        if memory_id:
            default_message += f" for memory '{memory_id}'"
        if cause:
            default_message += f": {cause}"

        super().__init__(
            message or default_message,
            error_code=error_code,
            context={
                "operation": operation,
                "memory_id": memory_id,
                "cause": str(cause) if cause else None,
                "completed_steps": self.completed_steps,
            }
        )


class MemoryNotFoundError(PersistenceError):
    """Raised when ``update``/``move``/``delete`` target a memory id the store does not hold."""

    def __init__(self, memory_id: str, operation: str = "lookup", message: Optional[str] = None):
        super().__init__(
            operation,
            memory_id=memory_id,
            message=message or f"Memory with ID '{memory_id}' not found",
            error_code="MEMORY_NOT_FOUND",
        )


class MemoryExistsError(PersistenceError):
    """Raised when inserting a memory id that already exists in the destination tier."""

    def __init__(self, memory_id: str, tier: Any, operation: str = "insert"):
        self.tier = tier
        super().__init__(
            operation,
            memory_id=memory_id,
            message=f"Memory with ID '{memory_id}' already exists in tier {tier}",
            error_code="MEMORY_EXISTS",
        )


__all__ = [
    "ConfigurationError",
    "ContinuumError",
    "InvalidTierError",
    "MemoryExistsError",
    "MemoryNotFoundError",
    "PersistenceError",
    "ValidationError",
]
