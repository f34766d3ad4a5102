"""
Domain errors raised by services and the lifecycle engine.

Routes translate these into HTTP responses; background jobs convert them
into a ``failed`` status write.
"""

from typing import Optional


class DashboardError(Exception):
    """Base class for domain errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class RecordNotFoundError(DashboardError):
    """Raised when a record does not exist or is not owned by the caller."""

    def __init__(self, resource_type: str, resource_id: Optional[str]):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f"{resource_type} {resource_id} not found")


class PreconditionError(DashboardError):
    """Raised when an operation's preconditions are not met."""


class ArtifactValidationError(DashboardError):
    """Raised when an uploaded file has the wrong type or size."""


class StorageError(DashboardError):
    """Raised when the artifact store cannot complete an operation."""
