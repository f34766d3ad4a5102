"""Translation of domain errors into HTTP responses."""

from fastapi import HTTPException

from ..exceptions import (
    ArtifactValidationError,
    DashboardError,
    PreconditionError,
    RecordNotFoundError,
)


def to_http_exception(error: DashboardError) -> HTTPException:
    """Map a domain error onto the status code the client should see."""
    if isinstance(error, (PreconditionError, ArtifactValidationError)):
        return HTTPException(status_code=400, detail=error.message)
    if isinstance(error, RecordNotFoundError):
        return HTTPException(status_code=404, detail=error.message)
    return HTTPException(status_code=500, detail=error.message)
