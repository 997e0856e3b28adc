"""
Translation of domain errors into HTTP errors for the routes.
"""

from fastapi import HTTPException, status

from avara.db.helpers import DatabaseError
from avara.errors import AvaraError


def to_http_exception(error: Exception) -> HTTPException:
    """Map an exception to {"detail": ...}. Domain messages never carry provider bodies."""
    if isinstance(error, AvaraError):
        return HTTPException(status_code=error.status_code, detail=error.message)
    if isinstance(error, DatabaseError):
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Database error"
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error"
    )
