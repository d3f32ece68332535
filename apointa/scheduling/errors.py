"""Error taxonomy shared by the scheduling operations."""

from fastapi import HTTPException, status


class SchedulingError(Exception):
    kind = 'internal'
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={'kind': self.kind, 'message': self.message},
        )


class InvalidRequestError(SchedulingError):
    """Missing or malformed input the caller can correct."""
    kind = 'invalid_request'
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(SchedulingError):
    kind = 'not_found'
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(SchedulingError):
    """The requested slot overlaps an active appointment or falls outside availability."""
    kind = 'conflict'
    status_code = status.HTTP_409_CONFLICT


class InternalError(SchedulingError):
    """Storage failure. Not retried here."""
    kind = 'internal'
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


DATABASE_UNAVAILABLE = 'Database unavailable. Verify DATABASE_URL and database credentials.'
