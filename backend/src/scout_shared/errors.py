"""
Error taxonomy for the scout job workflow.

Every error carries a stable ``kind`` and the HTTP status handlers answer
with. Messages are safe to show to callers.
"""


class ScoutError(Exception):
    """Base class for workflow errors."""
    kind = 'UnexpectedError'
    status_code = 500

    def __init__(self, message: str = 'Internal Server Error'):
        super().__init__(message)
        self.message = message

    def to_body(self) -> dict:
        return {'error': self.message, 'kind': self.kind}


class ValidationError(ScoutError):
    """Malformed input: missing answers, too little media, bad step references."""
    kind = 'ValidationError'
    status_code = 400


class AuthenticationError(ScoutError):
    """No verified caller on the request."""
    kind = 'AuthenticationError'
    status_code = 401

    def __init__(self, message: str = 'Unauthorized'):
        super().__init__(message)


class AuthorizationError(ScoutError):
    """Caller lacks the tenant membership or role for the operation."""
    kind = 'AuthorizationError'
    status_code = 403

    def __init__(self, message: str = 'Forbidden'):
        super().__init__(message)


class NotFoundError(ScoutError):
    kind = 'NotFoundError'
    status_code = 404


class ConflictError(ScoutError):
    """
    The request is well formed but the current state does not allow it.

    ``reason`` separates a client asking for something illegal from a caller
    that lost a race against a concurrent update of the same record.
    """
    kind = 'ConflictError'
    status_code = 409

    ILLEGAL_TRANSITION = 'illegal_transition'
    CONCURRENT_UPDATE = 'concurrent_update'

    def __init__(self, message: str, reason: str = ILLEGAL_TRANSITION):
        super().__init__(message)
        self.reason = reason

    def to_body(self) -> dict:
        body = super().to_body()
        body['reason'] = self.reason
        return body


class ConcurrentUpdateError(ConflictError):
    """Another caller changed the record between our read and our conditional write."""

    def __init__(self, message: str):
        super().__init__(message, reason=ConflictError.CONCURRENT_UPDATE)


class StorageError(ScoutError):
    """Blob store write or read failure."""
    kind = 'StorageError'
    status_code = 500


class UnexpectedError(ScoutError):
    kind = 'UnexpectedError'
    status_code = 500
