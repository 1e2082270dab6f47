"""
Error kinds raised by the matching and conversation services.

Routes do not catch these; the application registers one error handler that
renders them as JSON with the status code below.
"""
from sqlalchemy.exc import OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

# Store failures that surface as UnavailableError
STORE_ERRORS = (OperationalError, PoolTimeoutError)


class MatchingError(Exception):
    status_code = 500
    code = 'error'
    retryable = False

    def __init__(self, message=None):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__

    def to_dict(self):
        return {
            'error': self.message,
            'code': self.code,
            'retryable': self.retryable
        }


class NotFoundError(MatchingError):
    """Resource not found"""
    status_code = 404
    code = 'not_found'


class UnauthorizedError(MatchingError):
    """Not a participant of this match"""
    status_code = 403
    code = 'unauthorized'


class InvalidInputError(MatchingError):
    """Invalid input"""
    status_code = 400
    code = 'invalid_input'


class ConflictError(MatchingError):
    """Resource already exists"""
    status_code = 409
    code = 'conflict'


class UnavailableError(MatchingError):
    """Storage is temporarily unavailable, try again"""
    status_code = 503
    code = 'unavailable'
    retryable = True
