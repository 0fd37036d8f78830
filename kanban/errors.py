"""
Error taxonomy shared by services and routes.
"""


class KanbanError(Exception):
    """Base class for errors that map onto an HTTP status."""
    status_code = 500
    default_message = 'Server error'

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self) -> dict:
        return {'error': self.message}


class ValidationError(KanbanError):
    status_code = 400
    default_message = 'Invalid input'


class Unauthorized(KanbanError):
    status_code = 401
    default_message = 'Authentication required'


class Forbidden(KanbanError):
    status_code = 403
    default_message = 'Unauthorized'


class NotFound(KanbanError):
    status_code = 404
    default_message = 'Not found'


class Conflict(KanbanError):
    # Duplicate names are reported as bad input, not 409
    status_code = 400
    default_message = 'Already exists'


class InternalError(KanbanError):
    status_code = 500
