class AimsError(Exception):
    """Base class for errors surfaced to API clients as ``{"error": message}``."""
    status_code = 400
    default_message = 'Request could not be processed.'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {'error': self.message}


class Unauthorized(AimsError):
    status_code = 401
    default_message = 'Unauthorized'


class Forbidden(AimsError):
    status_code = 403
    default_message = 'You do not have permission to perform this action.'


class NotFound(AimsError):
    status_code = 404
    default_message = 'Not found.'


class ValidationError(AimsError):
    default_message = 'Invalid request.'


class InvalidTransition(AimsError):
    default_message = 'Invalid state.'


class DuplicateApplication(AimsError):
    default_message = 'Active application exists.'


class CapacityExceeded(AimsError):
    default_message = 'Course capacity reached.'


class NoSlotsAvailable(AimsError):
    default_message = 'No slots available.'


class ProjectClosed(AimsError):
    default_message = 'This project is not accepting students.'


class WindowClosed(AimsError):
    status_code = 403
    default_message = 'This window is currently CLOSED.'


class StorageFailure(AimsError):
    status_code = 500
    default_message = 'Internal storage error.'
