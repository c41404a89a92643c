# drainr/errors.py
"""
Error taxonomy for the quote service.

Services raise these; the application factory registers a single handler that
turns any ApiError into a JSON body of the form
``{"error": <code>, "message": <text>, ...extra}`` with the matching status.
"""


class ApiError(Exception):
    """Base class for errors that map directly onto an HTTP response."""

    status_code = 500
    default_code = 'server_error'
    default_message = 'An unexpected error occurred'

    def __init__(self, code=None, message=None, status_code=None, **extra):
        self.code = code or self.default_code
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra
        super().__init__(f"{self.code}: {self.message}")

    def to_dict(self):
        body = {'error': self.code, 'message': self.message}
        body.update(self.extra)
        return body


class ValidationError(ApiError):
    status_code = 400
    default_code = 'invalid_request'
    default_message = 'The request is missing or has invalid fields'


class Unauthorized(ApiError):
    status_code = 401
    default_code = 'unauthorized'
    default_message = 'A valid bearer credential is required'


class NotFound(ApiError):
    status_code = 404
    default_code = 'not_found'
    default_message = 'The requested quote could not be found'


class Gone(ApiError):
    status_code = 410
    default_code = 'expired'
    default_message = 'This quote is no longer available'


class UpstreamError(ApiError):
    """A database or third-party call failed. ``detail`` is opaque to callers."""

    status_code = 502
    default_code = 'upstream_error'
    default_message = 'An upstream service failed'
