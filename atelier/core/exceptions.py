"""
Error Taxonomy
==============

Exceptions raised by the catalog, storage and auth layers. Each carries the HTTP
status and client-safe message the JSON error handlers render.
"""


class AtelierError(Exception):
    """Base class for errors that map to a JSON error response."""

    status_code = 500
    message = 'Server error'

    def __init__(self, message=None, errors=None):
        super().__init__(message or self.message)
        if message:
            self.message = message
        self.errors = errors

    def to_dict(self):
        body = {'message': self.message}
        if self.errors:
            body['errors'] = self.errors
        return body


class ValidationError(AtelierError):
    """One or more fields failed validation. `errors` lists every issue."""

    status_code = 400
    message = 'Validation failed'

    def __init__(self, errors, message=None):
        super().__init__(message, errors=list(errors))

    @classmethod
    def for_field(cls, field, message):
        return cls([{'field': field, 'message': message}])


class AuthenticationError(AtelierError):
    status_code = 401
    message = 'Authentication required'


class NotFoundOrForbidden(AtelierError):
    """Record is missing or belongs to someone else.

    Both cases produce the same response so callers cannot test for the
    existence of records they do not own. `reason` is kept for logging only.
    """

    status_code = 404
    message = 'Project not found or unauthorized'

    def __init__(self, message=None, reason='missing'):
        super().__init__(message)
        self.reason = reason


class UnsupportedMediaType(AtelierError):
    status_code = 400
    message = 'Only image files are allowed'


class PayloadTooLarge(AtelierError):
    status_code = 413
    message = 'File too large'


class StorageError(AtelierError):
    status_code = 500
    message = 'Failed to store image'


class OriginNotAllowed(AtelierError):
    status_code = 403
    message = 'Not allowed by CORS'
