"""Failures surfaced to the storefront UI as inline messages.

Every error carries the HTTP status and a short machine-readable code; routes
render them as ``{'error': message, 'code': code}`` and never let them escape
a request.
"""


class StorefrontError(Exception):
    status = 500
    code = 'internal'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)

    default_message = 'Something went wrong'

    @property
    def message(self):
        return str(self)

    def to_dict(self):
        return {'error': self.message, 'code': self.code}


class ValidationError(StorefrontError):
    """Malformed local input, rejected before any network call."""

    status = 400
    code = 'validation'
    default_message = 'Invalid input'


class ForbiddenError(StorefrontError):
    status = 403
    code = 'forbidden'
    default_message = 'Not allowed'


class ConflictError(StorefrontError):
    """The action no longer fits the current state of the record."""

    status = 409
    code = 'conflict'
    default_message = 'This action is no longer available'


class AuthError(StorefrontError):
    status = 401
    code = 'unauthorized'
    default_message = 'Authentication required'


class NetworkError(StorefrontError):
    status = 502
    code = 'network'
    default_message = 'Could not reach the marketplace. Please try again.'


class ApiError(StorefrontError):
    """Non-2xx response from the marketplace API."""

    code = 'upstream'

    def __init__(self, status, body=''):
        self.status = status
        self.body = body or ''
        super().__init__(self.body or f'HTTP {status}')

    @property
    def is_not_found(self):
        return self.status in (403, 404)


class SchemaError(StorefrontError):
    """Marketplace API payload that does not match the expected schema."""

    status = 502
    code = 'schema'

    def __init__(self, model_name, errors):
        self.model_name = model_name
        self.errors = errors
        super().__init__(f'Unexpected {model_name} payload from the marketplace')


class NotFoundError(StorefrontError):
    status = 404
    code = 'not_found'
    default_message = 'Not found'
