"""
Application error hierarchy

Every error carries a stable machine-readable code and an HTTP status so the
API layer can render it without inspecting the message.
"""


class AppError(Exception):
    """Unexpected internal fault unless a subclass says otherwise"""
    status_code = 500
    code = 'INTERNAL_ERROR'

    def __init__(self, message='Internal server error', status_code=None, code=None, details=None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        self.details = details
        super().__init__(self.message)

    def to_dict(self):
        payload = {
            'error': self.code,
            'code': self.code,
            'message': self.message,
            'status_code': self.status_code,
        }
        if self.details:
            payload['details'] = self.details
        return payload


class NotFoundError(AppError):
    status_code = 404
    code = 'NOT_FOUND'

    def __init__(self, message='Resource not found', **kwargs):
        super().__init__(message, **kwargs)


class ValidationError(AppError):
    """Malformed input, insufficient quantity or a cross-reference mismatch"""
    status_code = 400
    code = 'VALIDATION_ERROR'

    def __init__(self, message='Validation failed', details=None, **kwargs):
        super().__init__(message, details=details, **kwargs)


class ConflictError(AppError):
    status_code = 409
    code = 'CONFLICT'

    def __init__(self, message='The request conflicts with the current state of the resource', **kwargs):
        super().__init__(message, **kwargs)


class UnauthorizedError(AppError):
    status_code = 401
    code = 'UNAUTHORIZED'

    def __init__(self, message='Authentication required', **kwargs):
        super().__init__(message, **kwargs)


class ForbiddenError(AppError):
    status_code = 403
    code = 'FORBIDDEN'

    def __init__(self, message='Access forbidden', **kwargs):
        super().__init__(message, **kwargs)
