# services/errors.py
"""
Failure taxonomy shared by the services and rendered by the API layer.

Each error carries the HTTP status it maps to and a stable ``kind`` that
clients can switch on.
"""


class ServiceError(Exception):
    status_code = 500
    kind = "server_error"
    default_message = "Server error"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ServiceError):
    status_code = 400
    kind = "validation_error"
    default_message = "Invalid request"


class AuthError(ServiceError):
    status_code = 401
    kind = "auth_error"
    default_message = "Invalid credentials"


class Unauthenticated(AuthError):
    kind = "unauthenticated"
    default_message = "Not authenticated"


class Forbidden(ServiceError):
    status_code = 403
    kind = "forbidden"
    default_message = "Not authorized"


class NotFound(ServiceError):
    status_code = 404
    kind = "not_found"
    default_message = "Report not found"


class ServerError(ServiceError):
    pass
