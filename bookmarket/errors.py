from enum import Enum


class ErrorKind(str, Enum):
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    SERVER = "server"


STATUS_CODES = {
    ErrorKind.AUTHENTICATION: 401,
    ErrorKind.AUTHORIZATION: 403,
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.SERVER: 500,
}


class ServiceError(Exception):
    """Base for every failure a handler reports to the client.

    The kind decides the HTTP status; the message is passed through to the
    response body unchanged.
    """

    kind = ErrorKind.SERVER

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def status_code(self) -> int:
        return STATUS_CODES[self.kind]

    def to_dict(self):
        return {"error": self.kind.value, "message": self.message}


class AuthenticationError(ServiceError):
    kind = ErrorKind.AUTHENTICATION


class AuthorizationError(ServiceError):
    kind = ErrorKind.AUTHORIZATION


class ValidationError(ServiceError):
    kind = ErrorKind.VALIDATION


class NotFoundError(ServiceError):
    kind = ErrorKind.NOT_FOUND


class ServerError(ServiceError):
    kind = ErrorKind.SERVER


class GatewayError(ServerError):
    """Stripe rejected or failed a call."""
