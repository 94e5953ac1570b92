"""
Docker API Exceptions
"""

from typing import Optional


class DockerException(Exception):
    """Base Docker exception"""
    pass


class ConfigError(DockerException):
    """Invalid client configuration"""
    pass


class TransportError(DockerException):
    """Connection-level failure (socket, TLS, DNS)"""
    pass


class DecodeError(DockerException):
    """Response body could not be decoded as JSON"""

    def __init__(self, message, body: Optional[bytes] = None):
        super().__init__(message)
        self.body = body


class StreamError(DockerException):
    """Invalid operation on a live stream"""
    pass


class APIError(DockerException):
    """Docker API error"""

    def __init__(self, message, response=None, status_code=None,
                 reason: Optional[str] = None, explanation: Optional[str] = None):
        super().__init__(message)
        self.response = response
        self.status_code = status_code
        self.reason = reason
        self.explanation = explanation


class RemoteStatusError(APIError):
    """Daemon answered with a status listed as an error for the endpoint"""
    pass


class BadRequest(RemoteStatusError):
    """400 from the daemon"""
    pass


class NotFound(RemoteStatusError):
    """404 from the daemon"""
    pass


class Conflict(RemoteStatusError):
    """409 from the daemon"""
    pass


class UnmappedStatusError(APIError):
    """Daemon answered with a status the endpoint does not declare"""
    pass


_STATUS_ERRORS = {
    400: BadRequest,
    404: NotFound,
    409: Conflict,
}


def status_error_class(status_code: int):
    """Pick the RemoteStatusError subclass for a status code"""
    return _STATUS_ERRORS.get(status_code, RemoteStatusError)
