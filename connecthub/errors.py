"""Domain errors raised by the data-access layer.

Each error carries the HTTP status it maps to; ``main.py`` registers a single
handler that renders them as ``{"detail": message}``.
"""


class ConnectHubError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ConnectHubError):
    status_code = 400


class ConflictError(ConnectHubError):
    status_code = 400


class NotAuthorizedError(ConnectHubError):
    status_code = 401


class NotFoundError(ConnectHubError):
    status_code = 404
