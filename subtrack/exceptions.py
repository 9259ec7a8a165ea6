from typing import Optional


class SubtrackError(Exception):
    """Base class for errors the API turns into JSON responses."""


class NotFoundError(SubtrackError):
    pass


class InvalidRequestError(SubtrackError):
    pass


class ImmutableSubIdError(SubtrackError):
    """Raised when a locked Sub-ID (or a website owning one) would be changed."""


class ClickUpError(SubtrackError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ClickUpNotConfiguredError(ClickUpError):
    def __init__(self):
        super().__init__("ClickUp API key not configured")
