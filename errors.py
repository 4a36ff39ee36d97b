from typing import Optional

from fastapi import status


class TodoError(Exception):
    """Base class for errors that are reported to the client as-is."""

    status_code = status.HTTP_400_BAD_REQUEST
    kind = "Error"
    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class DuplicateEmail(TodoError):
    kind = "DuplicateEmail"
    default_message = "Email is already registered"


class InvalidCredentials(TodoError):
    kind = "InvalidCredentials"
    default_message = "Invalid credentials"


class Unauthenticated(TodoError):
    status_code = status.HTTP_401_UNAUTHORIZED
    kind = "Unauthenticated"
    default_message = "Could not validate credentials"


class Forbidden(TodoError):
    status_code = status.HTTP_403_FORBIDDEN
    kind = "Forbidden"
    default_message = "Forbidden"


class NotFound(TodoError):
    status_code = status.HTTP_404_NOT_FOUND
    kind = "NotFound"
    default_message = "Not found"


class InvalidInput(TodoError):
    kind = "InvalidInput"
    default_message = "Invalid input"


class StorageError(TodoError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    kind = "StorageError"
    default_message = "Could not access the data store"


class ConfigError(RuntimeError):
    """Raised at startup when the settings cannot be used."""
