"""Error taxonomy shared by the services and both presentation layers."""

from fastapi import status


class PasteboardError(Exception):
    """Base class; carries the HTTP status the API reports it with."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PasteboardError):
    status_code = status.HTTP_400_BAD_REQUEST


class AuthError(PasteboardError):
    status_code = status.HTTP_401_UNAUTHORIZED


class NotFoundError(PasteboardError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(PasteboardError):
    status_code = status.HTTP_409_CONFLICT


class StorageError(PasteboardError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
