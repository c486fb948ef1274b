from __future__ import annotations

from typing import Any, Dict, List, Optional


class AppError(Exception):
    """Base for errors that map onto an HTTP status and a client-safe message."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_body(self) -> Dict[str, Any]:
        return {"success": False, "message": self.message}


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request"

    def __init__(self, message: Optional[str] = None, *, errors: Optional[List[Dict[str, str]]] = None) -> None:
        super().__init__(message)
        self.errors = list(errors or [])

    def to_body(self) -> Dict[str, Any]:
        if self.errors:
            return {"success": False, "errors": self.errors}
        return super().to_body()


class ConflictError(AppError):
    status_code = 409
    default_message = "Conflict"


class NotFoundError(AppError):
    status_code = 404
    default_message = "User not found."


class StorageError(AppError):
    """An object-storage call failed. The cause stays in ``__cause__`` and the logs."""

    status_code = 500
    default_message = "Object storage request failed."


class UploadError(StorageError):
    default_message = "Failed to upload the image."
