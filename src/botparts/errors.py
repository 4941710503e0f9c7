"""Domain exception hierarchy for botparts.

Each error carries the HTTP status the API layer maps it to, so handlers in
``botparts.api`` never inspect messages.
"""

from __future__ import annotations

from typing import Iterable


class BotPartsError(Exception):
    """Base for all domain exceptions."""

    def __init__(self, message: str = "An unexpected error occurred", *, status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ValidationError(BotPartsError):
    """User input rejected before anything is written (422)."""

    def __init__(self, message: str = "Invalid input", *, fields: Iterable[str] = ()):
        super().__init__(message, status_code=422)
        self.fields = list(fields)


class NotFoundError(BotPartsError):
    """Referenced build or component does not exist (404)."""

    def __init__(self, message: str = "Not found"):
        super().__init__(message, status_code=404)


class CorruptDocumentError(NotFoundError):
    """A stored document does not have the build shape."""

    def __init__(self, document_id: str, reason: str):
        super().__init__(f"Build document {document_id!r} is malformed: {reason}")
        self.document_id = document_id
        self.reason = reason


class StoreUnavailableError(BotPartsError):
    """The document store could not be reached (503). Safe to retry."""

    def __init__(self, message: str = "Document store unavailable"):
        super().__init__(message, status_code=503)


class AuthNotReadyError(BotPartsError):
    """Called before a user identifier is available (401)."""

    def __init__(self, message: str = "User identity is not ready"):
        super().__init__(message, status_code=401)
