"""Typed failures raised by the key-value layer and the repositories."""

from __future__ import annotations


class StoreError(Exception):
    """Base class for storage failures; carries an HTTP-friendly code/status."""

    code = "store_error"
    status_code = 500

    def __init__(self, message: str, *, code: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code


class BackendUnavailableError(StoreError):
    code = "backend_unavailable"
    status_code = 503


class InvalidCommandError(StoreError):
    code = "invalid_command"
    status_code = 400


class SerializationError(StoreError):
    code = "serialization_error"
    status_code = 500


class WrongTypeError(StoreError):
    code = "wrong_type"
    status_code = 500


class RecordNotFoundError(StoreError):
    code = "not_found"
    status_code = 404


class DuplicateRecordError(StoreError):
    code = "conflict"
    status_code = 409
