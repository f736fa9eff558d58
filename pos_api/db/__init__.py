"""Key-value persistence: backends, the store facade and backend selection."""

from .errors import (
    BackendUnavailableError,
    DuplicateRecordError,
    InvalidCommandError,
    RecordNotFoundError,
    SerializationError,
    StoreError,
    WrongTypeError,
)
from .selector import BackendKind, create_store, parse_config_cookie, resolve_backend_kind
from .store import KVStore

__all__ = [
    "BackendKind",
    "BackendUnavailableError",
    "DuplicateRecordError",
    "InvalidCommandError",
    "KVStore",
    "RecordNotFoundError",
    "SerializationError",
    "StoreError",
    "WrongTypeError",
    "create_store",
    "parse_config_cookie",
    "resolve_backend_kind",
]
