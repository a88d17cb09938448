"""Services package."""

from finmind.services.storage import (
    AccountNotFoundError,
    DuplicateError,
    InMemoryStorage,
    NotFoundError,
    RecordNotFoundError,
    SqlStorage,
    Storage,
    StorageConnectionError,
    StorageError,
)

__all__ = [
    "AccountNotFoundError",
    "DuplicateError",
    "InMemoryStorage",
    "NotFoundError",
    "RecordNotFoundError",
    "SqlStorage",
    "Storage",
    "StorageConnectionError",
    "StorageError",
]
