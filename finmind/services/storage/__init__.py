"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
An in-memory backend for demos and tests, a relational one for production.
"""

from finmind.services.storage.interface import (
    AccountNotFoundError,
    AccountStorageInterface,
    AuditStorageInterface,
    DuplicateError,
    NotFoundError,
    RecordNotFoundError,
    RecordStorageInterface,
    Storage,
    StorageConnectionError,
    StorageError,
)
from finmind.services.storage.memory import InMemoryStorage
from finmind.services.storage.sql import SqlStorage
from finmind.services.storage.demo import seed_demo_data

__all__ = [
    # Interfaces
    "AccountStorageInterface",
    "AuditStorageInterface",
    "RecordStorageInterface",
    "Storage",
    # Exceptions
    "AccountNotFoundError",
    "DuplicateError",
    "NotFoundError",
    "RecordNotFoundError",
    "StorageConnectionError",
    "StorageError",
    # Implementations
    "InMemoryStorage",
    "SqlStorage",
    "seed_demo_data",
]
