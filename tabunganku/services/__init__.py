"""Services package."""

from tabunganku.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsStorage,
    InMemoryAuditStorage,
    InMemoryStorage,
    JsonFileStorage,
    StorageError,
    StorageInterface,
)

__all__ = [
    "AuditStorageInterface",
    "ConnectionError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsStorage",
    "InMemoryAuditStorage",
    "InMemoryStorage",
    "JsonFileStorage",
    "StorageError",
    "StorageInterface",
]
