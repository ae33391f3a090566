"""
Storage Services Package

Provides the abstract persistence interface, the ledger codec and the
concrete backends: local JSON files, in-memory, and Google Sheets.
"""

from tabunganku.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    StorageError,
    StorageInterface,
)
from tabunganku.services.storage.codec import (
    SCHEMA_VERSION,
    blob_version,
    decode_students,
    decode_transactions,
    encode_collection,
)
from tabunganku.services.storage.local import (
    InMemoryAuditStorage,
    InMemoryStorage,
    JsonFileStorage,
)
from tabunganku.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "StorageInterface",
    # Exceptions
    "ConnectionError",
    "StorageError",
    # Codec
    "SCHEMA_VERSION",
    "blob_version",
    "decode_students",
    "decode_transactions",
    "encode_collection",
    # Local implementations
    "InMemoryAuditStorage",
    "InMemoryStorage",
    "JsonFileStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsStorage",
]
