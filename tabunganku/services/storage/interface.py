"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the ledger on local disk, in memory, or in Google Sheets
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

The interface is intentionally tiny: named blobs in, named blobs out.
It knows nothing about students or transactions; encoding them is the
job of tabunganku.services.storage.codec.
"""

from abc import ABC, abstractmethod
from typing import Optional

from tabunganku.models.audit import AuditEvent


class StorageInterface(ABC):
    """
    Abstract interface for ledger persistence.

    Any storage implementation must implement these methods.
    Writes are last-write-wins; there is no durability guarantee
    beyond what the backend gives for free.
    """

    @abstractmethod
    def load(self, key: str) -> Optional[str]:
        """
        Load the blob stored under `key`.

        Args:
            key: Blob name (e.g. "students")

        Returns:
            The stored text, or None if nothing was ever saved.
            A missing key is not an error.

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def save(self, key: str, blob: str) -> bool:
        """
        Replace the blob stored under `key`.

        Args:
            key: Blob name
            blob: Text to store

        Returns:
            True if saved successfully

        Raises:
            StorageError: If the backend cannot be written
        """
        pass

    @property
    def name(self) -> str:
        """Short backend name for logs."""
        return type(self).__name__


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
