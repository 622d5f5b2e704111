"""
CertificateStore abstraction layer for storage backends.

Defines the interface for certificate record and document blob storage
(local filesystem, in-memory, managed database, etc.) allowing the API to
swap between backends via configuration.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from app.models import CertificateRecord


class CertificateStore(ABC):
    """
    Abstract base class for certificate storage backends.

    Implementations:
    - FileCertificateStore: JSON records and blobs on the local filesystem
    - MemoryCertificateStore: Process-local dictionaries for development and tests
    """

    @abstractmethod
    async def find_active_by_content_hash(
        self, content_hash: str
    ) -> Optional[CertificateRecord]:
        """
        Find the active record for a content hash.

        Args:
            content_hash: Digest from compute_content_hash()

        Returns:
            CertificateRecord: The active record, if any
            None: If no active record has this content hash

        Raises:
            OSError: If the backend cannot be queried
        """
        pass

    @abstractmethod
    async def find_by_key(self, certificate_key: str) -> Optional[CertificateRecord]:
        """
        Find a record by its public certificate key.

        Returns:
            CertificateRecord or None if no record has this key
        """
        pass

    @abstractmethod
    async def insert_record(self, record: CertificateRecord) -> CertificateRecord:
        """
        Persist a new certificate record.

        Raises:
            OSError: If the write fails
            ValueError: If the record would create a second active record
                        for the same content hash
        """
        pass

    @abstractmethod
    async def update_record(
        self, certificate_key: str, patch: dict[str, Any]
    ) -> CertificateRecord:
        """
        Apply a partial update to the record currently holding certificate_key.

        Args:
            certificate_key: Key of the record to update
            patch: Field names (snake_case) mapped to new values

        Returns:
            CertificateRecord: The updated record

        Raises:
            KeyError: If no record has this key
            OSError: If the write fails
        """
        pass

    @abstractmethod
    async def list_records(
        self, status: Optional[str] = None
    ) -> list[CertificateRecord]:
        """Return all records, optionally filtered by status."""
        pass

    @abstractmethod
    async def put_blob(self, name: str, content: bytes) -> str:
        """
        Store a binary blob, overwriting any blob with the same name.

        Returns:
            str: Public URL of the stored blob

        Raises:
            OSError: If the write fails
        """
        pass

    @abstractmethod
    async def get_blob(self, name: str) -> Optional[bytes]:
        """Return blob bytes, or None if no blob has this name."""
        pass

    @abstractmethod
    async def delete_blob(self, name: str) -> bool:
        """Delete a blob. Returns False if it did not exist."""
        pass

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """
        Return backend identifier for API responses.

        Returns:
            str: Backend name - "file" or "memory"
        """
        pass
