"""
MemoryCertificateStore - process-local certificate storage.

Keeps records and blobs in dictionaries. Used for development and tests;
nothing survives a restart.
"""

import logging
from typing import Any, Dict, Optional

from app.models import CertificateRecord
from .certificate_store import CertificateStore

logger = logging.getLogger(__name__)


class MemoryCertificateStore(CertificateStore):
    """In-memory implementation of CertificateStore."""

    def __init__(self, base_url: str = "http://localhost:8000"):
        self._records: Dict[str, CertificateRecord] = {}
        self._blobs: Dict[str, bytes] = {}
        self._base_url = base_url.rstrip("/")
        logger.info("[STORE] MemoryCertificateStore initialized")

    @property
    def backend_name(self) -> str:
        return "memory"

    async def find_active_by_content_hash(
        self, content_hash: str
    ) -> Optional[CertificateRecord]:
        for record in self._records.values():
            if record.content_hash == content_hash and record.status == "active":
                return record.model_copy(deep=True)
        return None

    async def find_by_key(self, certificate_key: str) -> Optional[CertificateRecord]:
        for record in self._records.values():
            if record.certificate_key == certificate_key:
                return record.model_copy(deep=True)
        return None

    async def insert_record(self, record: CertificateRecord) -> CertificateRecord:
        if record.status == "active" and await self.find_active_by_content_hash(
            record.content_hash
        ):
            raise ValueError(
                f"Active certificate already exists for content {record.content_hash}"
            )
        self._records[record.id] = record.model_copy(deep=True)
        logger.info(f"[STORE] Inserted record {record.id}")
        return record.model_copy(deep=True)

    async def update_record(
        self, certificate_key: str, patch: dict[str, Any]
    ) -> CertificateRecord:
        for record_id, record in self._records.items():
            if record.certificate_key == certificate_key:
                updated = record.model_copy(update=patch, deep=True)
                self._records[record_id] = updated
                logger.info(f"[STORE] Updated record {record_id}")
                return updated.model_copy(deep=True)
        raise KeyError(f"Certificate not found: {certificate_key}")

    async def list_records(
        self, status: Optional[str] = None
    ) -> list[CertificateRecord]:
        return [
            record.model_copy(deep=True)
            for record in self._records.values()
            if status is None or record.status == status
        ]

    async def put_blob(self, name: str, content: bytes) -> str:
        self._blobs[name] = bytes(content)
        return f"{self._base_url}/api/documents/{name}"

    async def get_blob(self, name: str) -> Optional[bytes]:
        return self._blobs.get(name)

    async def delete_blob(self, name: str) -> bool:
        return self._blobs.pop(name, None) is not None
