"""
File Certificate Store

Stores certificate records as JSON files and document blobs as files
under a base directory.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional

from app.models import CertificateRecord
from .certificate_store import CertificateStore

logger = logging.getLogger(__name__)


class FileCertificateStore(CertificateStore):
    """
    Filesystem implementation of CertificateStore.

    Layout:
    - {base_path}/records/{record_id}.json
    - {base_path}/documents/{name}
    """

    def __init__(self, base_path: str, base_url: str = "http://localhost:8000"):
        """
        Initialize FileCertificateStore with base storage path.

        Args:
            base_path: Base directory for all storage operations
            base_url: Public base URL used to build document links
        """
        self.base_path = Path(base_path)
        self.records_path = self.base_path / "records"
        self.documents_path = self.base_path / "documents"
        self._base_url = base_url.rstrip("/")
        logger.info(f"[STORE] FileCertificateStore initialized at {self.base_path}")

    @property
    def backend_name(self) -> str:
        return "file"

    def _record_path(self, record_id: str) -> Path:
        return self.records_path / f"{record_id}.json"

    def _document_path(self, name: str) -> Path:
        path = (self.documents_path / name).resolve()
        if path.parent != self.documents_path.resolve():
            raise ValueError(f"Invalid document name: {name}")
        return path

    def _load_all(self) -> list[CertificateRecord]:
        if not self.records_path.exists():
            return []

        records = []
        for record_file in sorted(self.records_path.glob("*.json")):
            try:
                with open(record_file) as f:
                    records.append(CertificateRecord.model_validate(json.load(f)))
            except json.JSONDecodeError as e:
                logger.error(f"[STORE] Skipping unreadable record {record_file}: {e}")
        return records

    def _write(self, record: CertificateRecord) -> None:
        self.records_path.mkdir(parents=True, exist_ok=True)
        path = self._record_path(record.id)
        tmp_path = path.with_suffix(".json.tmp")
        with open(tmp_path, "w") as f:
            json.dump(record.model_dump(by_alias=True), f, indent=2)
        tmp_path.replace(path)

    def _find_active(self, content_hash: str) -> Optional[CertificateRecord]:
        for record in self._load_all():
            if record.content_hash == content_hash and record.status == "active":
                return record
        return None

    def _find_key(self, certificate_key: str) -> Optional[CertificateRecord]:
        for record in self._load_all():
            if record.certificate_key == certificate_key:
                return record
        return None

    def _insert(self, record: CertificateRecord) -> CertificateRecord:
        if record.status == "active" and self._find_active(record.content_hash):
            raise ValueError(
                f"Active certificate already exists for content {record.content_hash}"
            )
        self._write(record)
        logger.info(f"[STORE] Inserted record {record.id}")
        return record

    def _update(self, certificate_key: str, patch: dict[str, Any]) -> CertificateRecord:
        record = self._find_key(certificate_key)
        if record is None:
            raise KeyError(f"Certificate not found: {certificate_key}")
        updated = record.model_copy(update=patch)
        self._write(updated)
        logger.info(f"[STORE] Updated record {updated.id}")
        return updated

    def _put_blob(self, name: str, content: bytes) -> str:
        path = self._document_path(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        # 644 (rw-r--r--)
        path.chmod(0o644)
        logger.info(f"[STORE] Saved document {name} ({len(content)} bytes)")
        return f"{self._base_url}/api/documents/{name}"

    def _get_blob(self, name: str) -> Optional[bytes]:
        path = self._document_path(name)
        if not path.exists():
            return None
        return path.read_bytes()

    def _delete_blob(self, name: str) -> bool:
        path = self._document_path(name)
        if not path.exists():
            return False
        path.unlink()
        logger.info(f"[STORE] Deleted document {name}")
        return True

    async def find_active_by_content_hash(
        self, content_hash: str
    ) -> Optional[CertificateRecord]:
        return await asyncio.to_thread(self._find_active, content_hash)

    async def find_by_key(self, certificate_key: str) -> Optional[CertificateRecord]:
        return await asyncio.to_thread(self._find_key, certificate_key)

    async def insert_record(self, record: CertificateRecord) -> CertificateRecord:
        return await asyncio.to_thread(self._insert, record)

    async def update_record(
        self, certificate_key: str, patch: dict[str, Any]
    ) -> CertificateRecord:
        return await asyncio.to_thread(self._update, certificate_key, patch)

    async def list_records(
        self, status: Optional[str] = None
    ) -> list[CertificateRecord]:
        records = await asyncio.to_thread(self._load_all)
        return [r for r in records if status is None or r.status == status]

    async def put_blob(self, name: str, content: bytes) -> str:
        return await asyncio.to_thread(self._put_blob, name, content)

    async def get_blob(self, name: str) -> Optional[bytes]:
        return await asyncio.to_thread(self._get_blob, name)

    async def delete_blob(self, name: str) -> bool:
        return await asyncio.to_thread(self._delete_blob, name)
