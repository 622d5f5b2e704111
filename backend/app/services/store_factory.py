"""
Store factory for certificate storage backend selection.

Returns the appropriate CertificateStore based on STORAGE_BACKEND configuration.
"""

import logging

from app.config import settings
from .certificate_store import CertificateStore
from .file_certificate_store import FileCertificateStore
from .memory_certificate_store import MemoryCertificateStore

logger = logging.getLogger(__name__)

# Singleton store instance
_store_instance: CertificateStore | None = None


def get_certificate_store() -> CertificateStore:
    """
    Get the configured certificate store instance.

    Uses singleton pattern so every request sees the same records.

    Returns:
        CertificateStore: FileCertificateStore if STORAGE_BACKEND=file,
                          MemoryCertificateStore if STORAGE_BACKEND=memory

    Raises:
        NotImplementedError: If STORAGE_BACKEND names an unknown backend
    """
    global _store_instance

    if _store_instance is not None:
        return _store_instance

    backend = settings.STORAGE_BACKEND.lower()
    if backend == "file":
        logger.info(
            f"Initializing FileCertificateStore (STORAGE_PATH={settings.STORAGE_PATH})"
        )
        _store_instance = FileCertificateStore(
            base_path=settings.STORAGE_PATH, base_url=settings.PUBLIC_BASE_URL
        )
    elif backend == "memory":
        logger.info("Initializing MemoryCertificateStore (STORAGE_BACKEND=memory)")
        _store_instance = MemoryCertificateStore(base_url=settings.PUBLIC_BASE_URL)
    else:
        raise NotImplementedError(
            f"Unknown storage backend '{settings.STORAGE_BACKEND}'. "
            "Set STORAGE_BACKEND to 'file' or 'memory'."
        )

    return _store_instance


def reset_store() -> None:
    """
    Reset the store singleton (for testing purposes).

    Clears the cached store instance, allowing a fresh
    store to be created on next get_certificate_store() call.
    """
    global _store_instance
    _store_instance = None
    logger.info("Store singleton reset")
