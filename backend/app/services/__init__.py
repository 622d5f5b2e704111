"""Service layer for business logic and external integrations."""

from .certificate_store import CertificateStore
from .memory_certificate_store import MemoryCertificateStore
from .file_certificate_store import FileCertificateStore
from .store_factory import get_certificate_store, reset_store
from .rasterizer import LayoutTree, Rasterizer, TextMetrics
from .pillow_rasterizer import PillowRasterizer
from .asset_loader import AssetLoader, FileAssetLoader, LoadedAsset
from .export_pipeline import (
    ExportedDocument,
    ExportPipeline,
    get_export_pipeline,
    reset_export_pipeline,
)
from .duplicate_resolver import Classification, ClassifiedCandidate, DuplicateResolver
from .batch_issuance import BatchIssuanceOrchestrator, validate_batch
from .batch_registry import BatchRegistry, get_batch_registry, reset_batch_registry
from .batch_task import execute_batch_job

__all__ = [
    "CertificateStore",
    "MemoryCertificateStore",
    "FileCertificateStore",
    "get_certificate_store",
    "reset_store",
    "LayoutTree",
    "Rasterizer",
    "TextMetrics",
    "PillowRasterizer",
    "AssetLoader",
    "FileAssetLoader",
    "LoadedAsset",
    "ExportedDocument",
    "ExportPipeline",
    "get_export_pipeline",
    "reset_export_pipeline",
    "Classification",
    "ClassifiedCandidate",
    "DuplicateResolver",
    "BatchIssuanceOrchestrator",
    "validate_batch",
    "BatchRegistry",
    "get_batch_registry",
    "reset_batch_registry",
    "execute_batch_job",
]
