"""
Use case package for catalog localization sync.

Contains the reconciliation workflow and the jobs built on it.
"""
from .translation_gateway import TranslationGateway, TranslationProvider
from .reconciliation import ItemResult, ReconciliationEngine, RemoteEntityClient
from .batch_driver import JOBS, BatchDriver, ItemError, RunResult
from .localization_audit import AuditReport, LocalizationAudit
from .import_products import ImportProducts, MediaUploader
from .update_product_fields import ProductWriter, UpdateProductFields

__all__ = [
    "TranslationGateway",
    "TranslationProvider",
    "ItemResult",
    "ReconciliationEngine",
    "RemoteEntityClient",
    "JOBS",
    "BatchDriver",
    "ItemError",
    "RunResult",
    "AuditReport",
    "LocalizationAudit",
    "ImportProducts",
    "MediaUploader",
    "ProductWriter",
    "UpdateProductFields",
]
