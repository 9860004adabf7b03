"""
Domain package for catalog localization sync.

Contains domain entities, value objects, text rules and domain errors.
"""
from .entities import (
    EntityId,
    LocalizationRef,
    MediaUploadResult,
    Page,
    ParameterType,
    ParameterValue,
    Product,
    ProductDraft,
    ProductFieldUpdate,
    ProductParameter,
)
from .value_objects import CacheKey, CacheScope, EntityKind, ItemOutcome, Locale, LocalePair
from .errors import (
    DomainError,
    DomainValidationError,
    DuplicateConflict,
    MediaUploadError,
    MissingDependencyError,
    RemoteError,
    TranslationError,
)

__all__ = [
    "EntityId",
    "LocalizationRef",
    "MediaUploadResult",
    "Page",
    "ParameterType",
    "ParameterValue",
    "Product",
    "ProductDraft",
    "ProductFieldUpdate",
    "ProductParameter",
    "CacheKey",
    "CacheScope",
    "EntityKind",
    "ItemOutcome",
    "Locale",
    "LocalePair",
    "DomainError",
    "DomainValidationError",
    "DuplicateConflict",
    "MediaUploadError",
    "MissingDependencyError",
    "RemoteError",
    "TranslationError",
]
