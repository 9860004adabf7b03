"""
Domain model for localized catalog records.

Working copies of CMS records. Every localizable record knows the ids of
its peers in other locales through ``localizations``.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional

from .errors import DomainValidationError
from .value_objects import Locale


EntityId = str


@dataclass(frozen=True)
class LocalizationRef:
    """Reference to a localization peer."""
    id: EntityId
    locale: Locale


@dataclass
class Localizable:
    """Mixin with peer lookup over ``localizations``."""

    def peer_id(self, locale: "str | Locale") -> Optional[EntityId]:
        """
        Get the id of the peer in a locale.

        Args:
            locale: Locale to look for.

        Returns:
            Peer id, or None if the record has no peer there.
        """
        locale = Locale.parse(locale)
        for ref in self.localizations:  # type: ignore[attr-defined]
            if ref.locale == locale:
                return ref.id
        return None

    def has_peer(self, locale: "str | Locale") -> bool:
        """Check whether a peer exists in a locale."""
        return self.peer_id(locale) is not None


@dataclass
class ParameterType(Localizable):
    """
    Parameter type such as "Колір" or "Кількість жив".

    Attributes:
        id: CMS id.
        name: Display name, the natural key.
        slug: Locale-invariant slug shared by all peers.
        locale: Locale of this record.
        localizations: Peers in other locales.
    """
    id: EntityId
    name: str
    slug: str
    locale: Locale
    localizations: list[LocalizationRef] = field(default_factory=list)

    @property
    def natural_key(self) -> str:
        return self.name


@dataclass
class ParameterValue(Localizable):
    """
    Value of a parameter type.

    ``code`` is derived once from the source value and the owning type id
    and is shared unchanged by all peers.
    """
    id: EntityId
    value: str
    code: str
    locale: Locale
    parameter_type_id: Optional[EntityId] = None
    parameter_type_name: Optional[str] = None
    localizations: list[LocalizationRef] = field(default_factory=list)

    @property
    def natural_key(self) -> tuple[str, Optional[EntityId]]:
        return (self.value, self.parameter_type_id)


@dataclass
class ProductParameter:
    """Join record: the product has the parameter value in a locale."""
    id: EntityId
    product_id: Optional[EntityId]
    parameter_value_id: EntityId
    locale: Locale
    parameter_value: Optional[ParameterValue] = None


@dataclass
class Product(Localizable):
    """
    Catalog product.

    ``part_number`` is the cross-locale natural key: a product and its peer
    share it, and at most one product per (part_number, locale) exists.
    """
    id: EntityId
    part_number: str
    title: str
    locale: Locale
    description: Optional[str] = None
    retail: Optional[Decimal] = None
    currency: Optional[str] = None
    slug: Optional[str] = None
    image_link: Optional[str] = None
    discount: Optional[Decimal] = None
    in_stock: Optional[int] = None
    additional_images: list[str] = field(default_factory=list)
    params: dict[str, Any] = field(default_factory=dict)
    subcategory_id: Optional[EntityId] = None
    product_type_ids: list[EntityId] = field(default_factory=list)
    parameters: list[ProductParameter] = field(default_factory=list)
    localizations: list[LocalizationRef] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Validate domain invariants after initialization."""
        if not self.part_number:
            raise DomainValidationError("part_number is required")

    @property
    def natural_key(self) -> str:
        return self.part_number


@dataclass
class ProductDraft:
    """
    Product to be created in the source locale by the import job.

    Attributes:
        part_number: Natural key.
        title: Product title in the source locale.
        params: Parameter name -> value pairs.
        media_archive_url: ZIP archive with additional images.
    """
    part_number: str
    title: str
    description: Optional[str] = None
    retail: Optional[Decimal] = None
    currency: Optional[str] = None
    image_link: Optional[str] = None
    params: dict[str, str] = field(default_factory=dict)
    media_archive_url: Optional[str] = None
    subcategory_id: Optional[EntityId] = None
    product_type_ids: list[EntityId] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Validate domain invariants after initialization."""
        if not self.part_number:
            raise DomainValidationError("part_number is required")
        if not self.title:
            raise DomainValidationError("title is required")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProductDraft":
        """
        Build a draft from its JSON representation.

        ``params`` may be an object or a list of ``{"key", "value"}`` items.
        """
        params = data.get("params") or {}
        if isinstance(params, list):
            params = {item["key"]: item["value"] for item in params}
        retail = data.get("retail")
        return cls(
            part_number=str(data.get("part_number") or ""),
            title=data.get("title") or "",
            description=data.get("description"),
            retail=Decimal(str(retail)) if retail is not None else None,
            currency=data.get("currency"),
            image_link=data.get("image_link"),
            params={str(k): str(v) for k, v in params.items()},
            media_archive_url=data.get("additional_images") or data.get("media_archive_url"),
            subcategory_id=(
                str(data["subcategory"]) if data.get("subcategory") is not None else None
            ),
            product_type_ids=[str(pt) for pt in data.get("product_types") or []],
        )


@dataclass
class ProductFieldUpdate:
    """
    Locale-invariant product fields to write to a product and all its peers.

    Attributes:
        part_number: Natural key of the product.
        retail: New retail price.
        in_stock: New stock quantity.
    """
    part_number: str
    retail: Optional[Decimal] = None
    in_stock: Optional[int] = None

    def __post_init__(self) -> None:
        """Validate domain invariants after initialization."""
        if not self.part_number:
            raise DomainValidationError("part_number is required")
        if self.retail is None and self.in_stock is None:
            raise DomainValidationError(
                f"Update of {self.part_number} sets neither retail nor in_stock"
            )
        if self.retail is not None and self.retail < 0:
            raise DomainValidationError("retail cannot be negative")
        if self.in_stock is not None and self.in_stock < 0:
            raise DomainValidationError("in_stock cannot be negative")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProductFieldUpdate":
        """
        Build an update from its JSON representation.

        Accepts ``updatedPrice``/``updatedInStock`` as aliases of
        ``retail``/``in_stock``.
        """
        retail = data.get("retail", data.get("updatedPrice"))
        in_stock = data.get("in_stock", data.get("updatedInStock"))
        return cls(
            part_number=str(data.get("part_number") or ""),
            retail=Decimal(str(retail)) if retail is not None else None,
            in_stock=int(in_stock) if in_stock is not None else None,
        )

    def fields(self) -> dict[str, Any]:
        """CMS payload of the update."""
        fields: dict[str, Any] = {}
        if self.retail is not None:
            fields["retail"] = float(self.retail)
        if self.in_stock is not None:
            fields["in_stock"] = self.in_stock
        return fields


@dataclass
class Page:
    """One page of a locale listing."""
    items: list[Any]
    page: int
    page_count: int
    total: int = 0

    @property
    def is_last(self) -> bool:
        return self.page >= self.page_count


@dataclass
class MediaUploadResult:
    """
    Outcome of uploading a product media archive.

    ``error`` is set when the archive could not be processed; the product is
    then skipped for this run.
    """
    error: bool = False
    media_records: list[dict[str, str]] = field(default_factory=list)
    archive_url: Optional[str] = None

    @property
    def links(self) -> list[str]:
        return [record["link"] for record in self.media_records if record.get("link")]
