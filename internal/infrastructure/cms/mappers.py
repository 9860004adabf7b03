"""
Mapping of CMS GraphQL nodes to domain entities.

Nodes have the shape ``{"id": "12", "attributes": {...}}`` and relations
are wrapped in ``{"data": node}`` or ``{"data": [node, ...]}``.
"""
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Optional

from internal.domain.entities import (
    LocalizationRef,
    ParameterType,
    ParameterValue,
    Product,
    ProductParameter,
)
from internal.domain.errors import DomainValidationError, RemoteError
from internal.domain.value_objects import EntityKind, Locale


def _relation_one(value: Any) -> Optional[dict]:
    if not isinstance(value, dict):
        return None
    data = value.get("data")
    return data if isinstance(data, dict) else None


def _relation_many(value: Any) -> list[dict]:
    if not isinstance(value, dict):
        return []
    data = value.get("data")
    return [item for item in data if isinstance(item, dict)] if isinstance(data, list) else []


def _relation_id(value: Any) -> Optional[str]:
    node = _relation_one(value)
    return str(node["id"]) if node and node.get("id") is not None else None


def _decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def _integer(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _locale(attributes: dict, fallback: Optional[Locale]) -> Locale:
    code = attributes.get("locale")
    if code:
        try:
            return Locale.parse(code)
        except DomainValidationError:
            pass
    if fallback is None:
        raise RemoteError("Record without a known locale", payload=attributes)
    return fallback


def localizations(attributes: dict) -> list[LocalizationRef]:
    """Extract peer references from a node's attributes."""
    refs = []
    for node in _relation_many(attributes.get("localizations")):
        code = (node.get("attributes") or {}).get("locale")
        if node.get("id") is None or not code:
            continue
        try:
            refs.append(LocalizationRef(id=str(node["id"]), locale=Locale.parse(code)))
        except DomainValidationError:
            # Locales outside the closed set are not peers we manage
            continue
    return refs


def to_parameter_type(node: dict, locale: Optional[Locale] = None) -> ParameterType:
    attributes = node.get("attributes") or {}
    return ParameterType(
        id=str(node["id"]),
        name=attributes.get("name") or "",
        slug=attributes.get("slug") or "",
        locale=_locale(attributes, locale),
        localizations=localizations(attributes),
    )


def to_parameter_value(node: dict, locale: Optional[Locale] = None) -> ParameterValue:
    attributes = node.get("attributes") or {}
    parameter_type = _relation_one(attributes.get("parameter_type"))
    return ParameterValue(
        id=str(node["id"]),
        value=attributes.get("value") or "",
        code=attributes.get("code") or "",
        locale=_locale(attributes, locale),
        parameter_type_id=str(parameter_type["id"]) if parameter_type else None,
        parameter_type_name=(
            (parameter_type.get("attributes") or {}).get("name") if parameter_type else None
        ),
        localizations=localizations(attributes),
    )


def to_product_parameter(
    node: dict,
    locale: Optional[Locale] = None,
    product_id: Optional[str] = None,
) -> ProductParameter:
    attributes = node.get("attributes") or {}
    value_node = _relation_one(attributes.get("parameter_value"))
    if value_node is None:
        raise RemoteError("Product parameter without a parameter value", payload=node)
    return ProductParameter(
        id=str(node["id"]),
        product_id=_relation_id(attributes.get("product")) or product_id,
        parameter_value_id=str(value_node["id"]),
        locale=_locale(attributes, locale),
        parameter_value=(
            to_parameter_value(value_node, locale) if value_node.get("attributes") else None
        ),
    )


def to_product(node: dict, locale: Optional[Locale] = None) -> Product:
    attributes = node.get("attributes") or {}
    product_locale = _locale(attributes, locale)
    product_id = str(node["id"])
    parameters = []
    for parameter in _relation_many(attributes.get("product_parameters")):
        # A join record pointing at a deleted value is not worth failing the product
        if _relation_one((parameter.get("attributes") or {}).get("parameter_value")) is None:
            continue
        parameters.append(to_product_parameter(parameter, product_locale, product_id))
    return Product(
        id=product_id,
        part_number=str(attributes.get("part_number") or ""),
        title=attributes.get("title") or "",
        locale=product_locale,
        description=attributes.get("description"),
        retail=_decimal(attributes.get("retail")),
        currency=attributes.get("currency"),
        slug=attributes.get("slug"),
        image_link=attributes.get("image_link"),
        discount=_decimal(attributes.get("discount")),
        in_stock=_integer(attributes.get("in_stock")),
        additional_images=[
            image["link"]
            for image in attributes.get("additional_images") or []
            if isinstance(image, dict) and image.get("link")
        ],
        params=attributes.get("params") or {},
        subcategory_id=_relation_id(attributes.get("subcategory")),
        product_type_ids=[
            str(item["id"]) for item in _relation_many(attributes.get("product_types"))
        ],
        parameters=parameters,
        localizations=localizations(attributes),
    )


MAPPERS: dict[EntityKind, Callable[..., Any]] = {
    EntityKind.PARAMETER_TYPE: to_parameter_type,
    EntityKind.PARAMETER_VALUE: to_parameter_value,
    EntityKind.PRODUCT: to_product,
    EntityKind.PRODUCT_PARAMETER: to_product_parameter,
}


def to_entity(kind: EntityKind, node: dict, locale: Optional[Locale] = None) -> Any:
    """
    Map a node of any kind.

    Relation-only kinds (subcategories, product types) have no entity and
    are returned as the raw node.
    """
    mapper = MAPPERS.get(kind)
    if mapper is None:
        return node
    try:
        return mapper(node, locale)
    except (KeyError, TypeError, DomainValidationError) as e:
        raise RemoteError(f"Malformed {kind.value} record: {e}", payload=node) from e
