"""
CMS GraphQL client.

Thin request/response client for the catalog CMS. It knows the GraphQL
shape of each entity kind and classifies upstream errors; it holds no
business logic.
"""
from datetime import datetime, timezone
from typing import Any, Hashable, Optional

import httpx

from internal.domain.entities import EntityId, Page, ProductParameter
from internal.domain.errors import DuplicateConflict, RemoteError
from internal.domain.value_objects import EntityKind, Locale
from pkg.logger.logger import get_logger

from . import mappers, queries


logger = get_logger(__name__)


DEFAULT_TIMEOUT = 30.0
# Messages the CMS uses for uniqueness violations that carry no structured flag
CONFLICT_MESSAGES = ("already exists", "locale is already used")


def classify_errors(errors: Any, status_code: Optional[int] = None) -> RemoteError:
    """
    Turn a GraphQL ``errors`` payload into a domain error.

    A uniqueness violation becomes ``DuplicateConflict``; it is recognised by
    the ``isExists`` detail flag, a ``CONFLICT`` extension code, HTTP 409 or
    one of the CMS's conflict messages. Anything else is a ``RemoteError``.

    Args:
        errors: The ``errors`` list of a GraphQL response.
        status_code: HTTP status of the response.

    Returns:
        The error to raise.
    """
    items = errors if isinstance(errors, list) else [errors]
    messages = []
    for item in items:
        if not isinstance(item, dict):
            messages.append(str(item))
            continue
        message = str(item.get("message") or "")
        messages.append(message)
        extensions = item.get("extensions") or {}
        details = (extensions.get("exception") or {}).get("details") or {}
        if not details and isinstance(extensions.get("error"), dict):
            details = extensions["error"].get("details") or {}
        existing_id = details.get("existingId")
        if (
            details.get("isExists")
            or extensions.get("code") == "CONFLICT"
            or status_code == 409
            or any(marker in message.lower() for marker in CONFLICT_MESSAGES)
        ):
            return DuplicateConflict(
                message or "Record already exists",
                existing_id=str(existing_id) if existing_id is not None else None,
                payload=errors,
                status_code=status_code,
            )
    return RemoteError(
        "; ".join(m for m in messages if m) or "CMS returned errors",
        payload=errors,
        status_code=status_code,
    )


def _natural_key_variables(kind: EntityKind, key: Hashable) -> dict[str, Any]:
    if kind == EntityKind.PARAMETER_TYPE:
        return {"name": key}
    if kind == EntityKind.PARAMETER_VALUE:
        value, parameter_type_id = key  # type: ignore[misc]
        return {"value": value, "parameterTypeId": parameter_type_id}
    if kind == EntityKind.PRODUCT:
        return {"partNumber": key}
    if kind == EntityKind.PRODUCT_PARAMETER:
        product_id, parameter_value_id = key  # type: ignore[misc]
        return {"productId": product_id, "parameterValueId": parameter_value_id}
    raise ValueError(f"{kind.value} has no natural key")


def _published_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class CMSClient:
    """
    GraphQL client of the catalog CMS.

    Uses httpx for async HTTP. The connection is opened lazily or through
    ``connect()``/``async with``.
    """

    def __init__(
        self,
        base_url: str,
        api_token: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: CMS base URL; requests go to ``<base_url>/graphql``.
            api_token: Bearer token.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (tests use ``MockTransport``).
        """
        self._base_url = base_url.rstrip("/")
        self._api_token = api_token
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def connect(self) -> httpx.AsyncClient:
        """Open the HTTP client, or return the open one."""
        if self._client is not None:
            return self._client
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self._api_token}",
            },
            timeout=self._timeout,
            transport=self._transport,
        )
        logger.info("CMS client connected", url=self._base_url)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("CMS client closed")

    async def __aenter__(self) -> "CMSClient":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def execute(
        self,
        query: str,
        variables: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """
        Execute a GraphQL document.

        Args:
            query: GraphQL query or mutation.
            variables: Variables of the document.

        Returns:
            The ``data`` object of the response.

        Raises:
            DuplicateConflict: If the CMS reports a uniqueness violation.
            RemoteError: On transport errors, error responses or missing data.
        """
        client = await self.connect()

        try:
            response = await client.post(
                "/graphql",
                json={"query": query, "variables": variables or {}},
            )
        except httpx.HTTPError as e:
            raise RemoteError(f"CMS request failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = None

        errors = body.get("errors") if isinstance(body, dict) else None
        if errors:
            raise classify_errors(errors, response.status_code)

        if response.status_code == 409:
            raise DuplicateConflict(
                "Record already exists",
                payload=body if body is not None else response.text,
                status_code=409,
            )
        if response.status_code >= 400:
            raise RemoteError(
                f"CMS returned HTTP {response.status_code}",
                payload=body if body is not None else response.text,
                status_code=response.status_code,
            )

        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict):
            raise RemoteError(
                "CMS response without data",
                payload=body if body is not None else response.text,
                status_code=response.status_code,
            )
        return data

    @staticmethod
    def _field(data: dict[str, Any], name: str) -> Any:
        container = data.get(name)
        if not isinstance(container, dict) or "data" not in container:
            raise RemoteError(f"CMS response without '{name}'", payload=data)
        return container["data"]

    async def get_by_natural_key(
        self,
        kind: EntityKind,
        key: Hashable,
        locale: Locale,
    ) -> Optional[Any]:
        """
        Find a record by its natural key in a locale.

        Args:
            kind: Entity kind.
            key: Natural key (name, ``(value, type id)``, part number,
                or ``(product id, value id)``).
            locale: Locale to search in.

        Returns:
            The first matching entity, or None.
        """
        variables = _natural_key_variables(kind, key)
        variables["locale"] = Locale.parse(locale).value
        data = await self.execute(queries.find_by_natural_key_query(kind), variables)
        nodes = self._field(data, queries.schema_for(kind).collection)
        if not nodes:
            return None
        return mappers.to_entity(kind, nodes[0], Locale.parse(locale))

    async def get_by_id(
        self,
        kind: EntityKind,
        entity_id: EntityId,
        locale: Optional[Locale] = None,
    ) -> Optional[Any]:
        """
        Get a record by id.

        Returns:
            The entity (raw node for relation-only kinds), or None.
        """
        variables = {
            "id": entity_id,
            "locale": Locale.parse(locale).value if locale else None,
        }
        data = await self.execute(queries.get_by_id_query(kind), variables)
        node = self._field(data, queries.schema_for(kind).single)
        if not node:
            return None
        return mappers.to_entity(kind, node, Locale.parse(locale) if locale else None)

    async def create(
        self,
        kind: EntityKind,
        fields: dict[str, Any],
        locale: Locale,
    ) -> Any:
        """
        Create a record in a locale.

        Returns:
            The created entity.
        """
        locale = Locale.parse(locale)
        variables = {
            "data": {**fields, "publishedAt": _published_now()},
            "locale": locale.value,
        }
        schema = queries.schema_for(kind)
        data = await self.execute(queries.create_mutation(kind), variables)
        node = self._field(data, schema.create_mutation)
        if not node:
            raise RemoteError(f"{schema.create_mutation} returned no record", payload=data)
        logger.debug("CMS record created", kind=kind.value, id=node.get("id"), locale=locale.value)
        return mappers.to_entity(kind, node, locale)

    async def create_localization(
        self,
        kind: EntityKind,
        entity_id: EntityId,
        target_locale: Locale,
        fields: dict[str, Any],
    ) -> Any:
        """
        Create the peer of a record in another locale.

        Raises:
            DuplicateConflict: If the record already has a peer there.
        """
        target_locale = Locale.parse(target_locale)
        variables = {
            "id": entity_id,
            "locale": target_locale.value,
            "data": {**fields, "publishedAt": _published_now()},
        }
        schema = queries.schema_for(kind)
        data = await self.execute(queries.create_localization_mutation(kind), variables)
        node = self._field(data, schema.create_localization_mutation)
        if not node:
            raise RemoteError(
                f"{schema.create_localization_mutation} returned no record", payload=data
            )
        logger.debug(
            "CMS localization created",
            kind=kind.value,
            id=entity_id,
            peer_id=node.get("id"),
            locale=target_locale.value,
        )
        return mappers.to_entity(kind, node, target_locale)

    async def update_fields(
        self,
        kind: EntityKind,
        entity_id: EntityId,
        fields: dict[str, Any],
    ) -> Any:
        """
        Overwrite fields of one record, leaving its peers untouched.

        Args:
            kind: Entity kind.
            entity_id: Record id.
            fields: Fields to write.

        Returns:
            The updated entity.

        Raises:
            RemoteError: If the record does not exist or the CMS fails.
        """
        schema = queries.schema_for(kind)
        data = await self.execute(
            queries.update_mutation(kind),
            {"id": entity_id, "data": fields},
        )
        node = self._field(data, schema.update_mutation)
        if not node:
            raise RemoteError(f"{schema.update_mutation} returned no record", payload=data)
        logger.debug(
            "CMS record updated",
            kind=kind.value,
            id=entity_id,
            fields=sorted(fields),
        )
        return mappers.to_entity(kind, node)

    async def list_page(
        self,
        kind: EntityKind,
        locale: Locale,
        page: int,
        page_size: int,
    ) -> Page:
        """
        List one page of records of a locale.

        Returns:
            Page with mapped items and pagination meta.
        """
        locale = Locale.parse(locale)
        variables = {
            "locale": locale.value,
            "pagination": {"page": page, "pageSize": page_size},
        }
        data = await self.execute(queries.list_page_query(kind), variables)
        container = data.get(queries.schema_for(kind).collection)
        if not isinstance(container, dict):
            raise RemoteError(f"CMS response without '{kind.value}' listing", payload=data)
        nodes = container.get("data") or []
        pagination = ((container.get("meta") or {}).get("pagination")) or {}
        return Page(
            items=[mappers.to_entity(kind, node, locale) for node in nodes],
            page=int(pagination.get("page") or page),
            page_count=int(pagination.get("pageCount") or 0),
            total=int(pagination.get("total") or 0),
        )

    async def get_localization_id(
        self,
        kind: EntityKind,
        entity_id: EntityId,
        target_locale: Locale,
    ) -> Optional[EntityId]:
        """
        Get the id of a record's peer in a locale.

        Returns:
            Peer id, or None if the record or its peer does not exist.
        """
        record = await self.get_by_id(kind, entity_id)
        if record is None:
            return None
        if isinstance(record, dict):
            for ref in mappers.localizations(record.get("attributes") or {}):
                if ref.locale == Locale.parse(target_locale):
                    return ref.id
            return None
        return record.peer_id(target_locale)

    async def list_product_parameters(
        self,
        product_id: EntityId,
        locale: Locale,
    ) -> list[ProductParameter]:
        """List the join records of a product in a locale."""
        locale = Locale.parse(locale)
        data = await self.execute(
            queries.list_by_product_query(),
            {"productId": product_id, "locale": locale.value},
        )
        nodes = self._field(data, queries.schema_for(EntityKind.PRODUCT_PARAMETER).collection)
        return [mappers.to_product_parameter(node, locale, product_id) for node in nodes or []]

    async def create_product_parameter(
        self,
        product_id: EntityId,
        parameter_value_id: EntityId,
        locale: Locale,
    ) -> ProductParameter:
        """
        Link a product to a parameter value in a locale.

        Raises:
            DuplicateConflict: If the pair is already linked.
        """
        return await self.create(
            EntityKind.PRODUCT_PARAMETER,
            {"product": product_id, "parameter_value": parameter_value_id},
            locale,
        )
