"""
Reconciliation Engine Use Case.

Ensures every catalog record of the source locale has its localization
peer in the target locale, and that the peer's relations point at peers
too. The engine creates missing peers and join records and never mutates
a source record. The only update it makes is filling in the relations of
a product peer that already exists.
"""
import asyncio
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Hashable, Optional, Protocol

from internal.domain.entities import (
    EntityId,
    Page,
    ParameterType,
    ParameterValue,
    Product,
    ProductDraft,
    ProductParameter,
)
from internal.domain.errors import (
    DomainError,
    DuplicateConflict,
    MissingDependencyError,
)
from internal.domain.text import derive_value_code, slugify_text
from internal.domain.value_objects import (
    CacheKey,
    CacheScope,
    EntityKind,
    ItemOutcome,
    Locale,
    LocalePair,
)
from internal.usecase.translation_gateway import TranslationGateway
from pkg.logger.logger import get_logger


logger = get_logger(__name__)


class RemoteEntityClient(Protocol):
    """Protocol for CMS record operations."""

    async def get_by_natural_key(
        self, kind: EntityKind, key: Hashable, locale: Locale
    ) -> Optional[Any]:
        """Find a record by natural key in a locale."""
        ...

    async def get_by_id(
        self, kind: EntityKind, entity_id: EntityId, locale: Optional[Locale] = None
    ) -> Optional[Any]:
        """Get a record by id."""
        ...

    async def create(self, kind: EntityKind, fields: dict[str, Any], locale: Locale) -> Any:
        """Create a record in a locale."""
        ...

    async def create_localization(
        self,
        kind: EntityKind,
        entity_id: EntityId,
        target_locale: Locale,
        fields: dict[str, Any],
    ) -> Any:
        """Create the peer of a record in another locale."""
        ...

    async def update_fields(
        self, kind: EntityKind, entity_id: EntityId, fields: dict[str, Any]
    ) -> Any:
        """Overwrite fields of one record."""
        ...

    async def list_page(
        self, kind: EntityKind, locale: Locale, page: int, page_size: int
    ) -> Page:
        """List one page of records of a locale."""
        ...

    async def get_localization_id(
        self, kind: EntityKind, entity_id: EntityId, target_locale: Locale
    ) -> Optional[EntityId]:
        """Get the id of a record's peer in a locale."""
        ...

    async def list_product_parameters(
        self, product_id: EntityId, locale: Locale
    ) -> list[ProductParameter]:
        """List the join records of a product."""
        ...

    async def create_product_parameter(
        self, product_id: EntityId, parameter_value_id: EntityId, locale: Locale
    ) -> ProductParameter:
        """Link a product to a parameter value."""
        ...


class LocalizationCacheProtocol(Protocol):
    """Protocol for the run-scoped localization cache."""

    def get(self, key: CacheKey) -> Optional[EntityId]:
        """Get a memoized id."""
        ...

    def set(self, key: CacheKey, value: EntityId) -> None:
        """Memoize an id."""
        ...

    def has(self, key: CacheKey) -> bool:
        """Check whether a key is memoized."""
        ...

    def lock(self, key: CacheKey) -> asyncio.Lock:
        """Get the lock guarding a key."""
        ...


@dataclass
class ItemResult:
    """Outcome of reconciling one item."""
    kind: EntityKind
    key: Any
    outcome: ItemOutcome
    message: Optional[str] = None


def summarize(outcomes: list[ItemOutcome]) -> ItemOutcome:
    """
    Reduce the outcomes of an item's sub-steps to one outcome.

    Any failure fails the item; otherwise any created record makes it a
    success, any skipped step a skip, and nothing to do means it already
    existed.
    """
    for outcome in (ItemOutcome.FAILED, ItemOutcome.SUCCESS, ItemOutcome.SKIPPED):
        if outcome in outcomes:
            return outcome
    return ItemOutcome.ALREADY_EXISTS


# Kinds reconciled per listed product
PRODUCT_JOBS = (EntityKind.PRODUCT_PARAMETER, EntityKind.PRODUCT_RELATION)


def natural_key_of(kind: EntityKind, entity: Any) -> Any:
    """Natural key of an entity, used for logging and partitioning."""
    if kind in PRODUCT_JOBS and isinstance(entity, Product):
        return entity.part_number
    key = getattr(entity, "natural_key", None)
    return key if key is not None else getattr(entity, "id", None)


class ReconciliationEngine:
    """
    Find-or-create-with-localization over the catalog's record kinds.

    Every check-then-create sequence runs under the cache lock of its
    natural key, so two tasks working on the same key never both decide
    "not found". The cache memoizes only resolutions made by this engine;
    existence is always re-checked against the CMS before creating.
    """

    def __init__(
        self,
        client: RemoteEntityClient,
        gateway: TranslationGateway,
        cache: LocalizationCacheProtocol,
        locales: LocalePair,
    ) -> None:
        """
        Initialize the engine.

        Args:
            client: CMS client.
            gateway: Translation gateway.
            cache: Run-scoped localization cache.
            locales: Source/target locale pair of the run.
        """
        self._client = client
        self._gateway = gateway
        self._cache = cache
        self._locales = locales

    @property
    def locales(self) -> LocalePair:
        return self._locales

    def _locale(self, locale: "Optional[str | Locale]") -> Locale:
        return Locale.parse(locale) if locale else self._locales.source

    # ------------------------------------------------------------------
    # Item boundary
    # ------------------------------------------------------------------

    async def reconcile(self, kind: EntityKind, entity: Any) -> ItemResult:
        """
        Reconcile one listed source-locale record.

        Per-item errors never leave this method: a missing dependency is a
        skip, a duplicate conflict means the peer already exists, and any
        other error is logged with enough context for a manual retry and
        reported as a failure.

        Args:
            kind: Kind of the record; ``PRODUCT_PARAMETER`` relinks a
                product's join records onto its peer and
                ``PRODUCT_RELATION`` fills the relations of its peer.
            entity: Record listed from the source locale.

        Returns:
            Item result.
        """
        key = natural_key_of(kind, entity)
        context = {
            "kind": kind.value,
            "key": str(key),
            "source_locale": self._locales.source.value,
            "target_locale": self._locales.target.value,
        }
        try:
            if kind == EntityKind.PARAMETER_TYPE:
                outcome = await self.localize_parameter_type(entity)
            elif kind == EntityKind.PARAMETER_VALUE:
                outcome = await self.localize_parameter_value(entity)
            elif kind == EntityKind.PRODUCT:
                outcome = await self.localize_product(entity)
            elif kind == EntityKind.PRODUCT_PARAMETER:
                outcome = summarize(await self.sync_product_parameters(entity))
            elif kind == EntityKind.PRODUCT_RELATION:
                outcome = await self.fill_product_relations(entity)
            else:
                raise ValueError(f"{kind.value} records are not reconciled")
        except MissingDependencyError as e:
            logger.warning("Item skipped: missing dependency", error=e.message, **context)
            return ItemResult(kind, key, ItemOutcome.SKIPPED, e.message)
        except DuplicateConflict as e:
            logger.info("Item already exists", error=e.message, **context)
            return ItemResult(kind, key, ItemOutcome.ALREADY_EXISTS)
        except DomainError as e:
            logger.error("Item failed", error=e.message, error_type=type(e).__name__, **context)
            return ItemResult(kind, key, ItemOutcome.FAILED, e.message)
        except Exception as e:
            logger.error("Item failed unexpectedly", error=str(e), error_type=type(e).__name__, **context)
            return ItemResult(kind, key, ItemOutcome.FAILED, str(e) or type(e).__name__)

        return ItemResult(kind, key, outcome)

    # ------------------------------------------------------------------
    # Peer bookkeeping
    # ------------------------------------------------------------------

    async def resolve_localized_id(
        self,
        kind: EntityKind,
        entity_id: EntityId,
        target_locale: "str | Locale",
    ) -> Optional[EntityId]:
        """
        Get the id of a record's peer, memoized.

        A missing peer is not memoized, so a peer created later in the run
        is still found.

        Args:
            kind: Entity kind.
            entity_id: Record id.
            target_locale: Locale of the peer.

        Returns:
            Peer id, or None.
        """
        target = Locale.parse(target_locale)
        key = _peer_key(kind, entity_id, target)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        peer_id = await self._client.get_localization_id(kind, entity_id, target)
        if peer_id is not None:
            self._cache.set(key, peer_id)
        return peer_id

    def _known_peer(self, kind: EntityKind, entity: Any, target: Locale) -> Optional[EntityId]:
        peer_id = entity.peer_id(target)
        if peer_id is not None:
            self._remember_peers(kind, entity.id, entity.locale, peer_id, target)
            return peer_id
        return self._cache.get(_peer_key(kind, entity.id, target))

    def _remember_peers(
        self,
        kind: EntityKind,
        entity_id: EntityId,
        locale: Locale,
        peer_id: EntityId,
        target: Locale,
    ) -> None:
        self._cache.set(_peer_key(kind, entity_id, target), peer_id)
        self._cache.set(_peer_key(kind, peer_id, locale), entity_id)

    async def _create_peer(
        self,
        kind: EntityKind,
        entity: Any,
        target: Locale,
        fields: dict[str, Any],
    ) -> ItemOutcome:
        """Create a localization, treating a duplicate conflict as existing."""
        try:
            peer = await self._client.create_localization(kind, entity.id, target, fields)
        except DuplicateConflict as e:
            logger.info(
                "Localization already exists",
                kind=kind.value,
                id=entity.id,
                target_locale=target.value,
                existing_id=e.existing_id,
            )
            if e.existing_id:
                self._remember_peers(kind, entity.id, entity.locale, e.existing_id, target)
            return ItemOutcome.ALREADY_EXISTS

        self._remember_peers(kind, entity.id, entity.locale, peer.id, target)
        logger.info(
            "Localization created",
            kind=kind.value,
            id=entity.id,
            peer_id=peer.id,
            source_locale=entity.locale.value,
            target_locale=target.value,
        )
        return ItemOutcome.SUCCESS

    # ------------------------------------------------------------------
    # Parameter types
    # ------------------------------------------------------------------

    async def find_or_create_parameter_type(
        self,
        name: str,
        locale: "Optional[str | Locale]" = None,
    ) -> EntityId:
        """
        Find or create a parameter type and make sure it has its peer.

        Args:
            name: Type name in ``locale``.
            locale: Locale of the name; the run's source locale when None.

        Returns:
            ID of the type in ``locale``.

        Raises:
            RemoteError: If the CMS fails.
            TranslationError: If the name cannot be translated.
        """
        locale = self._locale(locale)
        target = self._locales.peer_of(locale)
        name = name.strip()
        key = CacheKey(EntityKind.PARAMETER_TYPE, name, locale)

        async with self._cache.lock(key):
            cached = self._cache.get(key)
            if cached is not None:
                return cached

            existing = await self._client.get_by_natural_key(
                EntityKind.PARAMETER_TYPE, name, locale
            )
            if existing is None:
                existing = await self._client.create(
                    EntityKind.PARAMETER_TYPE,
                    {"name": name, "slug": slugify_text(name)},
                    locale,
                )
                logger.info(
                    "Parameter type created", id=existing.id, type_name=name, locale=locale.value
                )

            await self._ensure_parameter_type_peer(existing, target)
            self._cache.set(key, existing.id)
            return existing.id

    async def localize_parameter_type(self, entity: ParameterType) -> ItemOutcome:
        """
        Create the missing peer of an existing parameter type.

        Returns:
            SUCCESS when a peer was created, ALREADY_EXISTS otherwise.
        """
        target = self._locales.peer_of(entity.locale)
        key = CacheKey(EntityKind.PARAMETER_TYPE, entity.name, entity.locale)
        async with self._cache.lock(key):
            outcome = await self._ensure_parameter_type_peer(entity, target)
            self._cache.set(key, entity.id)
            return outcome

    async def _ensure_parameter_type_peer(
        self,
        entity: ParameterType,
        target: Locale,
    ) -> ItemOutcome:
        if self._known_peer(EntityKind.PARAMETER_TYPE, entity, target) is not None:
            return ItemOutcome.ALREADY_EXISTS

        name = await self._gateway.translate_key(entity.name, target, source_locale=entity.locale)
        fields = {
            "name": name,
            # The slug is locale-invariant: shared by all peers, never retranslated
            "slug": entity.slug or slugify_text(entity.name),
        }
        return await self._create_peer(EntityKind.PARAMETER_TYPE, entity, target, fields)

    # ------------------------------------------------------------------
    # Parameter values
    # ------------------------------------------------------------------

    async def find_or_create_parameter_value(
        self,
        parameter_type_id: EntityId,
        value: str,
        locale: "Optional[str | Locale]" = None,
    ) -> EntityId:
        """
        Find or create a parameter value and make sure it has its peer.

        The owning type's peer is resolved before anything is written, so a
        missing type peer never leaves a half-localized value behind.

        Args:
            parameter_type_id: Owning type id in ``locale``.
            value: Value text in ``locale``.
            locale: Locale of the value; the run's source locale when None.

        Returns:
            ID of the value in ``locale``.

        Raises:
            MissingDependencyError: If the type has no peer in the target locale.
            RemoteError: If the CMS fails.
            TranslationError: If the value cannot be translated.
        """
        locale = self._locale(locale)
        target = self._locales.peer_of(locale)
        value = value.strip()
        natural_key = (value, parameter_type_id)
        key = CacheKey(EntityKind.PARAMETER_VALUE, natural_key, locale)

        async with self._cache.lock(key):
            cached = self._cache.get(key)
            if cached is not None:
                return cached

            existing = await self._client.get_by_natural_key(
                EntityKind.PARAMETER_VALUE, natural_key, locale
            )
            if existing is None:
                await self._require_type_peer(parameter_type_id, target)
                existing = await self._client.create(
                    EntityKind.PARAMETER_VALUE,
                    {
                        "value": value,
                        "code": derive_value_code(value, parameter_type_id),
                        "parameter_type": parameter_type_id,
                    },
                    locale,
                )
                logger.info(
                    "Parameter value created",
                    id=existing.id,
                    value=value,
                    parameter_type_id=parameter_type_id,
                    locale=locale.value,
                )
            if existing.parameter_type_id is None:
                existing.parameter_type_id = parameter_type_id

            await self._ensure_parameter_value_peer(existing, target)
            self._cache.set(key, existing.id)
            return existing.id

    async def localize_parameter_value(self, entity: ParameterValue) -> ItemOutcome:
        """
        Create the missing peer of an existing parameter value.

        Returns:
            SUCCESS when a peer was created, ALREADY_EXISTS otherwise.

        Raises:
            MissingDependencyError: If the owning type has no peer yet.
        """
        target = self._locales.peer_of(entity.locale)
        key = CacheKey(
            EntityKind.PARAMETER_VALUE,
            (entity.value, entity.parameter_type_id),
            entity.locale,
        )
        async with self._cache.lock(key):
            outcome = await self._ensure_parameter_value_peer(entity, target)
            self._cache.set(key, entity.id)
            return outcome

    async def _require_type_peer(
        self,
        parameter_type_id: Optional[EntityId],
        target: Locale,
    ) -> EntityId:
        if parameter_type_id is None:
            raise MissingDependencyError(EntityKind.PARAMETER_TYPE.value, None, target.value)
        type_peer_id = await self.resolve_localized_id(
            EntityKind.PARAMETER_TYPE, parameter_type_id, target
        )
        if type_peer_id is None:
            raise MissingDependencyError(
                EntityKind.PARAMETER_TYPE.value, parameter_type_id, target.value
            )
        return type_peer_id

    async def _ensure_parameter_value_peer(
        self,
        entity: ParameterValue,
        target: Locale,
    ) -> ItemOutcome:
        if self._known_peer(EntityKind.PARAMETER_VALUE, entity, target) is not None:
            return ItemOutcome.ALREADY_EXISTS

        type_peer_id = await self._require_type_peer(entity.parameter_type_id, target)
        value = await self._gateway.translate(entity.value, target, source_locale=entity.locale)
        fields = {
            "value": value,
            "code": entity.code or derive_value_code(entity.value, entity.parameter_type_id),
            "parameter_type": type_peer_id,
        }
        return await self._create_peer(EntityKind.PARAMETER_VALUE, entity, target, fields)

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    async def find_or_create_product(
        self,
        draft: ProductDraft,
        locale: "Optional[str | Locale]" = None,
        additional_images: Optional[list[str]] = None,
    ) -> EntityId:
        """
        Find or create a product by part number and make sure it has its peer.

        Args:
            draft: Product data in ``locale``.
            locale: Locale of the draft; the run's source locale when None.
            additional_images: Uploaded media links.

        Returns:
            ID of the product in ``locale``.

        Raises:
            RemoteError: If the CMS fails.
            TranslationError: If the title or description cannot be translated.
        """
        product_id, _ = await self.ensure_product(draft, locale, additional_images)
        return product_id

    async def ensure_product(
        self,
        draft: ProductDraft,
        locale: "Optional[str | Locale]" = None,
        additional_images: Optional[list[str]] = None,
    ) -> tuple[EntityId, ItemOutcome]:
        """
        Find or create a product and its peer, reporting what was written.

        Returns:
            ID of the product in ``locale`` and SUCCESS when the product or
            its peer was created, ALREADY_EXISTS when both existed.
        """
        locale = self._locale(locale)
        target = self._locales.peer_of(locale)
        key = CacheKey(EntityKind.PRODUCT, draft.part_number, locale)

        async with self._cache.lock(key):
            cached = self._cache.get(key)
            if cached is not None:
                return cached, ItemOutcome.ALREADY_EXISTS

            created = False
            existing = await self._client.get_by_natural_key(
                EntityKind.PRODUCT, draft.part_number, locale
            )
            if existing is None:
                existing = await self._client.create(
                    EntityKind.PRODUCT,
                    self._draft_fields(draft, additional_images or []),
                    locale,
                )
                created = True
                logger.info(
                    "Product created",
                    id=existing.id,
                    part_number=draft.part_number,
                    locale=locale.value,
                )

            peer_outcome = await self._ensure_product_peer(existing, target)
            self._cache.set(key, existing.id)
            outcome = ItemOutcome.SUCCESS if created else peer_outcome
            return existing.id, outcome

    async def localize_product(self, entity: Product) -> ItemOutcome:
        """
        Create the missing peer of an existing product.

        A target-locale product with the same part number counts as the
        peer, so a second product is never created.

        Returns:
            SUCCESS when a peer was created, ALREADY_EXISTS otherwise.
        """
        target = self._locales.peer_of(entity.locale)
        key = CacheKey(EntityKind.PRODUCT, entity.part_number, entity.locale)
        async with self._cache.lock(key):
            outcome = await self._ensure_product_peer(entity, target)
            self._cache.set(key, entity.id)
            return outcome

    async def _find_product_peer(self, product: Product, target: Locale) -> Optional[EntityId]:
        peer_id = self._known_peer(EntityKind.PRODUCT, product, target)
        if peer_id is not None:
            return peer_id

        same_part = await self._client.get_by_natural_key(
            EntityKind.PRODUCT, product.part_number, target
        )
        if same_part is None:
            return None
        logger.info(
            "Product with the same part number found in target locale",
            id=product.id,
            peer_id=same_part.id,
            part_number=product.part_number,
            target_locale=target.value,
        )
        self._remember_peers(EntityKind.PRODUCT, product.id, product.locale, same_part.id, target)
        return same_part.id

    async def _ensure_product_peer(self, product: Product, target: Locale) -> ItemOutcome:
        if await self._find_product_peer(product, target) is not None:
            return ItemOutcome.ALREADY_EXISTS

        fields = await self._localized_product_fields(product, target)
        outcome = await self._create_peer(EntityKind.PRODUCT, product, target, fields)
        if outcome == ItemOutcome.SUCCESS:
            await self.sync_product_parameters(product)
        return outcome

    async def _localized_product_fields(
        self,
        product: Product,
        target: Locale,
    ) -> dict[str, Any]:
        """Build the payload of a product's peer."""
        source = product.locale
        title = await self._gateway.translate(
            product.title, target, source_locale=source, check_passthrough=False
        )
        description = await self._gateway.translate(
            product.description, target, source_locale=source, check_passthrough=False
        )
        subcategory, product_types = await self._localized_relations(product, target)

        fields: dict[str, Any] = {
            "part_number": product.part_number,
            "title": title,
            "description": description,
            "slug": f"{slugify_text(title)}-{target.value}",
            "retail": _number(product.retail),
            "currency": product.currency,
            "image_link": product.image_link,
            "discount": _number(product.discount),
            "in_stock": product.in_stock,
            "additional_images": [{"link": link} for link in product.additional_images],
            "params": await self._translate_params(product.params, source, target),
            "product_types": product_types,
        }
        if subcategory is not None:
            fields["subcategory"] = subcategory
        return {name: value for name, value in fields.items() if value is not None}

    async def _localized_relations(
        self,
        product: Product,
        target: Locale,
    ) -> tuple[Optional[EntityId], list[EntityId]]:
        """Peers of a product's subcategory and product types; relations without a peer are dropped."""
        subcategory = None
        if product.subcategory_id:
            subcategory = await self.resolve_localized_id(
                EntityKind.SUBCATEGORY, product.subcategory_id, target
            )
            if subcategory is None:
                logger.warning(
                    "Subcategory has no localization, relation dropped",
                    part_number=product.part_number,
                    subcategory_id=product.subcategory_id,
                    target_locale=target.value,
                )

        product_types = []
        for product_type_id in product.product_type_ids:
            peer_id = await self.resolve_localized_id(
                EntityKind.PRODUCT_TYPE, product_type_id, target
            )
            if peer_id is None:
                logger.warning(
                    "Product type has no localization, relation dropped",
                    part_number=product.part_number,
                    product_type_id=product_type_id,
                    target_locale=target.value,
                )
                continue
            product_types.append(peer_id)
        return subcategory, product_types

    async def fill_product_relations(self, product: Product) -> ItemOutcome:
        """
        Point an existing peer's subcategory and product types at peers.

        Only relations the peer lacks or has wrong are written; a relation
        the peer has is never cleared.

        Args:
            product: Product in its own locale.

        Returns:
            SUCCESS when the peer was updated, ALREADY_EXISTS when its
            relations were complete.

        Raises:
            MissingDependencyError: If the product has no peer yet.
        """
        target = self._locales.peer_of(product.locale)
        peer_id = await self._find_product_peer(product, target)
        peer = None
        if peer_id is not None:
            peer = await self._client.get_by_id(EntityKind.PRODUCT, peer_id, target)
        if peer is None:
            raise MissingDependencyError(EntityKind.PRODUCT.value, product.id, target.value)

        subcategory, product_types = await self._localized_relations(product, target)
        changes: dict[str, Any] = {}
        if subcategory is not None and peer.subcategory_id != subcategory:
            changes["subcategory"] = subcategory
        missing_types = [t for t in product_types if t not in peer.product_type_ids]
        if missing_types:
            changes["product_types"] = list(peer.product_type_ids) + missing_types
        if not changes:
            return ItemOutcome.ALREADY_EXISTS

        await self._client.update_fields(EntityKind.PRODUCT, peer.id, changes)
        logger.info(
            "Product relations filled",
            part_number=product.part_number,
            peer_id=peer.id,
            target_locale=target.value,
            fields=sorted(changes),
        )
        return ItemOutcome.SUCCESS

    async def _translate_params(self, params: Any, source: Locale, target: Locale) -> Any:
        """Translate free-form params: keys as type names, values through pass-through."""
        if isinstance(params, dict):
            translated = {}
            for name, value in params.items():
                key = await self._gateway.translate_key(name, target, source_locale=source)
                translated[key] = await self._gateway.translate(value, target, source_locale=source)
            return translated
        if isinstance(params, list):
            items = []
            for item in params:
                if not isinstance(item, dict) or "key" not in item:
                    items.append(item)
                    continue
                items.append({
                    **item,
                    "key": await self._gateway.translate_key(item["key"], target, source_locale=source),
                    "value": await self._gateway.translate(item.get("value"), target, source_locale=source),
                })
            return items
        return params

    @staticmethod
    def _draft_fields(draft: ProductDraft, additional_images: list[str]) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "part_number": draft.part_number,
            "title": draft.title,
            "description": draft.description,
            "slug": slugify_text(draft.title),
            "retail": _number(draft.retail),
            "currency": draft.currency,
            "image_link": draft.image_link,
            "params": dict(draft.params),
            "additional_images": [{"link": link} for link in additional_images],
            "subcategory": draft.subcategory_id,
            "product_types": list(draft.product_type_ids),
        }
        return {name: value for name, value in fields.items() if value is not None}

    # ------------------------------------------------------------------
    # Product parameters
    # ------------------------------------------------------------------

    async def link_entities(
        self,
        product_id: EntityId,
        parameter_value_id: EntityId,
        locale: "str | Locale",
    ) -> ItemOutcome:
        """
        Link a product to a parameter value, idempotently.

        Args:
            product_id: Product id in ``locale``.
            parameter_value_id: Parameter value id in ``locale``.
            locale: Locale of both records.

        Returns:
            SUCCESS when the link was created, ALREADY_EXISTS when the pair
            was already linked.

        Raises:
            RemoteError: On any CMS failure other than a duplicate.
        """
        locale = Locale.parse(locale)
        pair = (product_id, parameter_value_id)
        key = CacheKey(EntityKind.PRODUCT_PARAMETER, pair, locale)

        async with self._cache.lock(key):
            if self._cache.has(key):
                return ItemOutcome.ALREADY_EXISTS

            existing = await self._client.get_by_natural_key(
                EntityKind.PRODUCT_PARAMETER, pair, locale
            )
            if existing is not None:
                self._cache.set(key, existing.id)
                return ItemOutcome.ALREADY_EXISTS

            try:
                created = await self._client.create_product_parameter(
                    product_id, parameter_value_id, locale
                )
            except DuplicateConflict as e:
                logger.info(
                    "Product parameter already linked",
                    product_id=product_id,
                    parameter_value_id=parameter_value_id,
                    locale=locale.value,
                )
                if e.existing_id:
                    self._cache.set(key, e.existing_id)
                return ItemOutcome.ALREADY_EXISTS

            self._cache.set(key, created.id)
            logger.debug(
                "Product parameter linked",
                id=created.id,
                product_id=product_id,
                parameter_value_id=parameter_value_id,
                locale=locale.value,
            )
            return ItemOutcome.SUCCESS

    async def sync_product_parameters(self, product: Product) -> list[ItemOutcome]:
        """
        Relink a product's parameter values onto its peer.

        Join records are read fresh from the CMS. Values without a peer are
        skipped; link failures are logged and reported per link.

        Args:
            product: Product in its own locale.

        Returns:
            One outcome per join record, or ``[SKIPPED]`` when the product
            has no peer yet.
        """
        target = self._locales.peer_of(product.locale)
        peer_id = await self._find_product_peer(product, target)
        if peer_id is None:
            logger.info(
                "Product has no localization, parameters skipped",
                id=product.id,
                part_number=product.part_number,
                target_locale=target.value,
            )
            return [ItemOutcome.SKIPPED]

        outcomes = []
        for join in await self._client.list_product_parameters(product.id, product.locale):
            value_peer_id = await self.resolve_localized_id(
                EntityKind.PARAMETER_VALUE, join.parameter_value_id, target
            )
            if value_peer_id is None:
                logger.warning(
                    "Parameter value has no localization, link skipped",
                    part_number=product.part_number,
                    parameter_value_id=join.parameter_value_id,
                    target_locale=target.value,
                )
                outcomes.append(ItemOutcome.SKIPPED)
                continue
            try:
                outcomes.append(await self.link_entities(peer_id, value_peer_id, target))
            except DomainError as e:
                logger.error(
                    "Product parameter link failed",
                    part_number=product.part_number,
                    product_id=peer_id,
                    parameter_value_id=value_peer_id,
                    target_locale=target.value,
                    error=e.message,
                )
                outcomes.append(ItemOutcome.FAILED)
        return outcomes


def _peer_key(kind: EntityKind, entity_id: EntityId, locale: Locale) -> CacheKey:
    return CacheKey(kind, entity_id, locale, CacheScope.PEER)


def _number(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None
