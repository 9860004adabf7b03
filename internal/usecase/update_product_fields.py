"""
Update Product Fields Use Case.

Writes prices and stock quantities to a product and to every one of its
localizations, so all locales of a product show the same numbers.
"""
from typing import Any, Hashable, Optional, Protocol

from internal.domain.entities import EntityId, Product, ProductFieldUpdate
from internal.domain.errors import DomainError
from internal.domain.value_objects import EntityKind, ItemOutcome, Locale
from internal.usecase.batch_driver import RunResult
from internal.usecase.reconciliation import ItemResult
from pkg.logger.logger import get_logger


logger = get_logger(__name__)


class ProductWriter(Protocol):
    """Protocol for the CMS operations the update needs."""

    async def get_by_natural_key(
        self, kind: EntityKind, key: Hashable, locale: Locale
    ) -> Optional[Any]:
        """Find a record by natural key in a locale."""
        ...

    async def update_fields(
        self, kind: EntityKind, entity_id: EntityId, fields: dict[str, Any]
    ) -> Any:
        """Overwrite fields of one record."""
        ...


class UpdateProductFields:
    """
    Use case for propagating locale-invariant product fields.

    For each update:
    1. Finds the product by part number in the lookup locale
    2. Writes the fields to the product
    3. Writes the same fields to each of its localizations
    """

    def __init__(
        self,
        client: ProductWriter,
        locale: Locale,
        progress_every: int = 10,
    ) -> None:
        """
        Initialize the use case.

        Args:
            client: CMS client.
            locale: Locale products are looked up in.
            progress_every: Log progress every N updates.
        """
        self._client = client
        self._locale = Locale.parse(locale)
        self._progress_every = max(1, progress_every)

    async def execute(self, updates: list[ProductFieldUpdate]) -> RunResult:
        """
        Apply updates one by one.

        Args:
            updates: Field updates keyed by part number.

        Returns:
            Aggregated result; per-product errors are counted, not raised.
        """
        result = RunResult()
        total = len(updates)
        logger.info("Product field update started", total=total, locale=self._locale.value)

        for index, update in enumerate(updates, start=1):
            result.record(await self._update_one(update))
            if index % self._progress_every == 0 or index == total:
                logger.info(
                    "Update progress",
                    processed=index,
                    total=total,
                    percent=round(index / total * 100),
                )

        logger.info(
            "Product field update completed",
            succeeded=result.succeeded,
            failed=result.failed,
        )
        return result

    async def _update_one(self, update: ProductFieldUpdate) -> ItemResult:
        fields = update.fields()
        context = {"part_number": update.part_number, "locale": self._locale.value}
        try:
            product: Optional[Product] = await self._client.get_by_natural_key(
                EntityKind.PRODUCT, update.part_number, self._locale
            )
            if product is None:
                logger.error("Product not found", **context)
                return ItemResult(
                    EntityKind.PRODUCT,
                    update.part_number,
                    ItemOutcome.FAILED,
                    f"No product with part number {update.part_number} in '{self._locale}'",
                )

            await self._client.update_fields(EntityKind.PRODUCT, product.id, fields)
            for ref in product.localizations:
                await self._client.update_fields(EntityKind.PRODUCT, ref.id, fields)
        except DomainError as e:
            logger.error("Product field update failed", error=e.message, **context)
            return ItemResult(EntityKind.PRODUCT, update.part_number, ItemOutcome.FAILED, e.message)

        if not product.localizations:
            logger.warning("Product has no localizations", **context)
        logger.info(
            "Product fields updated",
            id=product.id,
            localizations=[ref.id for ref in product.localizations],
            fields=fields,
            **context,
        )
        return ItemResult(EntityKind.PRODUCT, update.part_number, ItemOutcome.SUCCESS)
