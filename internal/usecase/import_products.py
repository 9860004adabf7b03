"""
Import Products Use Case.

Creates products from drafts in the source locale, uploads their media
archives, attaches parameters and localizes the result.
"""
from typing import Optional, Protocol

from internal.domain.entities import MediaUploadResult, Product, ProductDraft
from internal.domain.errors import DomainError, MediaUploadError, MissingDependencyError
from internal.domain.value_objects import EntityKind, ItemOutcome, Locale, LocalePair
from internal.usecase.batch_driver import RunResult
from internal.usecase.reconciliation import ItemResult, ReconciliationEngine, summarize
from pkg.logger.logger import get_logger


logger = get_logger(__name__)


PROGRESS_EVERY = 10


class MediaUploader(Protocol):
    """Protocol for media archive uploads."""

    async def upload(
        self,
        archive_url: str,
        product_title: str,
        folder: str,
    ) -> MediaUploadResult:
        """Upload the files of a media archive."""
        ...


class ImportProducts:
    """
    Use case for importing product drafts.

    For each draft:
    1. Uploads the media archive; a broken archive skips the product
    2. Finds or creates every parameter type and value
    3. Finds or creates the product and its peer
    4. Links the parameter values and relinks them onto the peer
    """

    def __init__(
        self,
        engine: ReconciliationEngine,
        uploader: Optional[MediaUploader],
        locales: LocalePair,
        media_folder: str = "products",
        progress_every: int = PROGRESS_EVERY,
    ) -> None:
        """
        Initialize the use case.

        Args:
            engine: Reconciliation engine.
            uploader: Media uploader; drafts with archives fail without one.
            locales: Locale pair; drafts are in the source locale.
            media_folder: Destination folder of uploaded media.
            progress_every: Log progress every N drafts.
        """
        self._engine = engine
        self._uploader = uploader
        self._locales = locales
        self._media_folder = media_folder
        self._progress_every = max(1, progress_every)

    async def execute(self, drafts: list[ProductDraft]) -> RunResult:
        """
        Import drafts one by one.

        Args:
            drafts: Products to import.

        Returns:
            Aggregated result; per-draft errors are counted, not raised.
        """
        result = RunResult()
        total = len(drafts)
        logger.info("Product import started", total=total, locale=self._locales.source.value)

        for index, draft in enumerate(drafts, start=1):
            result.record(await self._import_one(draft))
            if index % self._progress_every == 0 or index == total:
                logger.info(
                    "Import progress",
                    processed=index,
                    total=total,
                    percent=round(index / total * 100),
                )

        logger.info(
            "Product import completed",
            succeeded=result.succeeded,
            already_exists=result.already_exists,
            skipped=result.skipped,
            failed=result.failed,
        )
        return result

    async def _import_one(self, draft: ProductDraft) -> ItemResult:
        source: Locale = self._locales.source
        context = {
            "part_number": draft.part_number,
            "source_locale": source.value,
            "target_locale": self._locales.target.value,
        }
        try:
            links = await self._upload_media(draft)
            if links is None:
                logger.warning("Product skipped: media archive error", title=draft.title, **context)
                return ItemResult(
                    EntityKind.PRODUCT,
                    draft.part_number,
                    ItemOutcome.SKIPPED,
                    f"Media archive error: {draft.media_archive_url}",
                )

            value_ids = []
            for name, value in draft.params.items():
                type_id = await self._engine.find_or_create_parameter_type(name, source)
                value_ids.append(
                    await self._engine.find_or_create_parameter_value(type_id, value, source)
                )

            product_id, product_outcome = await self._engine.ensure_product(
                draft, source, additional_images=links
            )

            outcomes = [product_outcome]
            outcomes += [
                await self._engine.link_entities(product_id, value_id, source)
                for value_id in value_ids
            ]
            product = Product(
                id=product_id,
                part_number=draft.part_number,
                title=draft.title,
                locale=source,
            )
            outcomes.extend(await self._engine.sync_product_parameters(product))
        except MissingDependencyError as e:
            logger.warning("Product skipped: missing dependency", error=e.message, **context)
            return ItemResult(EntityKind.PRODUCT, draft.part_number, ItemOutcome.SKIPPED, e.message)
        except DomainError as e:
            logger.error("Product import failed", error=e.message, error_type=type(e).__name__, **context)
            return ItemResult(EntityKind.PRODUCT, draft.part_number, ItemOutcome.FAILED, e.message)
        except Exception as e:
            logger.error(
                "Product import failed unexpectedly",
                error=str(e),
                error_type=type(e).__name__,
                **context,
            )
            return ItemResult(
                EntityKind.PRODUCT, draft.part_number, ItemOutcome.FAILED, str(e) or type(e).__name__
            )

        outcome = summarize(outcomes)
        logger.info("Product imported", id=product_id, outcome=outcome.value, **context)
        return ItemResult(EntityKind.PRODUCT, draft.part_number, outcome)

    async def _upload_media(self, draft: ProductDraft) -> Optional[list[str]]:
        """Upload the draft's archive; None means the product must be skipped."""
        if not draft.media_archive_url:
            return []
        if self._uploader is None:
            raise MediaUploadError(draft.media_archive_url, "no media uploader configured")
        try:
            uploaded = await self._uploader.upload(
                draft.media_archive_url, draft.title, self._media_folder
            )
        except MediaUploadError as e:
            logger.warning("Media upload failed", error=e.message, part_number=draft.part_number)
            return None
        if uploaded.error:
            return None
        return uploaded.links
