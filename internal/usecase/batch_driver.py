"""
Batch Driver Use Case.

Pages through the source-locale records of one kind and drives the
reconciliation engine over each of them.
"""
import asyncio
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Optional, Protocol

from internal.domain.entities import Page
from internal.domain.value_objects import EntityKind, ItemOutcome, Locale, LocalePair
from internal.usecase.reconciliation import PRODUCT_JOBS, ItemResult, natural_key_of
from pkg.logger.logger import get_logger


logger = get_logger(__name__)


# Job name -> kind; order is the dependency order of a full run
JOBS: dict[str, EntityKind] = {
    "parameter-types": EntityKind.PARAMETER_TYPE,
    "parameter-values": EntityKind.PARAMETER_VALUE,
    "products": EntityKind.PRODUCT,
    "product-parameters": EntityKind.PRODUCT_PARAMETER,
    "product-relations": EntityKind.PRODUCT_RELATION,
}


def parse_job(job: "str | EntityKind") -> EntityKind:
    """
    Resolve a job name or kind.

    Raises:
        ValueError: If the job is unknown.
    """
    if isinstance(job, EntityKind):
        if job not in JOBS.values():
            raise ValueError(f"No batch job for {job.value}")
        return job
    try:
        return JOBS[job]
    except KeyError:
        raise ValueError(
            f"Unknown job '{job}', expected one of: {', '.join(JOBS)}"
        ) from None


@dataclass
class ItemError:
    """A failed or skipped item, kept for manual retry."""
    kind: str
    key: str
    message: str


@dataclass
class RunResult:
    """Aggregated outcome of a batch run."""
    succeeded: int = 0
    already_exists: int = 0
    skipped: int = 0
    failed: int = 0
    errors: list[ItemError] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.succeeded + self.already_exists + self.skipped + self.failed

    @property
    def exit_code(self) -> int:
        """A completed run exits 0, even with per-item failures."""
        return 0

    def record(self, item: ItemResult) -> None:
        """Count one item outcome."""
        if item.outcome == ItemOutcome.SUCCESS:
            self.succeeded += 1
        elif item.outcome == ItemOutcome.ALREADY_EXISTS:
            self.already_exists += 1
        elif item.outcome == ItemOutcome.SKIPPED:
            self.skipped += 1
        else:
            self.failed += 1
        if item.outcome in (ItemOutcome.FAILED, ItemOutcome.SKIPPED) and item.message:
            self.errors.append(ItemError(item.kind.value, str(item.key), item.message))

    def merge(self, other: "RunResult") -> "RunResult":
        """Get the sum of two results."""
        return RunResult(
            succeeded=self.succeeded + other.succeeded,
            already_exists=self.already_exists + other.already_exists,
            skipped=self.skipped + other.skipped,
            failed=self.failed + other.failed,
            errors=self.errors + other.errors,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "succeeded": self.succeeded,
            "already_exists": self.already_exists,
            "skipped": self.skipped,
            "failed": self.failed,
            "processed": self.processed,
            "errors": [asdict(error) for error in self.errors],
        }


class PageSource(Protocol):
    """Protocol for paginated listings."""

    async def list_page(
        self, kind: EntityKind, locale: Locale, page: int, page_size: int
    ) -> Page:
        """List one page of records of a locale."""
        ...


class Reconciler(Protocol):
    """Protocol for the per-item reconciliation step."""

    async def reconcile(self, kind: EntityKind, entity: Any) -> ItemResult:
        """Reconcile one record."""
        ...


class BatchDriver:
    """
    Drives reconciliation over every source-locale record of a kind.

    Items are processed in page order. With ``max_concurrency > 1`` the
    items of a page are partitioned by natural key and the partitions run
    concurrently; one key is never processed by two tasks at once.
    Pagination errors are fatal and propagate to the caller.
    """

    def __init__(
        self,
        client: PageSource,
        engine: Reconciler,
        locales: LocalePair,
        page_size: int = 100,
        progress_every: int = 10,
        max_concurrency: int = 1,
    ) -> None:
        """
        Initialize the driver.

        Args:
            client: Source of paginated listings.
            engine: Reconciliation engine.
            locales: Source/target locale pair of the run.
            page_size: Listing page size.
            progress_every: Log progress every N items.
            max_concurrency: Number of natural-key partitions processed at once.
        """
        self._client = client
        self._engine = engine
        self._locales = locales
        self._page_size = page_size
        self._progress_every = max(1, progress_every)
        self._max_concurrency = max(1, max_concurrency)

    async def run(self, job: "str | EntityKind") -> RunResult:
        """
        Run one job.

        Args:
            job: Job name (``parameter-types``, ``parameter-values``,
                ``products``, ``product-parameters``, ``product-relations``)
                or kind.

        Returns:
            Aggregated result.

        Raises:
            RemoteError: If a listing page cannot be fetched.
        """
        kind = parse_job(job)
        # Join records and relations are reconciled per product
        list_kind = EntityKind.PRODUCT if kind in PRODUCT_JOBS else kind
        result = RunResult()
        started = time.monotonic()
        total: Optional[int] = None

        logger.info(
            "Batch run started",
            kind=kind.value,
            source_locale=self._locales.source.value,
            target_locale=self._locales.target.value,
        )

        def record(item: ItemResult) -> None:
            result.record(item)
            if result.processed % self._progress_every == 0:
                self._log_progress(kind, result, total)

        page_number = 1
        while True:
            page = await self._client.list_page(
                list_kind, self._locales.source, page_number, self._page_size
            )
            total = page.total or total
            await self._process(kind, page.items, record)
            if page.is_last or not page.items:
                break
            page_number += 1

        logger.info(
            "Batch run completed",
            kind=kind.value,
            succeeded=result.succeeded,
            already_exists=result.already_exists,
            skipped=result.skipped,
            failed=result.failed,
            processed=result.processed,
            duration_seconds=round(time.monotonic() - started, 2),
        )
        return result

    async def run_all(self) -> RunResult:
        """
        Run every job in dependency order.

        Types come before values and products before their join records, so
        one full pass resolves every dependency created in that pass.
        """
        result = RunResult()
        for job in JOBS:
            result = result.merge(await self.run(job))
        return result

    async def _process(
        self,
        kind: EntityKind,
        items: list[Any],
        record: Callable[[ItemResult], None],
    ) -> None:
        if self._max_concurrency == 1:
            for item in items:
                record(await self._engine.reconcile(kind, item))
            return

        partitions: dict[Any, list[Any]] = {}
        for item in items:
            partitions.setdefault(natural_key_of(kind, item), []).append(item)

        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def worker(partition: list[Any]) -> None:
            async with semaphore:
                for item in partition:
                    record(await self._engine.reconcile(kind, item))

        await asyncio.gather(*(worker(partition) for partition in partitions.values()))

    def _log_progress(self, kind: EntityKind, result: RunResult, total: Optional[int]) -> None:
        logger.info(
            "Batch progress",
            kind=kind.value,
            processed=result.processed,
            total=total,
            percent=round(result.processed / total * 100) if total else None,
            succeeded=result.succeeded,
            already_exists=result.already_exists,
            skipped=result.skipped,
            failed=result.failed,
        )
