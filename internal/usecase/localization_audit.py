"""
Localization Audit Use Case.

Read-only report of records that lack their localization peer, in both
directions of a locale pair.
"""
from dataclasses import dataclass, field
from typing import Any, Protocol

from internal.domain.entities import Page
from internal.domain.value_objects import EntityKind, Locale, LocalePair
from pkg.logger.logger import get_logger


logger = get_logger(__name__)


AUDITABLE_KINDS = (
    EntityKind.PARAMETER_TYPE,
    EntityKind.PARAMETER_VALUE,
    EntityKind.PRODUCT,
)

SAMPLE_SIZE = 20


@dataclass
class AuditReport:
    """Records without a peer, per direction."""
    kind: EntityKind
    source_locale: Locale
    target_locale: Locale
    source_total: int = 0
    target_total: int = 0
    missing_in_target: list[str] = field(default_factory=list)
    missing_in_source: list[str] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return not self.missing_in_target and not self.missing_in_source

    def to_dict(self, sample_size: int = SAMPLE_SIZE) -> dict[str, Any]:
        """Convert to dictionary with samples of the missing keys."""
        return {
            "kind": self.kind.value,
            "source_locale": self.source_locale.value,
            "target_locale": self.target_locale.value,
            "source_total": self.source_total,
            "target_total": self.target_total,
            "missing_in_target": len(self.missing_in_target),
            "missing_in_source": len(self.missing_in_source),
            "missing_in_target_sample": self.missing_in_target[:sample_size],
            "missing_in_source_sample": self.missing_in_source[:sample_size],
        }


class ListingClient(Protocol):
    """Protocol for paginated listings."""

    async def list_page(
        self, kind: EntityKind, locale: Locale, page: int, page_size: int
    ) -> Page:
        """List one page of records of a locale."""
        ...


class LocalizationAudit:
    """Lists both locales of a kind and reports records without a peer."""

    def __init__(
        self,
        client: ListingClient,
        locales: LocalePair,
        page_size: int = 100,
    ) -> None:
        self._client = client
        self._locales = locales
        self._page_size = page_size

    async def run(self, kind: "EntityKind | str") -> AuditReport:
        """
        Audit one kind.

        Args:
            kind: Parameter type, parameter value or product.

        Returns:
            Audit report.

        Raises:
            ValueError: If the kind cannot be audited.
            RemoteError: If a listing page cannot be fetched.
        """
        kind = EntityKind(kind)
        if kind not in AUDITABLE_KINDS:
            raise ValueError(f"{kind.value} records cannot be audited")

        source, target = self._locales.source, self._locales.target
        source_items = await self._list_all(kind, source)
        target_items = await self._list_all(kind, target)

        report = AuditReport(
            kind=kind,
            source_locale=source,
            target_locale=target,
            source_total=len(source_items),
            target_total=len(target_items),
            missing_in_target=[self._describe(item) for item in source_items if not item.has_peer(target)],
            missing_in_source=[self._describe(item) for item in target_items if not item.has_peer(source)],
        )
        logger.info(
            "Localization audit completed",
            kind=kind.value,
            source_total=report.source_total,
            target_total=report.target_total,
            missing_in_target=len(report.missing_in_target),
            missing_in_source=len(report.missing_in_source),
        )
        return report

    async def run_all(self) -> list[AuditReport]:
        """Audit every auditable kind."""
        return [await self.run(kind) for kind in AUDITABLE_KINDS]

    async def _list_all(self, kind: EntityKind, locale: Locale) -> list[Any]:
        items: list[Any] = []
        page_number = 1
        while True:
            page = await self._client.list_page(kind, locale, page_number, self._page_size)
            items.extend(page.items)
            if page.is_last or not page.items:
                return items
            page_number += 1

    @staticmethod
    def _describe(item: Any) -> str:
        key = item.natural_key
        if isinstance(key, tuple):
            key = key[0]
        return f"{item.id}: {key}"
