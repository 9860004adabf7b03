"""
Value Objects for the localization domain.

Value objects are immutable and defined by their attributes.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Hashable

from .errors import DomainValidationError


class Locale(str, Enum):
    """Catalog locales known to the CMS."""

    UK = "uk"
    RU = "ru"
    EN = "en"

    @classmethod
    def parse(cls, code: "str | Locale") -> "Locale":
        """
        Parse a locale code.

        Args:
            code: Locale code such as ``"uk"``.

        Returns:
            Locale member.

        Raises:
            DomainValidationError: If the code is not a known locale.
        """
        if isinstance(code, Locale):
            return code
        try:
            return cls(str(code).strip().lower())
        except ValueError:
            known = ", ".join(member.value for member in cls)
            raise DomainValidationError(
                f"Unknown locale '{code}', expected one of: {known}"
            )

    def __str__(self) -> str:
        return self.value


class EntityKind(str, Enum):
    """Kinds of CMS records the sync works with."""

    PARAMETER_TYPE = "parameter_type"
    PARAMETER_VALUE = "parameter_value"
    PRODUCT = "product"
    PRODUCT_PARAMETER = "product_parameter"
    # Subcategory and product type relations of a product's peer
    PRODUCT_RELATION = "product_relation"
    # Relation targets, only ever looked up by id
    SUBCATEGORY = "subcategory"
    PRODUCT_TYPE = "product_type"

    def __str__(self) -> str:
        return self.value


class CacheScope(str, Enum):
    """Lookup a memoized id belongs to."""

    # (kind, natural key, locale) -> id resolved by find-or-create
    NATURAL = "natural"
    # (kind, id, locale) -> id of the record's peer in that locale
    PEER = "peer"


class ItemOutcome(str, Enum):
    """Result of reconciling one item."""

    SUCCESS = "success"
    ALREADY_EXISTS = "already_exists"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class LocalePair:
    """
    Fixed source/target locale configuration of a run.

    Attributes:
        source: Locale entities are read from.
        target: Locale peers are created in.
    """
    source: Locale
    target: Locale

    def __post_init__(self) -> None:
        """Validate the pair."""
        object.__setattr__(self, "source", Locale.parse(self.source))
        object.__setattr__(self, "target", Locale.parse(self.target))
        if self.source == self.target:
            raise DomainValidationError(
                f"Source and target locale must differ, got '{self.source}' twice"
            )

    @classmethod
    def of(cls, source: "str | Locale", target: "str | Locale") -> "LocalePair":
        """Build a pair from locale codes."""
        return cls(source=Locale.parse(source), target=Locale.parse(target))

    def peer_of(self, locale: "str | Locale") -> Locale:
        """
        Get the other locale of the pair.

        Args:
            locale: One of the two locales.

        Returns:
            The opposite locale.

        Raises:
            DomainValidationError: If the locale is not part of the pair.
        """
        locale = Locale.parse(locale)
        if locale == self.source:
            return self.target
        if locale == self.target:
            return self.source
        raise DomainValidationError(
            f"Locale '{locale}' is not part of {self}"
        )

    def reversed(self) -> "LocalePair":
        """Get the pair with source and target swapped."""
        return LocalePair(source=self.target, target=self.source)

    def __str__(self) -> str:
        return f"{self.source}->{self.target}"


@dataclass(frozen=True)
class CacheKey:
    """
    Key of a memoized localization lookup.

    Either ``(kind, natural key, locale)`` for find-or-create results or
    ``(kind, id, target locale)`` for peer lookups. The scope keeps the two
    apart, so a natural key that happens to equal some record id never
    resolves to that record's peer.
    """
    kind: EntityKind
    key: Hashable
    locale: Locale
    scope: CacheScope = CacheScope.NATURAL

    def __post_init__(self) -> None:
        """Validate cache key constraints."""
        if self.key is None or self.key == "" or self.key == ():
            raise DomainValidationError("Cache key requires a non-empty key")

    def describe(self) -> dict[str, Any]:
        """Fields used when logging the key."""
        return {
            "kind": self.kind.value,
            "key": self.key,
            "locale": self.locale.value,
            "scope": self.scope.value,
        }
