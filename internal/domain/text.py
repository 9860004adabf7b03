"""
Text rules for catalog localization.

Pure functions deciding what must not be translated, how provider output
is cleaned, and how locale-invariant slugs and codes are derived.
"""
import re
from typing import Mapping, Optional

from slugify import slugify

from .value_objects import Locale


NUMERIC_PATTERN = re.compile(r"^[\d.,\-+\s]+$")
UNIT_PATTERN = re.compile(
    r"^\d+([.,]\d+)?\s*(мм|см|м|кг|г|°[CС]|%|л|mm|cm|m|kg|g|l)$",
    re.IGNORECASE,
)
LATIN_PATTERN = re.compile(r"[a-zA-Z]")
# "2х0.75": the Cyrillic х between digits is a dimension sign, not a word
DIMENSION_PATTERN = re.compile(r"\d\s*[хХ×]\s*\d")


def is_passthrough(text: Optional[str]) -> bool:
    """
    Check whether a value must be kept as is instead of being translated.

    A value passes through when it is purely numeric/punctuation, a number
    with a unit suffix, contains any Latin letter, or contains a dimension
    marking such as ``2х0.75``.

    Args:
        text: Candidate value.

    Returns:
        True if the value must not be sent to translation.
    """
    if not isinstance(text, str):
        return True
    value = text.strip()
    if not value:
        return True
    return bool(
        NUMERIC_PATTERN.match(value)
        or UNIT_PATTERN.match(value)
        or LATIN_PATTERN.search(value)
        or DIMENSION_PATTERN.search(value)
    )


def clean_string(text: str) -> str:
    """Drop double quotes and backslashes, then trim whitespace."""
    return re.sub(r'["\\]', "", text).strip()


def collapse_arrow_echo(text: str) -> str:
    """
    Collapse a source echoed as ``"A -> A"`` into ``"A"``.

    Any other text is returned unchanged.
    """
    if "->" not in text:
        return text
    parts = [part.strip() for part in text.split("->")]
    if len(parts) == 2 and parts[0] == parts[1]:
        return parts[0]
    return text


def clean_key(text: str) -> str:
    """
    Clean a translated parameter type name.

    Collapses ``"X - X"`` into ``"X"`` and drops one trailing dot.
    """
    cleaned = clean_string(text)
    parts = cleaned.split(" - ")
    if len(parts) == 2 and parts[0] == parts[1]:
        cleaned = parts[0]
    return re.sub(r"\.$", "", cleaned)


def slugify_text(text: str) -> str:
    """Transliterate and slugify a text (``"Кількість жив"`` -> ``"kilkist-zhiv"``)."""
    return slugify(text, lowercase=True)


def derive_value_code(value: str, parameter_type_id: str) -> str:
    """
    Derive the locale-invariant code of a parameter value.

    The owning type id suffix keeps codes unique per (type, value).
    """
    return f"{slugify_text(value)}-{parameter_type_id}"


class TermOverrides:
    """
    Fixed translations for known problem terms.

    The table maps a target locale to ``{source term: fixed translation}``.
    Lookups compare cleaned strings, so quoting noise does not defeat them.
    """

    def __init__(self, table: Optional[Mapping[str, Mapping[str, str]]] = None) -> None:
        self._table: dict[Locale, dict[str, str]] = {}
        for locale, terms in (table or {}).items():
            self._table[Locale.parse(locale)] = {
                clean_string(source): target for source, target in terms.items()
            }

    def lookup(self, text: str, target_locale: "str | Locale") -> Optional[str]:
        """
        Get the fixed translation of a term.

        Args:
            text: Source text or a provider result.
            target_locale: Locale the text is being translated into.

        Returns:
            The fixed counterpart, or None when no override applies.
        """
        terms = self._table.get(Locale.parse(target_locale), {})
        return terms.get(clean_string(text))

    def __len__(self) -> int:
        return sum(len(terms) for terms in self._table.values())
