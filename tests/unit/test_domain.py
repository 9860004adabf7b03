"""
Unit tests for domain entities and value objects.
"""
import pytest
from decimal import Decimal

from internal.domain.entities import (
    LocalizationRef,
    MediaUploadResult,
    Page,
    ParameterType,
    ParameterValue,
    Product,
    ProductDraft,
)
from internal.domain.errors import (
    DomainValidationError,
    DuplicateConflict,
    MissingDependencyError,
    RemoteError,
    TranslationError,
)
from internal.domain.value_objects import CacheKey, CacheScope, EntityKind, Locale, LocalePair


class TestLocale:
    """Tests for Locale value object."""

    def test_parse(self):
        """Test locale codes are normalized."""
        assert Locale.parse("uk") == Locale.UK
        assert Locale.parse(" RU ") == Locale.RU
        assert Locale.parse(Locale.EN) is Locale.EN

    def test_parse_unknown(self):
        """Test unknown codes are rejected."""
        with pytest.raises(DomainValidationError) as exc_info:
            Locale.parse("de")

        assert "Unknown locale 'de'" in str(exc_info.value)

    def test_str(self):
        """Test string conversion gives the code."""
        assert str(Locale.UK) == "uk"


class TestLocalePair:
    """Tests for LocalePair value object."""

    def test_of(self):
        """Test building a pair from codes."""
        pair = LocalePair.of("uk", "ru")

        assert pair.source == Locale.UK
        assert pair.target == Locale.RU
        assert str(pair) == "uk->ru"

    def test_same_locale_rejected(self):
        """Test source and target must differ."""
        with pytest.raises(DomainValidationError):
            LocalePair.of("uk", "uk")

    def test_peer_of(self):
        """Test each locale maps to the other one."""
        pair = LocalePair.of("uk", "ru")

        assert pair.peer_of("uk") == Locale.RU
        assert pair.peer_of(Locale.RU) == Locale.UK

    def test_peer_of_foreign_locale(self):
        """Test a locale outside the pair is rejected."""
        with pytest.raises(DomainValidationError):
            LocalePair.of("uk", "ru").peer_of("en")

    def test_reversed(self):
        """Test the reverse direction of a pair."""
        assert LocalePair.of("uk", "ru").reversed() == LocalePair.of("ru", "uk")


class TestCacheKey:
    """Tests for CacheKey value object."""

    def test_equality(self):
        """Test keys with equal parts are equal and hash alike."""
        first = CacheKey(EntityKind.PARAMETER_VALUE, ("5 мм", "3"), Locale.UK)
        second = CacheKey(EntityKind.PARAMETER_VALUE, ("5 мм", "3"), Locale.UK)

        assert first == second
        assert {first: "1"}[second] == "1"

    def test_describe(self):
        """Test the logging description."""
        key = CacheKey(EntityKind.PRODUCT, "KBL-3X25", Locale.RU)

        assert key.describe() == {
            "kind": "product",
            "key": "KBL-3X25",
            "locale": "ru",
            "scope": "natural",
        }

    def test_scopes_are_distinct(self):
        """Test a natural key never matches a peer lookup of the same value."""
        natural = CacheKey(EntityKind.PRODUCT, "2", Locale.UK)
        peer = CacheKey(EntityKind.PRODUCT, "2", Locale.UK, CacheScope.PEER)

        assert natural != peer
        assert {natural: "1"}.get(peer) is None


class TestLocalizable:
    """Tests for peer lookup on localizable records."""

    def test_peer_id(self):
        """Test the peer of a locale is found."""
        parameter_type = ParameterType(
            id="1",
            name="Колір",
            slug="kolir",
            locale=Locale.UK,
            localizations=[LocalizationRef(id="2", locale=Locale.RU)],
        )

        assert parameter_type.peer_id("ru") == "2"
        assert parameter_type.has_peer(Locale.RU)
        assert not parameter_type.has_peer(Locale.EN)

    def test_natural_keys(self):
        """Test natural keys per kind."""
        value = ParameterValue(id="5", value="Червоний", code="chervonii-1", locale=Locale.UK, parameter_type_id="1")
        product = Product(id="9", part_number="KBL-3X25", title="Кабель", locale=Locale.UK)

        assert value.natural_key == ("Червоний", "1")
        assert product.natural_key == "KBL-3X25"

    def test_product_requires_part_number(self):
        """Test a product without part number is invalid."""
        with pytest.raises(DomainValidationError) as exc_info:
            Product(id="9", part_number="", title="Кабель", locale=Locale.UK)

        assert "part_number is required" in str(exc_info.value)


class TestProductDraft:
    """Tests for ProductDraft."""

    def test_from_dict(self):
        """Test a JSON draft is parsed."""
        draft = ProductDraft.from_dict({
            "part_number": 12345,
            "title": "Кабель мідний",
            "retail": 125.5,
            "currency": "UAH",
            "params": {"Колір": "Червоний", "Кількість жил": 3},
            "additional_images": "https://files.example.com/kbl.zip",
            "subcategory": 4,
            "product_types": [8, 9],
        })

        assert draft.part_number == "12345"
        assert draft.retail == Decimal("125.5")
        assert draft.params == {"Колір": "Червоний", "Кількість жил": "3"}
        assert draft.media_archive_url == "https://files.example.com/kbl.zip"
        assert draft.subcategory_id == "4"
        assert draft.product_type_ids == ["8", "9"]

    def test_from_dict_param_list(self):
        """Test params given as key/value items."""
        draft = ProductDraft.from_dict({
            "part_number": "KBL",
            "title": "Кабель",
            "params": [{"key": "Колір", "value": "Червоний"}],
        })

        assert draft.params == {"Колір": "Червоний"}

    def test_title_required(self):
        """Test a draft without title is invalid."""
        with pytest.raises(DomainValidationError) as exc_info:
            ProductDraft.from_dict({"part_number": "KBL"})

        assert "title is required" in str(exc_info.value)


class TestPage:
    """Tests for Page."""

    def test_is_last(self):
        """Test the last page is detected."""
        assert Page(items=[1], page=3, page_count=3).is_last
        assert not Page(items=[1], page=1, page_count=3).is_last
        assert Page(items=[], page=1, page_count=0).is_last


class TestMediaUploadResult:
    """Tests for MediaUploadResult."""

    def test_links(self):
        """Test links are collected from the stored records."""
        result = MediaUploadResult(media_records=[{"link": "a"}, {"name": "b"}, {"link": "c"}])

        assert result.links == ["a", "c"]
        assert not result.error


class TestErrors:
    """Tests for domain errors."""

    def test_duplicate_is_remote_error(self):
        """Test duplicates can be handled as remote errors."""
        error = DuplicateConflict("already exists", existing_id="7", status_code=409)

        assert isinstance(error, RemoteError)
        assert error.existing_id == "7"
        assert error.status_code == 409

    def test_translation_error_message(self):
        """Test the message names the text and locale."""
        error = TranslationError("Колір", "ru", "timeout")

        assert error.message == "Translation of 'Колір' to 'ru' failed: timeout"

    def test_missing_dependency_message(self):
        """Test the message names the missing peer."""
        error = MissingDependencyError("parameter_type", "3", "ru")

        assert str(error) == "parameter_type 3 has no localization in 'ru'"
