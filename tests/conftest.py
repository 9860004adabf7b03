"""
Pytest configuration and fixtures.
"""
import pytest

from internal.domain.text import TermOverrides
from internal.domain.value_objects import Locale, LocalePair
from internal.infrastructure.cache.localization_cache import LocalizationCache
from internal.usecase.reconciliation import ReconciliationEngine
from internal.usecase.translation_gateway import TranslationGateway
from tests.fakes import FakeCMS, FakeTranslator


@pytest.fixture
def locales():
    """Default uk -> ru locale pair."""
    return LocalePair(source=Locale.UK, target=Locale.RU)


@pytest.fixture
def term_overrides():
    """Tenant terminology overrides."""
    return TermOverrides({
        "ru": {
            "Кількість жив": "Количество жил",
            "Количество живых": "Количество жил",
        },
        "uk": {"Количество жил": "Кількість жив"},
    })


@pytest.fixture
def translator():
    """Translation provider double with a few catalog terms."""
    return FakeTranslator({
        "Колір": "Цвет",
        "Червоний": "Красный",
        "Переріз жил": "Сечение жил",
        "Кабель мідний": "Кабель медный",
    })


@pytest.fixture
def gateway(translator, term_overrides):
    """Translation gateway without throttling or retry backoff."""
    return TranslationGateway(
        translator,
        overrides=term_overrides,
        max_retries=3,
        retry_wait=0,
        default_source=Locale.UK,
    )


@pytest.fixture
def cms():
    """In-memory CMS backend."""
    return FakeCMS()


@pytest.fixture
def cache():
    """Run-scoped localization cache."""
    return LocalizationCache()


@pytest.fixture
def engine(cms, gateway, cache, locales):
    """Reconciliation engine over the fake backend."""
    return ReconciliationEngine(cms, gateway, cache, locales)
