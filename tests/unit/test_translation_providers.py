"""
Unit tests for translation providers.
"""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from internal.domain.value_objects import Locale
from internal.infrastructure.translation import (
    GoogleTranslationProvider,
    OpenAITranslationProvider,
    create_translation_provider,
)


def chat_response(content):
    message = SimpleNamespace(content=content)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.fixture
def openai_client():
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=chat_response("Красный"))
    return client


@pytest.fixture
def google_client():
    client = MagicMock()
    client.translate_text = AsyncMock(
        return_value=SimpleNamespace(translations=[SimpleNamespace(translated_text="Красный")])
    )
    return client


class TestOpenAITranslationProvider:
    """Tests for OpenAITranslationProvider."""

    @pytest.mark.asyncio
    async def test_translate(self, openai_client):
        """Test the chat request is deterministic and names the language."""
        provider = OpenAITranslationProvider(api_key="sk-test", client=openai_client)

        result = await provider.translate("Червоний", Locale.UK, Locale.RU)

        assert result == "Красный"
        kwargs = openai_client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "gpt-3.5-turbo"
        assert kwargs["temperature"] == 0
        assert kwargs["top_p"] == 1
        assert kwargs["messages"][1]["content"] == 'Translate into Russian: "Червоний"'

    @pytest.mark.asyncio
    async def test_glossary_in_prompt(self, openai_client):
        """Test fixed terms are listed in the system prompt."""
        provider = OpenAITranslationProvider(
            api_key="sk-test",
            glossary={"Кількість жив": "Количество жил"},
            client=openai_client,
        )

        await provider.translate("Кількість жив", Locale.UK, Locale.RU)

        system = openai_client.chat.completions.create.await_args.kwargs["messages"][0]["content"]
        assert '"Кількість жив" -> "Количество жил"' in system

    @pytest.mark.asyncio
    async def test_no_choices(self, openai_client):
        """Test an empty response yields None."""
        openai_client.chat.completions.create.return_value = SimpleNamespace(choices=[])
        provider = OpenAITranslationProvider(api_key="sk-test", client=openai_client)

        assert await provider.translate("Червоний", Locale.UK, Locale.RU) is None


class TestGoogleTranslationProvider:
    """Tests for GoogleTranslationProvider."""

    @pytest.mark.asyncio
    async def test_translate(self, google_client):
        """Test the v3 request carries parent and language codes."""
        provider = GoogleTranslationProvider("catalog", client=google_client)

        result = await provider.translate("Червоний", Locale.UK, Locale.RU)

        assert result == "Красный"
        google_client.translate_text.assert_awaited_once_with(request={
            "parent": "projects/catalog/locations/global",
            "contents": ["Червоний"],
            "mime_type": "text/plain",
            "target_language_code": "ru",
            "source_language_code": "uk",
        })

    @pytest.mark.asyncio
    async def test_source_detected(self, google_client):
        """Test the source language is omitted when unknown."""
        provider = GoogleTranslationProvider("catalog", client=google_client)

        await provider.translate("Червоний", None, Locale.RU)

        request = google_client.translate_text.await_args.kwargs["request"]
        assert "source_language_code" not in request

    @pytest.mark.asyncio
    async def test_no_translations(self, google_client):
        """Test an empty response yields None."""
        google_client.translate_text.return_value = SimpleNamespace(translations=[])
        provider = GoogleTranslationProvider("catalog", client=google_client)

        assert await provider.translate("Червоний", Locale.UK, Locale.RU) is None


class TestFactory:
    """Tests for create_translation_provider."""

    def test_openai(self):
        """Test the OpenAI provider is built from its key."""
        provider = create_translation_provider("OpenAI", openai_api_key="sk-test")

        assert isinstance(provider, OpenAITranslationProvider)

    def test_google(self):
        """Test the Google provider is built from its project."""
        provider = create_translation_provider("google", google_project_id="catalog")

        assert isinstance(provider, GoogleTranslationProvider)

    def test_missing_credentials(self):
        """Test a provider without credentials is a configuration error."""
        with pytest.raises(ValueError, match="OPENAI_API_KEY"):
            create_translation_provider("openai")
        with pytest.raises(ValueError, match="GOOGLE_CLOUD_PROJECT_ID"):
            create_translation_provider("google")

    def test_unknown(self):
        """Test unknown providers are rejected."""
        with pytest.raises(ValueError, match="Unknown translation provider"):
            create_translation_provider("deepl")
