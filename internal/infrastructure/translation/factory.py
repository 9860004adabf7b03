"""
Translation provider factory.
"""
from typing import Mapping, Optional, Union

from .google_client import GoogleTranslationProvider
from .openai_client import OpenAITranslationProvider


PROVIDERS = ("openai", "google")


def create_translation_provider(
    name: str,
    openai_api_key: str = "",
    openai_model: str = "gpt-3.5-turbo",
    glossary: Optional[Mapping[str, str]] = None,
    google_project_id: str = "",
    google_location: str = "global",
) -> Union[OpenAITranslationProvider, GoogleTranslationProvider]:
    """
    Create the configured translation provider.

    Args:
        name: Provider name, ``openai`` or ``google``.
        openai_api_key: OpenAI API key.
        openai_model: OpenAI chat model.
        glossary: Fixed term translations for the OpenAI prompt.
        google_project_id: Google Cloud project ID.
        google_location: Google Cloud Translation location.

    Returns:
        Translation provider.

    Raises:
        ValueError: If the provider is unknown or its credentials are missing.
    """
    name = name.strip().lower()
    if name == "openai":
        if not openai_api_key:
            raise ValueError("OPENAI_API_KEY is required for the openai provider")
        return OpenAITranslationProvider(
            api_key=openai_api_key,
            model=openai_model,
            glossary=glossary,
        )
    if name == "google":
        if not google_project_id:
            raise ValueError("GOOGLE_CLOUD_PROJECT_ID is required for the google provider")
        return GoogleTranslationProvider(
            project_id=google_project_id,
            location=google_location,
        )
    raise ValueError(
        f"Unknown translation provider '{name}', expected one of: {', '.join(PROVIDERS)}"
    )
