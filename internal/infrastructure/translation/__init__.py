"""
Translation provider infrastructure package.
"""
from .openai_client import OpenAITranslationProvider
from .google_client import GoogleTranslationProvider
from .factory import create_translation_provider

__all__ = [
    "OpenAITranslationProvider",
    "GoogleTranslationProvider",
    "create_translation_provider",
]
