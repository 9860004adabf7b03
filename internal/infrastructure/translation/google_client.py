"""
Google Cloud Translation Provider.

Translates catalog texts with the Cloud Translation v3 API, protected by a
Circuit Breaker.
"""
from typing import Optional

from circuitbreaker import circuit
from google.cloud import translate_v3

from internal.domain.value_objects import Locale
from pkg.logger.logger import get_logger


logger = get_logger(__name__)


# Circuit Breaker configuration
FAILURE_THRESHOLD = 5
RECOVERY_TIMEOUT = 60


class GoogleTranslationProvider:
    """Google Cloud Translation (v3) provider."""

    def __init__(
        self,
        project_id: str,
        location: str = "global",
        client: Optional[translate_v3.TranslationServiceAsyncClient] = None,
    ) -> None:
        """
        Initialize the provider.

        Args:
            project_id: Google Cloud project ID.
            location: Translation API location.
            client: Preconfigured client (tests).
        """
        self._parent = f"projects/{project_id}/locations/{location}"
        self._client = client

    async def initialize(self) -> None:
        """Create the API client."""
        self._client = translate_v3.TranslationServiceAsyncClient()
        logger.info("Google Translation client initialized", parent=self._parent)

    @circuit(
        failure_threshold=FAILURE_THRESHOLD,
        recovery_timeout=RECOVERY_TIMEOUT,
    )
    async def translate(
        self,
        text: str,
        source_locale: Optional[Locale],
        target_locale: Locale,
    ) -> Optional[str]:
        """
        Translate a single text.

        Args:
            text: Text to translate.
            source_locale: Locale of the text; detected by the API when None.
            target_locale: Locale to translate into.

        Returns:
            Translated text, or None when the API returns no translation.

        Raises:
            CircuitBreakerError: If circuit is open due to failures.
        """
        if self._client is None:
            await self.initialize()

        request = {
            "parent": self._parent,
            "contents": [text],
            "mime_type": "text/plain",
            "target_language_code": Locale.parse(target_locale).value,
        }
        if source_locale is not None:
            request["source_language_code"] = Locale.parse(source_locale).value

        response = await self._client.translate_text(request=request)
        if not response.translations:
            logger.warning("Google response without translations", text=text)
            return None
        return response.translations[0].translated_text
