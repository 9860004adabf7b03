"""
Translation Gateway Use Case.

Wraps the external translation provider with the catalog's text rules:
pass-through values, output cleaning, term overrides, throttling and
retries.
"""
from typing import Optional, Protocol

from circuitbreaker import CircuitBreakerError
from tenacity import (
    AsyncRetrying,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from internal.domain.errors import TranslationError
from internal.domain.text import (
    TermOverrides,
    clean_key,
    clean_string,
    collapse_arrow_echo,
    is_passthrough,
)
from internal.domain.value_objects import Locale
from pkg.logger.logger import get_logger
from pkg.resilience.throttle import Throttle


logger = get_logger(__name__)


class TranslationProvider(Protocol):
    """Protocol for translation provider operations."""

    async def translate(
        self,
        text: str,
        source_locale: Locale,
        target_locale: Locale,
    ) -> Optional[str]:
        """Translate a single text."""
        ...


class TranslationGateway:
    """
    Gateway to the translation provider.

    Every provider call waits for the throttle first, so consecutive calls
    are spaced by the configured delay. Transient provider failures are
    retried; the final failure and any empty result raise TranslationError.
    """

    def __init__(
        self,
        provider: TranslationProvider,
        overrides: Optional[TermOverrides] = None,
        throttle: Optional[Throttle] = None,
        max_retries: int = 3,
        retry_wait: float = 1.0,
        default_source: Optional[Locale] = None,
    ) -> None:
        """
        Initialize the gateway.

        Args:
            provider: Translation provider.
            overrides: Fixed translations for known problem terms.
            throttle: Spacing between provider calls.
            max_retries: Attempts per text on provider failure.
            retry_wait: Base of the exponential backoff in seconds.
            default_source: Source locale used when a call does not name one.
        """
        self._provider = provider
        self._overrides = overrides or TermOverrides()
        self._throttle = throttle or Throttle(min_interval=0.0, name="translation")
        self._max_retries = max(1, max_retries)
        self._retry_wait = retry_wait
        self._default_source = default_source
        self._provider_calls = 0

    @property
    def provider_calls(self) -> int:
        """Number of texts sent to the provider."""
        return self._provider_calls

    async def translate(
        self,
        text: Optional[str],
        target_locale: "str | Locale",
        source_locale: "Optional[str | Locale]" = None,
        check_passthrough: bool = True,
    ) -> Optional[str]:
        """
        Translate a text.

        Args:
            text: Source text. Empty values are returned unchanged.
            target_locale: Locale to translate into.
            source_locale: Locale of the text, when known.
            check_passthrough: Keep numeric, unit, Latin and dimension
                values unchanged without calling the provider.

        Returns:
            Translated text.

        Raises:
            TranslationError: If the provider fails or returns nothing usable.
        """
        if not isinstance(text, str) or not text.strip():
            return text

        target = Locale.parse(target_locale)
        source = Locale.parse(source_locale) if source_locale else self._default_source

        fixed = self._overrides.lookup(text, target)
        if fixed is not None:
            logger.debug("Term override applied", text=text, translated=fixed)
            return fixed

        if check_passthrough and is_passthrough(text):
            return text

        raw = await self._call_provider(text, source, target)
        if not isinstance(raw, str):
            raise TranslationError(text, target.value, "malformed provider response")

        translated = collapse_arrow_echo(clean_string(raw))
        fixed = self._overrides.lookup(translated, target)
        if fixed is not None:
            translated = fixed

        if not translated:
            raise TranslationError(text, target.value, "empty translation")

        if translated == text:
            logger.info("Translation equals source", text=text, locale=target.value)
        else:
            logger.debug("Text translated", text=text, translated=translated)
        return translated

    async def translate_key(
        self,
        text: str,
        target_locale: "str | Locale",
        source_locale: "Optional[str | Locale]" = None,
    ) -> str:
        """
        Translate a parameter type name.

        Names are always sent to translation; the result goes through
        ``clean_key`` and the override table once more.
        """
        translated = await self.translate(
            text,
            target_locale,
            source_locale=source_locale,
            check_passthrough=False,
        )
        cleaned = clean_key(translated or "")
        fixed = self._overrides.lookup(cleaned, target_locale)
        if fixed is not None:
            return fixed
        if not cleaned:
            raise TranslationError(text, str(target_locale), "empty translation")
        return cleaned

    async def _call_provider(
        self,
        text: str,
        source: Optional[Locale],
        target: Locale,
    ) -> Optional[str]:
        """Call the provider with throttling and retries."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_retries),
            wait=wait_exponential(multiplier=self._retry_wait, max=30),
            retry=retry_if_not_exception_type((TranslationError, CircuitBreakerError)),
            reraise=True,
        )
        result: Optional[str] = None
        try:
            async for attempt in retrying:
                with attempt:
                    await self._throttle.wait()
                    self._provider_calls += 1
                    result = await self._provider.translate(text, source, target)
        except TranslationError:
            raise
        except Exception as e:
            logger.error(
                "Translation provider failed",
                text=text,
                locale=target.value,
                error=str(e),
            )
            raise TranslationError(text, target.value, str(e)) from e
        return result
