"""
OpenAI Translation Provider.

Translates catalog texts with chat completions, protected by a Circuit
Breaker.
"""
from typing import Mapping, Optional

from circuitbreaker import circuit
from openai import AsyncOpenAI

from internal.domain.value_objects import Locale
from pkg.logger.logger import get_logger


logger = get_logger(__name__)


# Circuit Breaker configuration
FAILURE_THRESHOLD = 5
RECOVERY_TIMEOUT = 60

LANGUAGE_NAMES = {
    Locale.UK: "Ukrainian",
    Locale.RU: "Russian",
    Locale.EN: "English",
}


class OpenAITranslationProvider:
    """
    OpenAI chat completions translation provider.

    The system prompt pins the catalog's conventions: no added words, keep
    technical designations and numbers, keep punctuation as in the source.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-3.5-turbo",
        glossary: Optional[Mapping[str, str]] = None,
        timeout: float = 60.0,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        """
        Initialize the provider.

        Args:
            api_key: OpenAI API key.
            model: Chat model name.
            glossary: Fixed term translations mentioned in the prompt.
            timeout: Request timeout in seconds.
            client: Preconfigured client (tests).
        """
        self._model = model
        self._glossary = dict(glossary or {})
        self._client = client or AsyncOpenAI(api_key=api_key, timeout=timeout)

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

        This method is protected by a Circuit Breaker:
        - Opens after 5 consecutive failures
        - Recovers after 60 seconds

        Args:
            text: Text to translate.
            source_locale: Locale of the text, if known.
            target_locale: Locale to translate into.

        Returns:
            Raw model output, or None when the response has no message.

        Raises:
            CircuitBreakerError: If circuit is open due to failures.
        """
        target_name = LANGUAGE_NAMES[Locale.parse(target_locale)]
        response = await self._client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": self._build_system_prompt(target_name)},
                {"role": "user", "content": f'Translate into {target_name}: "{text}"'},
            ],
            temperature=0,
            top_p=1,
        )

        if not response.choices or response.choices[0].message is None:
            logger.warning("OpenAI response without choices", text=text)
            return None
        return response.choices[0].message.content

    def _build_system_prompt(self, target_name: str) -> str:
        """
        Build the system prompt.

        Args:
            target_name: English name of the target language.

        Returns:
            Prompt text.
        """
        glossary = "\n".join(
            f'   - "{source}" -> "{target}"' for source, target in self._glossary.items()
        )
        prompt = f"""
        You are a professional translator of an electrical goods catalog.
        Translate the text into {target_name} and follow these rules:
        1. Product names: output only the exact translation, never add words.
        2. Keep numbers, technical designations, special symbols and formatting
           unchanged, e.g. "ШВВП 2х0.75 ГОСТ" stays as is.
        3. Keep the punctuation of the source; do not add trailing periods or quotes.
        4. Never add explanations such as "translates as" or "->".
        5. If the translation equals the source, return the source unchanged.
        """
        if glossary:
            prompt += f"""
        6. Fixed translations of technical terms:
{glossary}
        """
        return prompt
