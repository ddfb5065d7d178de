"""Text generation client wrapping the OpenAI chat completions API."""

from typing import Optional

import httpx
from openai import APIConnectionError, APIError, APIStatusError, APITimeoutError, AsyncOpenAI

from config import settings


class GenerationError(Exception):
    """Remote generation failed or returned an unusable response."""


def get_openai_client(
    api_key: str,
    timeout: Optional[float] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Optional[AsyncOpenAI]:
    """Get OpenAI client, handling placeholders. The SDK's own retries are switched off."""
    if not api_key or "your_" in api_key or api_key == "test-key":
        return None
    return AsyncOpenAI(
        api_key=api_key,
        timeout=timeout or settings.OPENAI_TIMEOUT_SECONDS,
        max_retries=0,
        http_client=http_client,
    )


class TextGenerator:
    """Opaque ``generate(prompt, max_tokens) -> text`` boundary. No retries."""

    def __init__(
        self,
        api_key: str,
        model: str,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.model = model
        self._client = get_openai_client(api_key, timeout, http_client)

    @property
    def configured(self) -> bool:
        return self._client is not None

    async def generate(self, prompt: str, max_tokens: int) -> str:
        if self._client is None:
            raise GenerationError("OpenAI API key missing or unavailable")

        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=int(max_tokens),
            )
        except APIStatusError as exc:
            raise GenerationError(f"API request failed: {exc.status_code}") from exc
        except (APITimeoutError, APIConnectionError) as exc:
            raise GenerationError(f"API request failed: {exc.__class__.__name__}") from exc
        except APIError as exc:
            raise GenerationError(f"API request failed: {exc}") from exc

        if not response.choices:
            raise GenerationError("API response contained no choices")
        content = response.choices[0].message.content
        if not content or not content.strip():
            raise GenerationError("API response was empty")
        return content


def get_text_generator() -> TextGenerator:
    """FastAPI dependency for the configured generator."""
    return TextGenerator(
        api_key=settings.OPENAI_API_KEY,
        model=settings.OPENAI_MODEL,
        timeout=settings.OPENAI_TIMEOUT_SECONDS,
    )
