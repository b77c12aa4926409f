"""
Completion Transports

A transport sends one prompt to a language model and returns a
CompletionResult. Transports never raise for expected failures; they
classify the failure where it happens:

- NETWORK: connection failure, timeout, non-2xx status
- RESPONSE_FORMAT: the envelope is not JSON or has no content field
- UNKNOWN: anything else

Two backends are provided:
- HttpCompletionTransport: OpenAI-style chat-completions JSON API (DeepSeek by default)
- GeminiCompletionTransport: Google Generative AI
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Optional

import google.generativeai as genai
import httpx
import structlog
from google.api_core import exceptions as google_exceptions

from expense_tracker.config import AdvisorSettings, get_settings
from expense_tracker.models.advisory import AdvisoryError, CompletionResult

logger = structlog.get_logger(__name__)


class CompletionTransport(ABC):
    """Sends a prompt and returns the model's text."""

    @abstractmethod
    async def complete(self, prompt: str) -> CompletionResult:
        pass

    async def aclose(self) -> None:
        """Release any held connections."""
        pass


class HttpCompletionTransport(CompletionTransport):
    """
    Chat-completions over HTTP.

    The prompt is sent as a single user message; the answer is read from
    choices[0].message.content.
    """

    def __init__(
        self,
        settings: Optional[AdvisorSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._settings = settings or get_settings().advisor
        self._client = client or httpx.AsyncClient(timeout=self._settings.timeout_seconds)

    def _payload(self, prompt: str) -> dict:
        return {
            "model": self._settings.model,
            "messages": [
                {"role": "user", "content": prompt}
            ],
            "temperature": self._settings.temperature,
            "max_tokens": self._settings.max_tokens,
        }

    async def complete(self, prompt: str) -> CompletionResult:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._settings.api_key}",
        }

        try:
            response = await self._client.post(
                self._settings.api_url,
                json=self._payload(prompt),
                headers=headers,
                timeout=self._settings.timeout_seconds,
            )
        except httpx.TimeoutException as e:
            return CompletionResult.failure(AdvisoryError.network(f"Request timed out: {e}"))
        except httpx.DecodingError as e:
            return CompletionResult.failure(AdvisoryError.response_format(f"Undecodable body: {e}"))
        except httpx.TransportError as e:
            return CompletionResult.failure(AdvisoryError.network(str(e) or type(e).__name__))

        if not response.is_success:
            return CompletionResult.failure(AdvisoryError.network(
                f"HTTP {response.status_code}: {response.text[:200]}"
            ))

        try:
            data = response.json()
        except ValueError as e:
            return CompletionResult.failure(AdvisoryError.response_format(f"Invalid JSON: {e}"))

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            return CompletionResult.failure(AdvisoryError.response_format(
                "No content at choices[0].message.content"
            ))
        if not isinstance(content, str):
            return CompletionResult.failure(AdvisoryError.response_format(
                f"Content is {type(content).__name__}, expected text"
            ))

        return CompletionResult.success(content)

    async def aclose(self) -> None:
        await self._client.aclose()


class GeminiCompletionTransport(CompletionTransport):
    """Completion through Google Generative AI."""

    def __init__(
        self,
        settings: Optional[AdvisorSettings] = None,
        model=None,
    ):
        self._settings = settings or get_settings().advisor
        self._model = model or self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        return genai.GenerativeModel(
            model_name=self._settings.model,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    async def complete(self, prompt: str) -> CompletionResult:
        try:
            response = await asyncio.wait_for(
                self._model.generate_content_async(prompt),
                timeout=self._settings.timeout_seconds,
            )
        except asyncio.TimeoutError:
            return CompletionResult.failure(AdvisoryError.network("Request timed out"))
        except (
            google_exceptions.ServiceUnavailable,
            google_exceptions.DeadlineExceeded,
            google_exceptions.RetryError,
            ConnectionError,
        ) as e:
            return CompletionResult.failure(AdvisoryError.network(str(e)))
        except google_exceptions.GoogleAPICallError as e:
            return CompletionResult.failure(AdvisoryError.network(f"API error: {e}"))

        try:
            text = response.text
        except ValueError as e:
            # Raised when the candidate has no text part (e.g. blocked output)
            return CompletionResult.failure(AdvisoryError.response_format(str(e)))

        return CompletionResult.success(text)


def create_transport(settings: Optional[AdvisorSettings] = None) -> CompletionTransport:
    """Build the transport selected by ADVISOR_PROVIDER."""
    settings = settings or get_settings().advisor
    if settings.provider == "gemini":
        return GeminiCompletionTransport(settings)
    return HttpCompletionTransport(settings)
