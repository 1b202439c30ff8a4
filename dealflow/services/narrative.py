"""
Narrative generator backed by an OpenAI-compatible chat-completions API.

Every failure (missing key, transport error, non-2xx reply, unexpected
payload) is raised as ``GenerationError``; callers decide the fallback.
"""

import logging
from typing import Optional

import httpx

from dealflow.config import settings
from dealflow.errors import GenerationError

logger = logging.getLogger(__name__)


class NarrativeGenerator:
    def __init__(
        self,
        api_key: str = "",
        api_base: str = "https://api.openai.com/v1",
        model: str = "gpt-4o-mini",
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key.strip()
        self.model = model
        self._url = f"{api_base.rstrip('/')}/chat/completions"
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(cls) -> "NarrativeGenerator":
        return cls(
            api_key=settings.OPENAI_API_KEY,
            api_base=settings.OPENAI_API_BASE,
            model=settings.OPENAI_MODEL,
            timeout=settings.LLM_TIMEOUT_SECONDS,
        )

    async def complete(self, prompt: str, max_tokens: int = 150, temperature: float = 0.5) -> str:
        """Return the model's reply to a single user prompt."""
        if not self.api_key:
            raise GenerationError("OPENAI_API_KEY is not set")

        try:
            resp = await self._client.post(
                self._url,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json={
                    "model": self.model,
                    "messages": [{"role": "user", "content": prompt}],
                    "max_tokens": max_tokens,
                    "temperature": temperature,
                },
            )
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as e:
            raise GenerationError(f"Completion request failed: {e}") from e
        except ValueError as e:
            raise GenerationError(f"Completion response was not JSON: {e}") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise GenerationError(f"Unexpected completion payload: {data!r}") from e
        if not isinstance(content, str):
            raise GenerationError("Completion content was empty")
        return content.strip()

    async def aclose(self) -> None:
        await self._client.aclose()
