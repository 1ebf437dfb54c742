"""
Ollama Client

Optional local text-generation backend used for text-entry extraction.
Nothing depends on it being present: callers probe first and use the
rule-based extractor when the probe fails.
"""

import time
from typing import Any, Optional

import httpx

from config import get_settings
from core.logging_config import llm_logger as logger


class OllamaClient:
    """
    Thin async wrapper over Ollama's /api/generate and /api/tags.

    Probe results are reused for `probe_cache_seconds` so a burst of entries
    costs a single probe.
    """

    def __init__(self):
        self.settings = get_settings()
        self._http: Optional[httpx.AsyncClient] = None
        self._probe: Optional[tuple[bool, float]] = None

    def _connection(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(
                base_url=self.settings.ollama.base_url,
                timeout=httpx.Timeout(self.settings.ollama.timeout),
            )
        return self._http

    async def close(self) -> None:
        if self._http is not None and not self._http.is_closed:
            await self._http.aclose()
        self._http = None
        self._probe = None

    def request_body(self, prompt: str, system: Optional[str], json_mode: bool) -> dict[str, Any]:
        ollama = self.settings.ollama
        body: dict[str, Any] = {
            "model": ollama.model,
            "prompt": prompt,
            "stream": False,
            "options": {"temperature": ollama.temperature, "num_predict": ollama.max_tokens},
        }
        if system:
            body["system"] = system
        if json_mode:
            body["format"] = "json"
        return body

    async def generate(self, prompt: str, system: Optional[str] = None, json_mode: bool = True) -> str:
        """
        One non-streaming completion.

        Args:
            prompt: Prompt text
            system: Optional system prompt
            json_mode: Ask the model for a JSON-only reply

        Returns:
            The reply text, empty when the backend sent none

        Raises:
            httpx.HTTPError: transport failure or non-2xx status
            ValueError: the response body is not JSON
        """
        response = await self._connection().post(
            "/api/generate",
            json=self.request_body(prompt, system, json_mode),
        )
        response.raise_for_status()
        reply = response.json().get("response") or ""
        logger.debug(f"Ollama replied with {len(reply)} characters")
        return reply

    async def is_available(self) -> bool:
        """True when the backend is enabled and its model list answers."""
        ollama = self.settings.ollama
        if not ollama.enabled:
            return False

        now = time.monotonic()
        if self._probe is not None and now - self._probe[1] < ollama.probe_cache_seconds:
            return self._probe[0]

        try:
            response = await self._connection().get("/api/tags", timeout=ollama.probe_timeout)
            available = response.status_code == 200
        except (httpx.HTTPError, ValueError) as e:
            logger.debug(f"Ollama probe failed: {e}")
            available = False

        self._probe = (available, now)
        return available


# Global instance
ollama_client = OllamaClient()
