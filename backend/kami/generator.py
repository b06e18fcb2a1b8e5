from __future__ import annotations

import logging
import threading
import time
from typing import Any, Dict, Optional

import requests

from . import config

logger = logging.getLogger(__name__)


class GenerationError(RuntimeError):
    """Raised when the text generator cannot produce a reply."""


class TextGenerator:
    def generate(self, prompt: str) -> str:
        raise NotImplementedError


class GeminiGenerator(TextGenerator):
    """Google Generative Language client with a bounded timeout and retry."""

    def __init__(
        self,
        api_key: str,
        model: str = config.GENERATOR_MODEL,
        *,
        base_url: str = config.GENERATOR_BASE_URL,
        timeout: float = config.GENERATOR_TIMEOUT_SECONDS,
        max_attempts: int = config.GENERATOR_MAX_ATTEMPTS,
        retry_delay: float = config.GENERATOR_RETRY_DELAY_SECONDS,
        max_output_tokens: int = config.GENERATOR_MAX_OUTPUT_TOKENS,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.retry_delay = max(0.0, retry_delay)
        self.max_output_tokens = max_output_tokens
        self.session = session or requests.Session()

    def _request_body(self, prompt: str) -> Dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"maxOutputTokens": self.max_output_tokens},
        }

    def _extract_text(self, payload: Any) -> str:
        try:
            parts = payload["candidates"][0]["content"]["parts"]
            text = "".join(part.get("text", "") for part in parts)
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            raise GenerationError("Malformed generator response") from exc
        text = text.strip()
        if not text:
            raise GenerationError("Generator returned an empty reply")
        return text

    def _attempt(self, prompt: str) -> str:
        url = f"{self.base_url}/models/{self.model}:generateContent"
        try:
            response = self.session.post(
                url,
                params={"key": self.api_key},
                json=self._request_body(prompt),
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as exc:
            raise GenerationError(f"Generator request failed: {exc}") from exc
        except ValueError as exc:
            raise GenerationError("Generator returned invalid JSON") from exc
        return self._extract_text(payload)

    def generate(self, prompt: str) -> str:
        if not self.api_key:
            raise GenerationError("Generator API key is not configured")

        last_error: Optional[GenerationError] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                return self._attempt(prompt)
            except GenerationError as exc:
                last_error = exc
                if attempt < self.max_attempts:
                    logger.warning("Generation failed, retrying (%d/%d): %s", attempt, self.max_attempts, exc)
                    time.sleep(self.retry_delay)
        logger.error("Generation failed after %d attempts", self.max_attempts)
        raise last_error or GenerationError("Generation failed")


_generator: Optional[TextGenerator] = None
_generator_lock = threading.Lock()


def get_generator() -> TextGenerator:
    global _generator
    if _generator is not None:
        return _generator
    with _generator_lock:
        if _generator is None:
            _generator = GeminiGenerator(config.GOOGLE_API_KEY)
        return _generator


def configure_generator(generator: Optional[TextGenerator]) -> None:
    global _generator
    with _generator_lock:
        _generator = generator
