"""
Narrative Generator - Language Model Text Completion

Turns structured analysis data into prose. Entirely optional: the engine
runs with NullNarrator and only the prose fields stay empty.
Responses are cached per request (prompt plus generation options) to reduce
API quota consumption.
"""
import asyncio
from collections import OrderedDict
from typing import Any, Dict, MutableMapping, Optional, Tuple

import requests

from sysvital.core.config import Config
from sysvital.utils.logger import Logger
from sysvital.utils.rate_limiter import RateLimiter


class NarratorError(Exception):
    """Narrator request failed or returned an unusable payload."""


class ResponseCache(OrderedDict):
    """Bounded LRU mapping of request keys to completions."""

    def __init__(self, max_entries: int = 256) -> None:
        super().__init__()
        self.max_entries = max_entries

    def __getitem__(self, key):
        value = super().__getitem__(key)
        self.move_to_end(key)
        return value

    def __setitem__(self, key, value) -> None:
        super().__setitem__(key, value)
        self.move_to_end(key)
        while len(self) > self.max_entries:
            self.popitem(last=False)


class NullNarrator:
    """No-op narrator used when no language model is configured."""

    @property
    def is_configured(self) -> bool:
        return False

    async def complete(self, prompt: str, options: Optional[Dict[str, Any]] = None) -> str:
        return ""


class LLMNarrator:
    """
    Messages-API client for narrative text.

    The HTTP call is blocking (requests) and runs in a worker thread.
    Rate limiter and cache are injected so callers decide their scope.
    """

    SYSTEM_PROMPT = "You are a helpful system optimization assistant."

    def __init__(self, api_key: str, url: str, model: str,
                 rate_limiter: Optional[RateLimiter] = None,
                 cache: Optional[MutableMapping[Tuple, str]] = None,
                 timeout: float = 30.0,
                 session: Optional[requests.Session] = None) -> None:
        self.api_key = api_key
        self.url = url
        self.model = model
        self.rate_limiter = rate_limiter
        self.cache = cache if cache is not None else ResponseCache()
        self.timeout = timeout
        self.session = session or requests.Session()
        self.logger = Logger()

    @classmethod
    def from_config(cls, config: Config) -> "LLMNarrator":
        return cls(
            api_key=config.narrator_api_key,
            url=config.narrator_url,
            model=config.narrator_model,
            rate_limiter=RateLimiter(config.narrator_rate_limit, period=60.0),
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def complete(self, prompt: str, options: Optional[Dict[str, Any]] = None) -> str:
        """
        Requests a completion for `prompt`.

        Args:
            prompt: User prompt text
            options: Optional `max_tokens`, `temperature`, `system`

        Raises:
            NarratorError: Not configured, transport failure, non-200 status
                or malformed response body
        """
        if not self.is_configured:
            raise NarratorError("Narrator API key not configured")

        options = options or {}
        payload = {
            "model": self.model,
            "max_tokens": int(options.get("max_tokens", 2000)),
            "temperature": float(options.get("temperature", 0.7)),
            "system": options.get("system", self.SYSTEM_PROMPT),
            "messages": [{"role": "user", "content": prompt}],
        }
        key = self._cache_key(payload, prompt)
        if key in self.cache:
            return self.cache[key]

        if self.rate_limiter is not None:
            await self.rate_limiter.acquire()

        text = await asyncio.to_thread(self._post, payload)
        self.cache[key] = text
        return text

    @staticmethod
    def _cache_key(payload: Dict[str, Any], prompt: str) -> Tuple:
        return (payload["model"], payload["max_tokens"], payload["temperature"], payload["system"], prompt)

    def _post(self, payload: Dict[str, Any]) -> str:
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": "2023-06-01",
            "content-type": "application/json",
        }
        try:
            response = self.session.post(self.url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise NarratorError(f"Request failed: {e}") from e

        if response.status_code != 200:
            raise NarratorError(f"HTTP {response.status_code}")

        try:
            data = response.json()
            blocks = data.get("content") or []
            return blocks[0].get("text", "") if blocks else ""
        except (ValueError, AttributeError, IndexError) as e:
            raise NarratorError(f"Malformed response: {e}") from e
