import asyncio
import logging
import random
import re
from typing import Any, Dict, List, Optional

import httpx

from qaforge.config.settings import LLMConfig, settings
from qaforge.core.errors import ProviderError
from qaforge.models.generation import ReasonedAnswer

logger = logging.getLogger(__name__)

_THINK_RE = re.compile(r"^\s*<think>(.*?)</think>\s*", re.DOTALL)
_RETRYABLE_STATUS = {429, 500, 502, 503, 504}

class LLMClient:
    """
    OpenAI-compatible chat completions client (OpenRouter by default).
    Retries rate limits and transient failures, then falls back to a second model.
    Every failure surfaces as ProviderError.
    """

    def __init__(self, config: Optional[LLMConfig] = None, api_key: Optional[str] = None):
        self.config = config or settings.llm
        self.api_key = api_key if api_key is not None else settings.openrouter_api_key
        self.base_url = f"{self.config.base_url.rstrip('/')}/chat/completions"
        self.headers = {
            "Authorization": f"Bearer {self.api_key}" if self.api_key else "",
            "X-Title": "qaforge",
            "Content-Type": "application/json"
        }
        self.max_retries = self.config.max_retries
        self.base_delay = self.config.retry_base_delay

    @property
    def model_name(self) -> str:
        return self.config.model

    async def generate(self, prompt: str) -> str:
        """Single-turn completion, returns the answer text only."""
        message = await self.chat([{"role": "user", "content": prompt}])
        return self._split_reasoning(message).answer

    async def generate_with_reasoning(self, prompt: str) -> ReasonedAnswer:
        """Single-turn completion, returns the answer and the model's chain of thought."""
        message = await self.chat([{"role": "user", "content": prompt}])
        return self._split_reasoning(message)

    async def chat(self, messages: List[Dict[str, str]]) -> Dict[str, Any]:
        payload = {
            "model": self.config.model,
            "messages": messages,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "top_p": self.config.top_p,
            "stream": False
        }

        if not self.api_key:
            logger.warning("OPENROUTER_API_KEY is not set. LLM calls will fail.")

        try:
            return await self._call_api(payload)
        except ProviderError as e:
            fallback = self.config.fallback_model
            if not fallback or fallback == payload["model"]:
                raise
            logger.warning(f"Primary model {payload['model']} failed: {e}. Trying fallback.")
            payload["model"] = fallback
            return await self._call_api(payload)

    async def _call_api(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        last_error: Optional[Exception] = None

        for attempt in range(self.max_retries):
            try:
                async with httpx.AsyncClient(timeout=self.config.timeout) as client:
                    response = await client.post(self.base_url, headers=self.headers, json=payload)
            except httpx.HTTPError as e:
                last_error = e
                if attempt < self.max_retries - 1:
                    delay = self._backoff(attempt)
                    logger.warning(f"Request failed: {e}. Retrying in {delay:.2f}s...")
                    await asyncio.sleep(delay)
                continue

            if response.status_code in _RETRYABLE_STATUS:
                last_error = ProviderError(f"HTTP {response.status_code} from {payload['model']}", response.status_code)
                if attempt < self.max_retries - 1:
                    delay = self._backoff(attempt)
                    logger.warning(f"Got {response.status_code}. Retrying in {delay:.2f}s... (Attempt {attempt+1}/{self.max_retries})")
                    await asyncio.sleep(delay)
                continue

            if response.status_code >= 400:
                raise ProviderError(f"HTTP {response.status_code} from {payload['model']}: {response.text[:200]}", response.status_code)

            return self._extract_message(response)

        raise ProviderError(f"Failed after {self.max_retries} attempts: {last_error}")

    def _backoff(self, attempt: int) -> float:
        return self.base_delay * (2 ** attempt) + random.uniform(0, 1) * self.base_delay

    def _extract_message(self, response: httpx.Response) -> Dict[str, Any]:
        try:
            data = response.json()
            message = data["choices"][0]["message"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ProviderError(f"Malformed completion response: {e}") from e
        if not isinstance(message, dict):
            raise ProviderError("Malformed completion response: message is not an object")
        return message

    def _split_reasoning(self, message: Dict[str, Any]) -> ReasonedAnswer:
        content = message.get("content") or ""
        reasoning = message.get("reasoning_content") or message.get("reasoning") or ""

        # Reasoning models served without a separate field inline a <think> block
        if not reasoning:
            match = _THINK_RE.match(content)
            if match:
                reasoning = match.group(1)
                content = content[match.end():]

        return ReasonedAnswer(answer=content.strip(), reasoning=reasoning.strip())
