import logging
from typing import List, Optional

import requests

from errors import (
    ConfigurationError, UpstreamError, UpstreamPaymentRequired, UpstreamRateLimited,
)

logger = logging.getLogger(__name__)


class CompletionClient:
    """Calls an OpenAI-compatible chat completions endpoint and returns the reply text."""

    def __init__(self, api_key: Optional[str], api_url: str, model: str, timeout: Optional[float] = None):
        if not api_key:
            raise ConfigurationError("AI_API_KEY is not configured")
        self.api_key = api_key
        self.api_url = api_url
        self.model = model
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings) -> "CompletionClient":
        return cls(settings.ai_api_key, settings.ai_api_url, settings.ai_model, settings.ai_timeout)

    def complete(self, messages: List[dict]) -> str:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {"model": self.model, "messages": messages}

        try:
            response = requests.post(self.api_url, headers=headers, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("AI gateway request failed: %s", e)
            raise UpstreamError(f"AI gateway request failed: {e}") from e

        if not response.ok:
            logger.error("AI gateway error: %s %s", response.status_code, response.text)
            if response.status_code == 429:
                raise UpstreamRateLimited()
            if response.status_code == 402:
                raise UpstreamPaymentRequired()
            raise UpstreamError(f"AI gateway error: {response.status_code} - {response.text}")

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError):
            content = None

        if not content or not isinstance(content, str):
            logger.error("No content in AI response: %s", response.text[:300])
            raise UpstreamError("No content in AI response")
        return content
