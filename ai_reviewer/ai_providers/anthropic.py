"""
Provider for the Anthropic Messages API.
"""

from typing import Any, Dict, Optional

from .base import AIProvider

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicProvider(AIProvider):
    """
    Messages API client.

    The system prompt goes in the top-level ``system`` field; the answer's
    text blocks are concatenated into one review text.
    """

    @property
    def endpoint(self) -> str:
        return f"{self.settings.base_url}/messages"

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        headers["x-api-key"] = self.settings.api_key
        headers["anthropic-version"] = ANTHROPIC_VERSION
        return headers

    async def _call_api(self, system_prompt: str, user_prompt: str) -> Optional[str]:
        payload = {
            "model": self.settings.model,
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_prompt}],
            "max_tokens": self.settings.max_tokens,
            "temperature": self.settings.temperature,
        }
        data = await self._post(self.endpoint, payload)
        return self._extract_content(data)

    @staticmethod
    def _extract_content(data: Dict[str, Any]) -> Optional[str]:
        texts = [
            block.get("text", "")
            for block in data.get("content") or []
            if block.get("type") == "text"
        ]
        return "".join(texts) or None
