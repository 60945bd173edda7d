"""
Provider for OpenAI-style chat completion APIs.

Serves openai, openrouter, deepseek and azure: all four accept the same
``/chat/completions`` request and answer with ``choices[0].message``.
"""

from typing import Any, Dict, Optional

from .base import AIProvider


class OpenAICompatibleProvider(AIProvider):
    """Chat completions client for OpenAI-compatible backends."""

    @property
    def endpoint(self) -> str:
        return f"{self.settings.base_url}/chat/completions"

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        headers["Authorization"] = f"Bearer {self.settings.api_key}"
        # OpenRouter attribution headers
        headers.update(self.settings.extra_headers)
        return headers

    async def _call_api(self, system_prompt: str, user_prompt: str) -> Optional[str]:
        payload = {
            "model": self.settings.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "max_tokens": self.settings.max_tokens,
            "temperature": self.settings.temperature,
        }
        data = await self._post(self.endpoint, payload)
        return self._extract_content(data)

    @staticmethod
    def _extract_content(data: Dict[str, Any]) -> Optional[str]:
        choices = data.get("choices") or []
        if not choices:
            return None
        message = choices[0].get("message") or {}
        return message.get("content")
