import httpx
import logging
from typing import Dict, List, Any, Optional
from app.core.config import settings
from app.core.exceptions import UpstreamError

logger = logging.getLogger(__name__)


class LLMClient:
    def __init__(self, base_url: Optional[str] = None, model: Optional[str] = None,
                 api_key: Optional[str] = None, timeout: Optional[float] = None):
        self.base_url = base_url or settings.openai_base_url
        self.model = model or settings.openai_model
        self.headers = {"Authorization": f"Bearer {api_key or settings.openai_api_key}"}
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.headers,
            timeout=timeout or settings.openai_timeout_s
        )

    async def chat_completion(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.7,
        max_tokens: Optional[int] = None
    ) -> Dict[str, Any]:
        """Send chat completion request to OpenAI-compatible endpoint"""

        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
        }

        if max_tokens:
            payload["max_tokens"] = max_tokens

        try:
            logger.info(f"Sending chat request to {self.base_url}")
            response = await self.client.post("/chat/completions", json=payload)
            response.raise_for_status()

            result = response.json()
            logger.info("Chat completion successful")
            return result

        except httpx.HTTPError as e:
            logger.error(f"HTTP error in chat completion: {e}")
            raise UpstreamError("Completion request failed") from e

    async def complete(
        self,
        prompt: str,
        max_tokens: int,
        temperature: float,
        system: Optional[str] = None
    ) -> str:
        """Single-turn completion returning the assistant text"""

        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        result = await self.chat_completion(
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens
        )

        try:
            text = result["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            logger.error(f"Malformed completion response: {e}")
            raise UpstreamError("Malformed completion response") from e

        if not text or not text.strip():
            raise UpstreamError("Empty completion")
        return text.strip()

    async def close(self):
        """Close the HTTP client"""
        await self.client.aclose()
