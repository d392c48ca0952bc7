"""
HTTP scoring-oracle client for GeoAlert.

This module provides a client for an OpenAI-compatible chat-completions
endpoint used as the risk-scoring oracle. Calls are bounded by a client
timeout and are never retried.
"""

import aiohttp
from typing import Dict, Optional
from geoalert.observability.logging_setup import get_logger

log = get_logger("geoalert.oracle")

class OracleError(Exception):
    """The oracle answered with something unusable."""

class ChatCompletionOracle:
    """Chat-completions scoring oracle"""

    def __init__(self,
                 base_url: str,
                 api_key: str,
                 *,
                 model: str = "gpt-3.5-turbo",
                 temperature: float = 0.3,
                 max_tokens: int = 500,
                 timeout: float = 10.0):
        """
        Args:
            base_url: API base URL, e.g. https://api.openai.com/v1
            api_key: bearer token
            model: model name
            temperature: sampling temperature
            max_tokens: completion token cap
            timeout: total request timeout (seconds)
        """
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.session: Optional[aiohttp.ClientSession] = None

        log.info(f"scoring oracle configured model:{model}")

    def _new_session(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession(
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json"
            },
            timeout=aiohttp.ClientTimeout(total=self.timeout)
        )

    async def __aenter__(self):
        self.session = self._new_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.session:
            await self.session.close()
            self.session = None

    def _body(self, prompt: str) -> Dict:
        return {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

    async def _post(self, session: aiohttp.ClientSession, prompt: str) -> Dict:
        async with session.post(f"{self.base_url}/chat/completions", json=self._body(prompt)) as response:
            response.raise_for_status()
            return await response.json()

    async def complete(self, prompt: str) -> str:
        """
        Send one prompt and return the first choice's text.

        Args:
            prompt: prompt text

        Returns:
            completion text

        Raises:
            OracleError: missing API key or unexpected response shape
            aiohttp.ClientError: transport or HTTP status failure
        """
        if not self.api_key:
            raise OracleError("oracle API key is not configured")

        if self.session is not None:
            data = await self._post(self.session, prompt)
        else:
            async with self._new_session() as session:
                data = await self._post(session, prompt)

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise OracleError(f"unexpected oracle response shape: {e}") from e
        if not isinstance(content, str):
            raise OracleError("oracle returned empty content")
        return content
