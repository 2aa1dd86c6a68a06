# app/services/gemini_client.py
import asyncio
import logging
import os
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)

TRANSIENT_STATUS = (429, 500, 502, 503, 504)


class GeminiError(RuntimeError):
    pass


class GeminiClient:
    """Thin client for the Gemini generateContent REST API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: float = 60.0,
        max_retries: int = 3,
        backoff_factor: float = 0.6,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url or os.getenv("GEMINI_BASE", "https://generativelanguage.googleapis.com/v1beta")
        self.api_key = api_key or os.getenv("GEMINI_API_KEY")
        self.model = model or os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor

        if not self.api_key:
            raise GeminiError("GEMINI_API_KEY is not configured")

        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "GeminiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def generate(self, prompt: str, temperature: float = 0.2) -> str:
        """
        Single-turn generateContent call; returns the candidate text.
        Raises GeminiError on failure.
        """
        payload: Dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": temperature},
        }

        headers = {"x-goog-api-key": self.api_key}
        url = f"/models/{self.model}:generateContent"

        last_exc: Optional[Exception] = None
        for attempt in range(self.max_retries + 1):
            try:
                res = await self._client.post(url, headers=headers, json=payload)
                if res.status_code in TRANSIENT_STATUS:
                    raise GeminiError(f"Transient HTTP {res.status_code}: {res.text[:200]}")
                res.raise_for_status()
                return self._parse_text(res.json())
            except (httpx.HTTPError, GeminiError, ValueError) as e:
                last_exc = e
                if attempt >= self.max_retries:
                    break
                sleep_s = self.backoff_factor * (2 ** attempt)
                logger.warning("Gemini attempt %d failed (%s); retrying in %.1fs", attempt + 1, e, sleep_s)
                await asyncio.sleep(sleep_s)

        raise GeminiError(f"Gemini generateContent failed after retries: {last_exc}")

    @staticmethod
    def _parse_text(data: Dict[str, Any]) -> str:
        candidates = data.get("candidates") or []
        if not candidates:
            raise GeminiError(f"Empty candidates: {data!r}"[:300])
        parts = (candidates[0].get("content") or {}).get("parts") or []
        texts = [p.get("text") for p in parts if isinstance(p.get("text"), str)]
        if not texts:
            raise GeminiError(f"Invalid content: {candidates[0]!r}"[:300])
        return "".join(texts)
