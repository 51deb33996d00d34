"""Google Gemini provider for entry relevance decisions."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ...config import ProviderConfig
from ...logging_utils import log_event, truncate_text
from .base import ClassificationProvider


DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com"


class GeminiProvider(ClassificationProvider):
    """Gemini-backed oracle; the custom prompt is sent as a system instruction."""

    def __init__(
        self,
        cfg: ProviderConfig,
        api_key: str | None,
        llm_logger: logging.Logger | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not api_key:
            raise ValueError("Missing Google API key")
        self.cfg = cfg
        self.model = cfg.model
        self.llm_logger = llm_logger
        self._client = httpx.AsyncClient(
            base_url=(cfg.base_url or DEFAULT_BASE_URL).rstrip("/"),
            headers={"x-goog-api-key": api_key},
            timeout=cfg.timeout_seconds,
            trust_env=cfg.trust_env,
            transport=transport,
        )

    async def classify(self, instructions: str, text: str) -> str:
        payload = {
            "systemInstruction": {"parts": [{"text": instructions}]},
            "contents": [{"role": "user", "parts": [{"text": text}]}],
            "generationConfig": {"temperature": 0.0},
        }
        url = f"/v1beta/models/{self.cfg.model}:generateContent"
        try:
            resp = await self._client.post(url, json=payload)
            resp.raise_for_status()
            content = _extract_text(resp.json())
        except httpx.HTTPError as exc:
            self._log_llm_response(status="provider_error", content=str(exc))
            raise
        self._log_llm_response(status="ok", content=content)
        return content

    async def aclose(self) -> None:
        await self._client.aclose()

    def _log_llm_response(self, status: str, content: str) -> None:
        log_event(
            self.llm_logger,
            "LLM response",
            event="llm_classify",
            status=status,
            provider="gemini",
            model=self.cfg.model,
            raw_response=truncate_text(content),
        )


def _extract_text(data: dict[str, Any]) -> str:
    """Join the non-thought text parts of the first candidate.

    Falls back to all text parts when the model only returned thoughts.
    """
    candidates = data.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    texts = [p["text"] for p in parts if isinstance(p.get("text"), str) and not p.get("thought")]
    if not texts:
        texts = [p["text"] for p in parts if isinstance(p.get("text"), str)]
    return "".join(texts)
