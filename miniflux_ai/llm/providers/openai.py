"""OpenAI Responses API provider for entry relevance decisions."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ...config import ProviderConfig
from ...logging_utils import log_event, truncate_text
from .base import ClassificationProvider


DEFAULT_BASE_URL = "https://api.openai.com/v1"


class OpenAIProvider(ClassificationProvider):
    """OpenAI-backed oracle using the ``/responses`` endpoint."""

    def __init__(
        self,
        cfg: ProviderConfig,
        api_key: str | None,
        llm_logger: logging.Logger | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not api_key:
            raise ValueError("Missing OpenAI API key")
        self.cfg = cfg
        self.model = cfg.model
        self.llm_logger = llm_logger
        self._client = httpx.AsyncClient(
            base_url=(cfg.base_url or DEFAULT_BASE_URL).rstrip("/"),
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=cfg.timeout_seconds,
            trust_env=cfg.trust_env,
            transport=transport,
        )

    async def classify(self, instructions: str, text: str) -> str:
        payload = {
            "model": self.cfg.model,
            "instructions": instructions,
            "input": text,
        }
        try:
            resp = await self._client.post("/responses", json=payload)
            resp.raise_for_status()
            content = _extract_output_text(resp.json())
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
            provider="openai",
            model=self.cfg.model,
            raw_response=truncate_text(content),
        )


def _extract_output_text(data: dict[str, Any]) -> str:
    """Concatenate the ``output_text`` parts of a Responses API payload."""
    if isinstance(data.get("output_text"), str):
        return data["output_text"]
    chunks: list[str] = []
    for item in data.get("output") or []:
        if item.get("type") != "message":
            continue
        for part in item.get("content") or []:
            if part.get("type") == "output_text" and isinstance(part.get("text"), str):
                chunks.append(part["text"])
    return "".join(chunks)
