"""Abstract interface for the relevance classification oracle."""

from __future__ import annotations

from abc import ABC, abstractmethod


class ClassificationProvider(ABC):
    """Single-turn text oracle: instructions plus input in, free text out."""

    model: str = ""

    @abstractmethod
    async def classify(self, instructions: str, text: str) -> str:
        """Return the model's free-text verdict for ``text``."""
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release any pooled connections."""
