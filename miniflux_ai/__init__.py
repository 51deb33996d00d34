"""
Miniflux AI - LLM-driven relevance filter for Miniflux.

This package periodically reads unread Miniflux entries in categories that
have a custom prompt, asks a language model whether each entry is relevant,
and marks the irrelevant ones as read.

Main entry point is the `miniflux-ai` command.

Example:
    $ MINIFLUX_URL=https://reader.example.com MINIFLUX_AUTH_TOKEN=... \\
      OPENAI_API_KEY=... PROCESSING_BATCH_SIZE=10 miniflux-ai
"""

__all__ = ["__version__", "DecisionCache", "PromptSet", "load_custom_prompts", "run_tick"]
__version__ = "0.1.0"

from .core.cache import DecisionCache
from .prompts import PromptSet, load_custom_prompts
from .runner import run_tick
