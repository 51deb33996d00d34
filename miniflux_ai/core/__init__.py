"""
Core domain types and in-process state.

This package contains the Miniflux data model and the decision cache
shared between pipeline ticks.
"""

from .cache import DecisionCache
from .types import Category, CustomPrompt, Decision, Entry, Feed, IRRELEVANT_MARKER

__all__ = [
    "Category",
    "CustomPrompt",
    "Decision",
    "DecisionCache",
    "Entry",
    "Feed",
    "IRRELEVANT_MARKER",
]
