"""
Pipeline orchestration for one scheduled tick.

Each tick runs these steps in order:
1. Fetch categories and keep those matching a custom prompt
2. Fetch feeds for the matching categories
3. Fetch unread entries for those feeds
4. Skip entries already judged and cap the batch
5. Ask the oracle about each remaining entry
6. Record the judged ids in the decision cache
7. Mark the entries judged irrelevant as read in a single call

Network fan-out inside a step is concurrent. Any failed call aborts the rest
of the tick and propagates to the caller; nothing is rolled back.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
from typing import Awaitable, Iterable, TypeVar

from .config import ProcessingConfig
from .core.cache import DecisionCache
from .core.types import Category, CustomPrompt, Decision, Entry, Feed
from .llm.providers.base import ClassificationProvider
from .logging_utils import LOGGER_NAME, log_debug_dump, log_event
from .miniflux import MinifluxClient
from .prompts import PromptSet


T = TypeVar("T")

logger = logging.getLogger(f"{LOGGER_NAME}.runner")


@dataclass
class TickResult:
    """Summary of a completed tick.

    Attributes:
        categories: Number of categories returned by Miniflux
        matched_categories: Categories with a matching custom prompt
        feeds: Feeds fetched for the matching categories
        unread_entries: Unread entries across those feeds
        decisions: Oracle decisions made during this tick
        irrelevant_ids: Entry ids sent to the bulk mark-as-read call
    """
    categories: int = 0
    matched_categories: int = 0
    feeds: int = 0
    unread_entries: int = 0
    decisions: list[Decision] = field(default_factory=list)
    irrelevant_ids: list[int] = field(default_factory=list)

    @property
    def evaluated(self) -> int:
        return len(self.decisions)


async def run_tick(
    client: MinifluxClient,
    provider: ClassificationProvider,
    prompts: PromptSet,
    cache: DecisionCache,
    cfg: ProcessingConfig,
) -> TickResult:
    """Run the fetch-classify-mark pipeline once.

    Args:
        client: Miniflux API client
        provider: Classification oracle
        prompts: Custom prompts loaded at startup
        cache: Ids of entries already judged in this process
        cfg: Batch size and concurrency settings

    Returns:
        TickResult with per-stage counts and the irrelevant ids
    """
    if cfg.batch_size is None:
        raise ValueError("processing.batch_size is required")
    limit = cfg.concurrency
    result = TickResult()

    # categories
    categories = await client.get_categories()
    result.categories = len(categories)
    log_debug_dump(logger, "categories", categories)

    matched = _match_categories(categories, prompts)
    result.matched_categories = len(matched)
    log_debug_dump(logger, "categoriesWithPrompts", [category for category, _ in matched])

    # feeds
    feed_lists = await _gather_limited(
        [client.get_category_feeds(category.id) for category, _ in matched], limit
    )
    feeds: list[Feed] = []
    feed_prompts: dict[int, CustomPrompt] = {}
    for (_, prompt), category_feeds in zip(matched, feed_lists):
        for feed in category_feeds:
            feeds.append(feed)
            feed_prompts.setdefault(feed.id, prompt)
    result.feeds = len(feeds)
    log_debug_dump(logger, "feeds", feeds)

    # unread entries
    entry_lists = await _gather_limited([client.get_feed_entries(feed.id) for feed in feeds], limit)
    unread_entries = [entry for entries in entry_lists for entry in entries]
    result.unread_entries = len(unread_entries)
    log_debug_dump(logger, "unreadEntries", unread_entries)

    to_verify = select_batch(unread_entries, cache, cfg.batch_size)
    log_debug_dump(logger, "unreadEntriesToVerify", to_verify)

    # decisions
    entry_prompts = [_prompt_for(entry, prompts, feed_prompts) for entry in to_verify]
    decisions = await _gather_limited(
        [
            _classify_entry(provider, entry, prompt)
            for entry, prompt in zip(to_verify, entry_prompts)
        ],
        limit,
    )
    result.decisions = list(decisions)
    log_debug_dump(logger, "aiDecisions", result.decisions)

    cache.add_many(decision.entry_id for decision in result.decisions)

    # mark irrelevant entries as read
    result.irrelevant_ids = [d.entry_id for d in result.decisions if d.irrelevant]
    skipped_titles = _titles(unread_entries, result.irrelevant_ids)
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Attempting to skip the following entries:\n%s", skipped_titles)

    await client.mark_entries_read(result.irrelevant_ids)

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Successfully skipped the following entries:\n%s", skipped_titles)

    log_event(
        logger,
        f"Tick complete: {result.evaluated} evaluated, {len(result.irrelevant_ids)} marked read",
        event="tick_complete",
        categories=result.categories,
        matched_categories=result.matched_categories,
        feeds=result.feeds,
        unread_entries=result.unread_entries,
        evaluated=result.evaluated,
        marked_read=len(result.irrelevant_ids),
        cache_size=len(cache),
    )
    return result


def select_batch(entries: Iterable[Entry], cache: DecisionCache, batch_size: int) -> list[Entry]:
    """Return the first ``batch_size`` entries not yet present in ``cache``."""
    batch: list[Entry] = []
    if batch_size <= 0:
        return batch
    for entry in entries:
        if entry.id in cache:
            continue
        batch.append(entry)
        if len(batch) >= batch_size:
            break
    return batch


def build_input(entry: Entry) -> str:
    """Format an entry as the oracle input: markdown title line, then content."""
    return f"# {entry.title}\n{entry.content}"


def _match_categories(
    categories: Iterable[Category], prompts: PromptSet
) -> list[tuple[Category, CustomPrompt]]:
    matched = []
    for category in categories:
        prompt = prompts.match(category.title)
        if prompt is not None:
            matched.append((category, prompt))
    return matched


def _prompt_for(
    entry: Entry, prompts: PromptSet, feed_prompts: dict[int, CustomPrompt]
) -> CustomPrompt:
    prompt = prompts.match(entry.category_title) or feed_prompts.get(entry.feed.id)
    if prompt is None:
        raise LookupError(f"No custom prompt for entry {entry.id} in category {entry.category_title!r}")
    return prompt


async def _classify_entry(
    provider: ClassificationProvider, entry: Entry, prompt: CustomPrompt
) -> Decision:
    output = await provider.classify(prompt.content, build_input(entry))
    return Decision(
        entry_id=entry.id,
        entry_title=entry.title,
        decision=output,
        meta={"model": provider.model, "prompt_category": prompt.category},
    )


async def _gather_limited(coros: list[Awaitable[T]], limit: int) -> list[T]:
    """Await ``coros`` concurrently, at most ``limit`` at a time (0 = unbounded)."""
    if limit <= 0:
        return list(await asyncio.gather(*coros))

    semaphore = asyncio.Semaphore(limit)

    async def _run(coro: Awaitable[T]) -> T:
        async with semaphore:
            return await coro

    return list(await asyncio.gather(*(_run(coro) for coro in coros)))


def _titles(entries: Iterable[Entry], entry_ids: list[int]) -> str:
    wanted = set(entry_ids)
    return "\n".join(f"- {entry.title}" for entry in entries if entry.id in wanted)

