"""Tests for the fetch-classify-mark pipeline."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from conftest import FakeMiniflux, StubProvider, category, entry, feed
from miniflux_ai.config import ProcessingConfig
from miniflux_ai.core.cache import DecisionCache
from miniflux_ai.core.types import CustomPrompt, Entry
from miniflux_ai.prompts import PromptSet
from miniflux_ai.runner import build_input, run_tick, select_batch


POLITICS_PROMPT = CustomPrompt(category="politics", content="Is this about elections? Answer yes or no.")


def _politics_reader(count=0, entries=None):
    politics = category(1, "World Politics")
    sports = category(2, "Sports")
    politics_feed = feed(10, politics)
    sports_feed = feed(20, sports)
    if entries is None:
        entries = [entry(100 + i, f"Story {i}", politics_feed) for i in range(count)]
    entries = entries + [entry(900, "Match report", sports_feed)]
    return FakeMiniflux(
        categories=[politics, sports],
        feeds=[politics_feed, sports_feed],
        entries=entries,
    )


def _tick(fake, provider, cache=None, batch_size=10, concurrency=0, prompts=None):
    prompts = prompts or PromptSet([POLITICS_PROMPT])
    cache = cache if cache is not None else DecisionCache()

    async def _run():
        async with fake.client() as client:
            return await run_tick(
                client,
                provider,
                prompts,
                cache,
                ProcessingConfig(batch_size=batch_size, concurrency=concurrency),
            )

    return asyncio.run(_run())


def test_matching_category_is_processed_and_other_is_skipped():
    politics_feed = feed(10, category(1, "World Politics"))
    fake = _politics_reader(
        entries=[
            entry(100, "Election results", politics_feed, content="Votes were counted."),
            entry(101, "Celebrity gossip", politics_feed),
        ]
    )
    provider = StubProvider(answers={"Election results": "Yes", "Celebrity gossip": "No"})

    result = _tick(fake, provider)

    assert "/v1/categories/1/feeds" in fake.paths()
    assert "/v1/categories/2/feeds" not in fake.paths()
    assert "/v1/feeds/20/entries" not in fake.paths()
    assert fake.marked == [{"entry_ids": [101], "status": "read"}]
    assert provider.calls[0] == (POLITICS_PROMPT.content, "# Election results\nVotes were counted.")
    assert result.matched_categories == 1
    assert result.irrelevant_ids == [101]


def test_categories_without_prompt_produce_no_fetches():
    fake = _politics_reader(count=2)
    provider = StubProvider()
    prompts = PromptSet([CustomPrompt(category="science", content="...")])

    result = _tick(fake, provider, prompts=prompts)

    assert fake.paths() == ["/v1/categories"]
    assert provider.calls == []
    assert result.matched_categories == 0
    assert fake.marked == [{"entry_ids": [], "status": "read"}]


def test_decision_containing_no_in_any_case_marks_entry_read():
    fake = _politics_reader(count=4)
    provider = StubProvider(
        answers={
            "Story 0": "NO",
            "Story 1": "Yes, relevant",
            "Story 2": "Not relevant",
            "Story 3": "yes",
        }
    )

    result = _tick(fake, provider)

    marked_ids = fake.marked[0]["entry_ids"]
    assert sorted(marked_ids) == [100, 102]
    assert len(fake.marked) == 1
    assert sorted(result.irrelevant_ids) == [100, 102]
    assert {d.entry_id for d in result.decisions if not d.irrelevant} == {101, 103}


def test_every_evaluated_entry_is_cached_once_regardless_of_decision():
    fake = _politics_reader(count=3)
    provider = StubProvider(answers={"Story 1": "no"})
    cache = DecisionCache()

    _tick(fake, provider, cache=cache)

    assert cache.snapshot() == [100, 101, 102]


def test_cached_entries_are_not_resubmitted_in_later_ticks():
    fake = _politics_reader(count=3)
    provider = StubProvider()
    cache = DecisionCache()

    _tick(fake, provider, cache=cache)
    first_calls = len(provider.calls)
    result = _tick(fake, provider, cache=cache)

    assert first_calls == 3
    assert len(provider.calls) == 3
    assert result.evaluated == 0
    assert fake.marked[-1] == {"entry_ids": [], "status": "read"}
    assert len(cache) == 3


def test_batch_size_caps_classifications_per_tick():
    fake = _politics_reader(count=5)
    provider = StubProvider()
    cache = DecisionCache()

    first = _tick(fake, provider, cache=cache, batch_size=2)
    second = _tick(fake, provider, cache=cache, batch_size=2)

    assert first.unread_entries == 5
    assert [d.entry_id for d in first.decisions] == [100, 101]
    assert [d.entry_id for d in second.decisions] == [102, 103]
    assert provider.titles == ["Story 0", "Story 1", "Story 2", "Story 3"]


def test_empty_unread_set_makes_no_oracle_calls_and_marks_empty_list():
    fake = _politics_reader(count=0)
    provider = StubProvider()

    result = _tick(fake, provider)

    assert provider.calls == []
    assert result.evaluated == 0
    assert fake.marked == [{"entry_ids": [], "status": "read"}]


def test_oracle_failure_aborts_tick_before_cache_and_mark_read():
    fake = _politics_reader(count=3)
    provider = StubProvider(fail_on="Story 1")
    cache = DecisionCache()

    with pytest.raises(httpx.ConnectError):
        _tick(fake, provider, cache=cache)

    assert len(cache) == 0
    assert fake.paths("PUT") == []


def test_mark_read_failure_keeps_recorded_ids():
    fake = _politics_reader(count=2)
    fake.fail_mark_read = True
    provider = StubProvider(default="no")
    cache = DecisionCache()

    with pytest.raises(httpx.HTTPStatusError):
        _tick(fake, provider, cache=cache)

    assert cache.snapshot() == [100, 101]


def test_concurrency_limit_bounds_in_flight_classifications():
    limited = StubProvider()
    _tick(_politics_reader(count=4), limited, concurrency=1)

    unbounded = StubProvider()
    _tick(_politics_reader(count=4), unbounded, concurrency=0)

    assert limited.max_in_flight == 1
    assert unbounded.max_in_flight == 4


def test_prompt_match_is_case_insensitive_on_both_sides():
    fake = _politics_reader(count=1)
    provider = StubProvider()
    prompts = PromptSet([CustomPrompt(category="POLITICS", content="upper-case prompt")])

    _tick(fake, provider, prompts=prompts)

    assert provider.calls[0][0] == "upper-case prompt"


def test_select_batch_skips_cached_and_keeps_order():
    fd = feed(1, category(1, "x"))
    entries = [Entry.from_dict(entry(i, f"t{i}", fd)) for i in range(1, 6)]
    cache = DecisionCache([2, 3])

    assert [e.id for e in select_batch(entries, cache, 2)] == [1, 4]
    assert select_batch(entries, cache, 0) == []


def test_build_input_prefixes_title_as_heading():
    e = Entry.from_dict(entry(1, "Headline", feed(1, category(1, "x")), content="Body text"))

    assert build_input(e) == "# Headline\nBody text"
