"""Shared fakes for the Miniflux API and the classification oracle."""

from __future__ import annotations

import asyncio
import json
import logging
import re

import httpx
import pytest

from miniflux_ai.config import MinifluxConfig
from miniflux_ai.llm.providers.base import ClassificationProvider
from miniflux_ai.logging_utils import LOGGER_NAME
from miniflux_ai.miniflux import MinifluxClient


def category(category_id, title):
    return {"id": category_id, "title": title, "user_id": 1, "hide_globally": False}


def feed(feed_id, cat):
    return {"id": feed_id, "title": f"Feed {feed_id}", "category": cat}


def entry(entry_id, title, fd, content="body"):
    return {"id": entry_id, "title": title, "content": content, "feed": fd}


class FakeMiniflux:
    """In-memory Miniflux served through ``httpx.MockTransport``."""

    def __init__(self, categories=(), feeds=(), entries=(), fail_mark_read=False):
        self.categories = list(categories)
        self.feeds = list(feeds)
        self.entries = list(entries)
        self.fail_mark_read = fail_mark_read
        self.requests: list[httpx.Request] = []
        self.marked: list[dict] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "GET" and path == "/v1/categories":
            return httpx.Response(200, json=self.categories)

        match = re.fullmatch(r"/v1/categories/(\d+)/feeds", path)
        if request.method == "GET" and match:
            category_id = int(match.group(1))
            return httpx.Response(
                200, json=[f for f in self.feeds if f["category"]["id"] == category_id]
            )

        match = re.fullmatch(r"/v1/feeds/(\d+)/entries", path)
        if request.method == "GET" and match:
            feed_id = int(match.group(1))
            found = [e for e in self.entries if e["feed"]["id"] == feed_id]
            return httpx.Response(200, json={"total": len(found), "entries": found})

        if request.method == "PUT" and path == "/v1/entries":
            if self.fail_mark_read:
                return httpx.Response(500, json={"error_message": "boom"})
            self.marked.append(json.loads(request.content))
            return httpx.Response(204)

        return httpx.Response(404)

    def paths(self, method="GET") -> list[str]:
        return [r.url.path for r in self.requests if r.method == method]

    def client(self) -> MinifluxClient:
        cfg = MinifluxConfig(base_url="http://miniflux.test", auth_token="secret-token")
        return MinifluxClient(cfg, transport=httpx.MockTransport(self.handler))


class StubProvider(ClassificationProvider):
    """Answers by entry title; records every call and the peak concurrency."""

    model = "stub-model"

    def __init__(self, answers=None, default="yes", fail_on=None):
        self.answers = answers or {}
        self.default = default
        self.fail_on = fail_on
        self.calls: list[tuple[str, str]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def classify(self, instructions: str, text: str) -> str:
        self.calls.append((instructions, text))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            title = text.splitlines()[0].removeprefix("# ")
            if title == self.fail_on:
                raise httpx.ConnectError("oracle unavailable")
            return self.answers.get(title, self.default)
        finally:
            self.in_flight -= 1

    @property
    def titles(self) -> list[str]:
        return [text.splitlines()[0].removeprefix("# ") for _, text in self.calls]


@pytest.fixture
def stub_provider():
    return StubProvider()


@pytest.fixture
def package_logger():
    """Clean ``miniflux_ai`` logger that propagates to caplog, restored afterwards."""
    logger = logging.getLogger(LOGGER_NAME)
    saved_handlers, saved_propagate, saved_level = logger.handlers[:], logger.propagate, logger.level
    logger.handlers = []
    logger.propagate = True
    yield logger
    for handler in logger.handlers:
        handler.close()
    logger.handlers = saved_handlers
    logger.propagate = saved_propagate
    logger.setLevel(saved_level)
