"""
Shared fixtures for the rmlpub test suite.

HTTP is never touched: the store and feed steps receive a FakeSession that
replays queued responses (or raises queued exceptions) and records every
request it was asked to send.
"""

from collections import defaultdict, deque
from datetime import datetime, timezone

import pytest
from requests.structures import CaseInsensitiveDict

from rmlpub.domain.models import DatasetMetadata, PublicationRequest


class FakeResponse:
    def __init__(self, status_code=200, headers=None, content=b""):
        self.status_code = status_code
        self.headers = CaseInsensitiveDict(headers or {})
        self.content = content.encode("utf-8") if isinstance(content, str) else content

    @property
    def text(self):
        return self.content.decode("utf-8", errors="replace")


class FakeSession:
    """Stand-in for requests.Session with per-method response queues."""

    def __init__(self):
        self.queued = defaultdict(deque)
        self.calls = []
        self.closed = False

    def queue(self, method, response_or_exception):
        self.queued[method.upper()].append(response_or_exception)
        return self

    def _send(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        if not self.queued[method]:
            raise AssertionError(f"Unexpected {method} {url}")
        item = self.queued[method].popleft()
        if isinstance(item, Exception):
            raise item
        return item

    def get(self, url, **kwargs):
        return self._send("GET", url, **kwargs)

    def put(self, url, **kwargs):
        return self._send("PUT", url, **kwargs)

    def post(self, url, **kwargs):
        return self._send("POST", url, **kwargs)

    def methods(self):
        return [call["method"] for call in self.calls]

    def close(self):
        self.closed = True


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def published_at():
    return datetime(2026, 1, 16, 9, 30, 45, tzinfo=timezone.utc)


@pytest.fixture
def metadata():
    return DatasetMetadata(
        dataset_url="https://data.example.org/roads.csv",
        title="Roads",
        description="Road network",
        keywords=["roads", "mobility"],
        ontology_urls=["https://example.org/onto/roads.ttl"],
        validation_urls=["https://example.org/shapes/roads.ttl"],
        feed_id="https://store.example.org/feed",
    )


@pytest.fixture
def publication(metadata):
    return PublicationRequest.for_location(metadata, "https://store.example.org/datasets/42")
