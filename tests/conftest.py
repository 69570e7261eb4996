import threading
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from config import TestingConfig
from marketpulse import create_app
from marketpulse.database import UpsertResult
from marketpulse.errors import StoreError
from marketpulse.models.article import ArticleDraft
from marketpulse.utils.text_analysis import extract_hostname


class FakeStore:
    """In-memory stand-in for ArticleStore with the same contract."""

    def __init__(self, sources=()):
        self.collections = {source: {} for source in sources}
        self.upsert_calls = []
        self.fail_on = set()

    def ping(self):
        return True

    def close(self):
        pass

    def find_all(self, source):
        if "load" in self.fail_on:
            raise StoreError("read failed")
        return [article.model_copy() for article in self.collections.setdefault(source, {}).values()]

    def upsert_many(self, source, articles):
        if "upsert" in self.fail_on:
            raise StoreError("write failed")
        articles = list(articles)
        self.upsert_calls.append((source, articles))
        collection = self.collections.setdefault(source, {})
        inserted = sum(1 for article in articles if article.url not in collection)
        for article in articles:
            collection[article.url] = article.model_copy()
        return UpsertResult(inserted=inserted, modified=len(articles) - inserted)

    def find_recent(self, source, since=None, limit=0, skip=0):
        articles = sorted(self.collections.setdefault(source, {}).values(),
                          key=lambda article: article.published_at, reverse=True)
        if since:
            articles = [article for article in articles if article.published_at >= since]
        articles = articles[skip:]
        return articles[:limit] if limit else articles

    def count(self, source):
        return len(self.collections.setdefault(source, {}))


class StubAdapter:
    """Adapter returning canned drafts, or raising a canned error."""

    def __init__(self, name, drafts=None, error=None):
        self.name = name
        self.drafts = list(drafts or [])
        self.error = error
        self.calls = []

    def fetch_all(self, query=None):
        self.calls.append(query)
        if self.error:
            raise self.error
        return [draft.model_copy() for draft in self.drafts]


class BlockingAdapter(StubAdapter):
    """Holds fetch_all open until released, to exercise overlapping runs."""

    def __init__(self, name, drafts=None):
        super().__init__(name, drafts)
        self.started = threading.Event()
        self.release = threading.Event()

    def fetch_all(self, query=None):
        self.started.set()
        self.release.wait(timeout=5)
        return super().fetch_all(query)


def make_draft(url, title="Bitcoin price climbs", body=None, published_at=None):
    return ArticleDraft(
        source=extract_hostname(url),
        title=title,
        url=url,
        published_at=published_at or datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc),
        body=body,
    )


def mock_response(payload, status=200, url="https://api.example.com"):
    response = MagicMock()
    response.ok = status < 400
    response.status_code = status
    response.url = url
    response.json.return_value = payload
    return response


@pytest.fixture
def store():
    return FakeStore(["guardian", "reddit"])


@pytest.fixture
def guardian_drafts():
    return [
        make_draft("https://www.theguardian.com/technology/bitcoin-rally", "Bitcoin rally lifts crypto markets"),
        make_draft("https://www.theguardian.com/business/ether-slump", "Ether slump worries investors"),
    ]


@pytest.fixture
def app(store, guardian_drafts):
    adapters = {
        "guardian": StubAdapter("guardian", guardian_drafts),
        "reddit": StubAdapter("reddit", error=RuntimeError("adapter exploded")),
    }
    app = create_app(TestingConfig, store=store, adapters=adapters)
    app.config.update(TESTING=True)
    return app


@pytest.fixture
def client(app):
    return app.test_client()
