"""Tests for the search-style and ticker source adapters."""

import threading
from datetime import datetime, timezone
from unittest.mock import patch

import pytest
import requests

from marketpulse.errors import UpstreamError
from marketpulse.sources import build_adapters
from marketpulse.sources.coingecko import CoinGeckoAdapter, ticker_headline
from marketpulse.sources.guardian import GuardianAdapter
from marketpulse.sources.nytimes import NYTimesAdapter
from config import TestingConfig
from tests.conftest import mock_response


def guardian_payload(pages, page):
    return {
        "response": {
            "status": "ok",
            "pages": pages,
            "results": [
                {
                    "webUrl": f"https://www.theguardian.com/technology/story-{page}-{n}",
                    "webTitle": f"Bitcoin story {page}-{n}",
                    "webPublicationDate": "2024-01-01T10:00:00Z",
                    "fields": {"trailText": "Prices moved sharply"},
                }
                for n in range(2)
            ],
        }
    }


def guardian_get(pages, failing_page=None):
    def _get(url, params=None, headers=None, timeout=None):
        page = params["page"]
        if page == failing_page:
            return mock_response({"message": "rate limited"}, status=429, url=url)
        return mock_response(guardian_payload(pages, page), url=url)
    return _get


@patch("marketpulse.sources.base.requests")
class TestGuardianAdapter:
    def test_fetches_every_page(self, mock_requests) -> None:
        mock_requests.get.side_effect = guardian_get(pages=3)
        adapter = GuardianAdapter("key", default_query="crypto")

        drafts = adapter.fetch_all()

        assert mock_requests.get.call_count == 3
        assert len(drafts) == 6
        assert [d.url for d in drafts[:2]] == [
            "https://www.theguardian.com/technology/story-1-0",
            "https://www.theguardian.com/technology/story-1-1",
        ]
        assert drafts[-1].url.endswith("story-3-1")

    def test_maps_fields_to_draft(self, mock_requests) -> None:
        mock_requests.get.side_effect = guardian_get(pages=1)

        draft = GuardianAdapter("key").fetch_all("bitcoin")[0]

        assert draft.source == "theguardian"
        assert draft.title == "Bitcoin story 1-0"
        assert draft.body == "Prices moved sharply"
        assert draft.published_at == datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)

    def test_sends_query_and_api_key(self, mock_requests) -> None:
        mock_requests.get.side_effect = guardian_get(pages=1)

        GuardianAdapter("secret", page_size=50).fetch_all("bitcoin")

        params = mock_requests.get.call_args[1]["params"]
        assert params["q"] == "bitcoin"
        assert params["api-key"] == "secret"
        assert params["page-size"] == 50
        assert params["page"] == 1

    def test_caps_page_count(self, mock_requests) -> None:
        mock_requests.get.side_effect = guardian_get(pages=40)

        GuardianAdapter("key", max_pages=2).fetch_all("crypto")

        assert mock_requests.get.call_count == 2

    def test_failing_page_aborts_fetch(self, mock_requests) -> None:
        mock_requests.get.side_effect = guardian_get(pages=4, failing_page=3)

        with pytest.raises(UpstreamError) as exc_info:
            GuardianAdapter("key").fetch_all("crypto")

        assert exc_info.value.status_code == 429
        assert exc_info.value.source == "guardian"

    def test_failing_page_cancels_pending_pages(self, mock_requests) -> None:
        requested = []
        lock = threading.Lock()
        release = threading.Event()

        def _get(url, params=None, headers=None, timeout=None):
            page = params["page"]
            with lock:
                requested.append(page)
            if page == 2:
                return mock_response({"message": "rate limited"}, status=429, url=url)
            if page > 1:
                release.wait(timeout=5)
            return mock_response(guardian_payload(20, page), url=url)

        mock_requests.get.side_effect = _get
        adapter = GuardianAdapter("key", max_pages=20)
        try:
            with pytest.raises(UpstreamError):
                adapter.fetch_all("crypto")
        finally:
            release.set()

        # Page 1, the in-flight pages, and at most one page picked up by the failed worker
        assert len(requested) <= adapter.max_workers + 2
        assert 20 not in requested

    def test_failing_first_page_issues_no_more_requests(self, mock_requests) -> None:
        mock_requests.get.side_effect = guardian_get(pages=4, failing_page=1)

        with pytest.raises(UpstreamError):
            GuardianAdapter("key").fetch_all("crypto")

        assert mock_requests.get.call_count == 1

    def test_transport_error_becomes_upstream_error(self, mock_requests) -> None:
        mock_requests.get.side_effect = requests.exceptions.ConnectionError("connection reset")

        with pytest.raises(UpstreamError, match="connection reset"):
            GuardianAdapter("key").fetch_all("crypto")

    def test_malformed_payload_is_rejected(self, mock_requests) -> None:
        mock_requests.get.return_value = mock_response({"response": {"status": "ok"}})

        with pytest.raises(UpstreamError, match="Malformed response"):
            GuardianAdapter("key").fetch_all("crypto")

    def test_non_json_body_is_rejected(self, mock_requests) -> None:
        response = mock_response(None)
        response.json.side_effect = ValueError("Expecting value")
        mock_requests.get.return_value = response

        with pytest.raises(UpstreamError, match="not JSON"):
            GuardianAdapter("key").fetch_all("crypto")

    def test_error_status_in_body(self, mock_requests) -> None:
        mock_requests.get.return_value = mock_response(
            {"response": {"status": "error", "pages": 0, "results": []}})

        with pytest.raises(UpstreamError, match="API status 'error'"):
            GuardianAdapter("key").fetch_all("crypto")

    def test_records_without_url_are_skipped(self, mock_requests) -> None:
        payload = guardian_payload(1, 1)
        payload["response"]["results"][0]["webUrl"] = ""
        mock_requests.get.return_value = mock_response(payload)

        drafts = GuardianAdapter("key").fetch_all("crypto")

        assert len(drafts) == 1


def nytimes_payload(hits, page):
    return {
        "status": "OK",
        "response": {
            "docs": [
                {
                    "web_url": f"https://www.nytimes.com/2024/01/01/business/crypto-{page}.html",
                    "headline": {"main": f"Crypto headline {page}"},
                    "pub_date": "2024-01-01T10:00:00+0000",
                    "abstract": "Regulators weigh new rules.",
                }
            ],
            "meta": {"hits": hits},
        },
    }


@patch("marketpulse.sources.base.requests")
class TestNYTimesAdapter:
    def test_page_count_from_hits(self, mock_requests) -> None:
        mock_requests.get.side_effect = lambda url, params=None, headers=None, timeout=None: \
            mock_response(nytimes_payload(25, params["page"]))

        drafts = NYTimesAdapter("key").fetch_all("crypto")

        requested = sorted(call[1]["params"]["page"] for call in mock_requests.get.call_args_list)
        assert requested == [0, 1, 2]
        assert len(drafts) == 3

    def test_parses_compact_offset_dates(self, mock_requests) -> None:
        mock_requests.get.return_value = mock_response(nytimes_payload(1, 0))

        draft = NYTimesAdapter("key").fetch_all("crypto")[0]

        assert draft.published_at == datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
        assert draft.source == "nytimes"
        assert draft.title == "Crypto headline 0"
        assert draft.body == "Regulators weigh new rules."

    def test_no_hits(self, mock_requests) -> None:
        payload = nytimes_payload(0, 0)
        payload["response"]["docs"] = []
        mock_requests.get.return_value = mock_response(payload)

        assert NYTimesAdapter("key").fetch_all("crypto") == []
        assert mock_requests.get.call_count == 1


def coin(coin_id, name, symbol, price=100.0, change=2.5):
    return {
        "id": coin_id,
        "symbol": symbol,
        "name": name,
        "current_price": price,
        "price_change_percentage_24h": change,
        "last_updated": "2024-01-01T10:00:00.123Z",
    }


@patch("marketpulse.sources.base.requests")
class TestCoinGeckoAdapter:
    def test_full_first_page_fetches_up_to_max_pages(self, mock_requests) -> None:
        mock_requests.get.side_effect = lambda url, params=None, headers=None, timeout=None: mock_response([
            coin(f"coin-{params['page']}-a", "Coin A", "caa"),
            coin(f"coin-{params['page']}-b", "Coin B", "cbb"),
        ])

        drafts = CoinGeckoAdapter(per_page=2, max_pages=3).fetch_all()

        assert mock_requests.get.call_count == 3
        assert len(drafts) == 6

    def test_short_first_page_is_the_only_page(self, mock_requests) -> None:
        mock_requests.get.return_value = mock_response([coin("bitcoin", "Bitcoin", "btc")])

        drafts = CoinGeckoAdapter(per_page=100, max_pages=5).fetch_all()

        assert mock_requests.get.call_count == 1
        assert drafts[0].url == "https://www.coingecko.com/en/coins/bitcoin"
        assert drafts[0].source == "coingecko"
        assert drafts[0].published_at == datetime(2024, 1, 1, 10, 0, 0, 123000, tzinfo=timezone.utc)

    def test_query_filters_coin_ids(self, mock_requests) -> None:
        mock_requests.get.return_value = mock_response([])

        CoinGeckoAdapter(api_key="demo").fetch_all("bitcoin,ethereum")

        kwargs = mock_requests.get.call_args[1]
        assert kwargs["params"]["ids"] == "bitcoin,ethereum"
        assert kwargs["headers"] == {"x-cg-demo-api-key": "demo"}

    def test_ticker_headline(self, mock_requests) -> None:
        assert ticker_headline("Bitcoin", "btc", 42000.5, 2.5) == \
            "Bitcoin (BTC) trades at $42,000.50, up 2.50% in 24 hours"
        assert ticker_headline("Ether", "eth", None, -1.25) == "Ether (ETH), down 1.25% in 24 hours"


class TestBuildAdapters:
    def test_only_configured_sources_are_registered(self) -> None:
        adapters = build_adapters(TestingConfig)

        assert set(adapters) == {"coingecko"}

    def test_all_sources_with_credentials(self) -> None:
        class FullConfig(TestingConfig):
            GUARDIAN_API_KEY = "g"
            NYTIMES_API_KEY = "n"
            REDDIT_CLIENT_ID = "id"
            REDDIT_CLIENT_SECRET = "secret"

        adapters = build_adapters(FullConfig)

        assert set(adapters) == {"guardian", "nytimes", "reddit", "coingecko"}
        assert adapters["guardian"].default_query == FullConfig.DEFAULT_QUERY
        assert adapters["coingecko"].default_query is None
