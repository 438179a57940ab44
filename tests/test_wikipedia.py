"""Tests for the Wikipedia client, using a stand-in HTTP session."""

import pytest
import requests

from wikisage.wikipedia import WikipediaClient, trim_extract

SENTENCES = [f"This is sentence number {i} of the article" for i in range(8)]
EXTRACT = ". ".join(SENTENCES) + "."


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")

    def json(self):
        return self.payload


class FakeSession:
    """Answers extract queries from ``articles`` and search queries from ``hits``."""

    def __init__(self, articles=None, hits=None, status_code=200):
        self.articles = articles or {}
        self.hits = hits or []
        self.status_code = status_code
        self.headers = {}
        self.requests = []

    def get(self, url, params=None, timeout=None):
        self.requests.append((url, params, timeout))
        if "list" in params:
            payload = {"query": {"search": [{"title": t} for t in self.hits]}}
        else:
            title = params["titles"]
            if title in self.articles:
                payload = {"query": {"pages": {"42": {"title": title, "extract": self.articles[title]}}}}
            else:
                payload = {"query": {"pages": {"-1": {"title": title, "missing": ""}}}}
        return FakeResponse(payload, self.status_code)


class TestTrimExtract:
    """Test summary trimming."""

    def test_short_form_keeps_five_sentences(self):
        """Short answers stop after five sentences."""
        assert trim_extract(EXTRACT) == ". ".join(SENTENCES[:5]) + "."

    def test_long_form_keeps_more(self):
        """Long answers keep up to twelve sentences."""
        assert trim_extract(EXTRACT, long_form=True) == EXTRACT

    @pytest.mark.parametrize("extract", [
        None,
        "",
        "Too short.",
        "Mercury may refer to: a planet, an element, or a Roman god of commerce and travel.",
    ])
    def test_unusable(self, extract):
        """Empty, tiny and disambiguation extracts give None."""
        assert trim_extract(extract) is None


class TestWikipediaClient:
    """Test exact lookups and search fallback."""

    def test_direct_hit(self):
        """An existing title is summarised directly."""
        session = FakeSession(articles={"Photosynthesis": EXTRACT})
        client = WikipediaClient(session=session, timeout=3)
        assert client.fetch("Photosynthesis") == trim_extract(EXTRACT)
        assert len(session.requests) == 1
        _, params, timeout = session.requests[0]
        assert params["action"] == "query"
        assert params["format"] == "json"
        assert timeout == 3
        assert "wikisage" in session.headers["User-Agent"]

    def test_search_fallback(self):
        """A missing title falls back to the best search hit."""
        session = FakeSession(articles={"Photosynthesis": EXTRACT}, hits=["Photosynthesis", "Plants"])
        client = WikipediaClient(session=session)
        assert client("photosynthsis", long_form=True) == EXTRACT
        assert [p.get("titles") for _, p, _ in session.requests] == ["photosynthsis", None, "Photosynthesis"]

    def test_nothing_found(self):
        """No article and no search hit gives None."""
        client = WikipediaClient(session=FakeSession())
        assert client.fetch("xyzzy") is None

    def test_http_errors_propagate(self):
        """Server errors are raised for the caller to handle."""
        client = WikipediaClient(session=FakeSession(status_code=503))
        with pytest.raises(requests.HTTPError):
            client.fetch("Photosynthesis")
