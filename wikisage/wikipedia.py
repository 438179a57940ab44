"""Wikipedia extract fetcher: exact title first, best search hit second"""

import logging
import re
from typing import Dict, Optional

import requests

from . import config

logger = logging.getLogger(__name__)

_DISAMBIGUATION_MARKERS = ("may refer to", "refer to:")


def trim_extract(extract: Optional[str], long_form: bool = False) -> Optional[str]:
    """
    Cut an article intro down to its first few substantial sentences.
    Returns None for empty extracts, disambiguation pages and summaries too
    short to be useful.
    """
    if not extract or any(marker in extract for marker in _DISAMBIGUATION_MARKERS):
        return None

    limit = config.LONG_FORM_SENTENCES if long_form else config.SHORT_FORM_SENTENCES
    sentences = [s for s in extract.split('. ') if len(s.strip()) > 20]
    summary = '. '.join(sentences[:limit])

    if summary and not summary.endswith('.'):
        summary += '.'
    summary = re.sub(r'\.\s*\.', '.', summary).strip()

    if len(summary) < config.MIN_SUMMARY_LENGTH:
        return None
    return summary


class WikipediaClient:
    """
    Thin client over the MediaWiki action API.

    fetch() raises on transport errors, HTTP errors and malformed payloads;
    the search orchestrator decides what a failure means for the turn.
    """

    def __init__(self, session: Optional[requests.Session] = None,
                 api_url: str = config.WIKIPEDIA_API_URL,
                 timeout: float = config.REQUEST_TIMEOUT):
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": config.USER_AGENT})
        self.api_url = api_url
        self.timeout = timeout

    def _get(self, params: Dict) -> Dict:
        response = self.session.get(
            self.api_url,
            params={"action": "query", "format": "json", **params},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def _extract_page(self, title: str):
        data = self._get({
            "prop": "extracts",
            "exintro": 1,
            "explaintext": 1,
            "redirects": 1,
            "titles": title,
        })
        pages = data["query"]["pages"]
        page_id = next(iter(pages))
        return page_id, pages[page_id]

    def _best_title(self, term: str) -> Optional[str]:
        data = self._get({"list": "search", "srsearch": term})
        hits = data.get("query", {}).get("search") or []
        return hits[0]["title"] if hits else None

    def fetch(self, term: str, long_form: bool = False) -> Optional[str]:
        """Trimmed intro for ``term``, or None when no usable article exists."""
        logger.debug(f"Wikipedia: fetching {term!r}")
        page_id, page = self._extract_page(term)

        if page_id == "-1":
            best = self._best_title(term)
            if not best:
                logger.debug(f"Wikipedia: nothing found for {term!r}")
                return None
            logger.debug(f"Wikipedia: {term!r} → closest title {best!r}")
            page_id, page = self._extract_page(best)
            if page_id == "-1":
                return None

        summary = trim_extract(page.get("extract"), long_form)
        if summary:
            logger.info(f"Wikipedia: found {page.get('title', term)!r}")
        return summary

    def __call__(self, term: str, long_form: bool = False) -> Optional[str]:
        return self.fetch(term, long_form)
