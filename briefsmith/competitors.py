# briefsmith/competitors.py
"""
Competitor acquisition: SERP lookups per keyword, weighted URL scoring and
on-page extraction of headings and body text.
"""
import re
import time
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import requests
from bs4 import BeautifulSoup

from briefsmith.config import dataforseo_credentials
from briefsmith.errors import DataSourceError
from briefsmith.models import CompetitorPage, KeywordRanking, KeywordVolume

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.dataforseo.com/v3"
REQUEST_TIMEOUT = 30
SERP_DEPTH = 20
ORGANIC_RESULTS = 10
TOP_COMPETITORS = 10
PARSE_FAILED = "PARSE_FAILED"
NO_H1 = "No H1 Found"
OK = 20000


def rank_weight(rank: int) -> int:
    return max(0, 11 - rank)


def failed_page() -> Dict[str, Any]:
    return {"H1s": [PARSE_FAILED], "H2s": [], "H3s": [], "Word_Count": 0,
            "Full_Text": "Could not parse the page content."}


def _clean(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def _page_fields(h1s: List[str], h2s: List[str], h3s: List[str], text: str) -> Dict[str, Any]:
    text = _clean(text)
    return {
        "H1s": h1s or [NO_H1],
        "H2s": h2s,
        "H3s": h3s,
        "Word_Count": len(text.split()) if text else 0,
        "Full_Text": text,
    }


def scrape_page(url: str, timeout: int = REQUEST_TIMEOUT) -> Dict[str, Any]:
    """Plain HTTP fetch + BeautifulSoup, for when the on-page API is unavailable."""
    try:
        resp = requests.get(url, timeout=timeout, headers={"User-Agent": "Mozilla/5.0 (briefsmith)"})
        resp.raise_for_status()
    except requests.exceptions.RequestException as e:
        logger.warning("Failed to fetch %s: %s", url, e)
        return failed_page()

    soup = BeautifulSoup(resp.text, "html.parser")
    for tag in soup(["script", "style", "noscript", "nav", "footer", "header", "aside"]):
        tag.decompose()

    def texts(name: str) -> List[str]:
        return [t for t in (_clean(h.get_text(" ")) for h in soup.find_all(name)) if t]

    body = soup.find("main") or soup.find("article") or soup.body or soup
    return _page_fields(texts("h1"), texts("h2"), texts("h3"), body.get_text(" "))


class DataForSEOClient:
    """Thin client over the DataForSEO live SERP and content-parsing endpoints."""

    def __init__(
        self,
        login: Optional[str] = None,
        password: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: int = REQUEST_TIMEOUT,
        pause_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if login is None or password is None:
            login, password = dataforseo_credentials()
        self.session = session or requests.Session()
        self.session.auth = (login, password)
        self.timeout = timeout
        self.pause_seconds = pause_seconds
        self.sleep = sleep

    def _post(self, endpoint: str, payload: List[Dict[str, Any]]) -> Dict[str, Any]:
        try:
            resp = self.session.post(f"{API_BASE_URL}/{endpoint}", json=payload, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except requests.exceptions.RequestException as e:
            raise DataSourceError(f"DataForSEO request to {endpoint} failed: {e}") from e
        except ValueError as e:
            raise DataSourceError(f"DataForSEO returned invalid JSON for {endpoint}") from e

        if data.get("status_code") != OK or data.get("tasks_error", 0) > 0:
            tasks = data.get("tasks") or [{}]
            raise DataSourceError(f"DataForSEO task error: {tasks[0].get('status_message') or data.get('status_message')}")
        return data

    @staticmethod
    def _first_result(data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        tasks = data.get("tasks") or []
        if not tasks or tasks[0].get("status_code") != OK or not tasks[0].get("result"):
            return None
        return tasks[0]["result"][0]

    def serp(self, keyword: str, country: str, language: str) -> Tuple[List[Tuple[str, int]], List[str]]:
        """Top organic (url, rank) pairs and People-Also-Ask questions for one keyword."""
        data = self._post("serp/google/organic/live/regular", [{
            "language_name": language,
            "location_name": country,
            "keyword": keyword,
            "depth": SERP_DEPTH,
        }])
        result = self._first_result(data)
        if result is None:
            return [], []

        items = result.get("items") or []
        organic = [i for i in items if i.get("type") == "organic"][:ORGANIC_RESULTS]
        urls = [(i["url"], i["rank_absolute"]) for i in organic
                if i.get("url") and isinstance(i.get("rank_absolute"), int)]

        paa = []
        for item in items:
            if item.get("type") == "people_also_ask":
                paa.extend(q["title"] for q in (item.get("items") or []) if q.get("title"))
        return urls, paa

    def onpage(self, url: str) -> Dict[str, Any]:
        """Headings and body text for a URL; the PARSE_FAILED sentinel when nothing usable came back."""
        data = self._post("on_page/content_parsing/live", [{"url": url, "enable_javascript": True}])
        result = self._first_result(data)
        items = (result or {}).get("items") or []
        content = items[0].get("page_content") if items else None
        if not content:
            return failed_page()

        h1s, h2s, h3s, chunks = [], [], [], []
        buckets = {1: h1s, 2: h2s, 3: h3s}
        for topic in content.get("main_topic") or []:
            title = topic.get("h_title")
            if title and topic.get("level") in buckets:
                buckets[topic["level"]].append(title)
            chunks.extend(c["text"] for c in (topic.get("primary_content") or []) if c and c.get("text"))
        return _page_fields(h1s, h2s, h3s, " ".join(chunks))

    def competitor_pages(
        self,
        keywords: Sequence[KeywordVolume],
        country: str,
        language: str,
        top_n: int = TOP_COMPETITORS,
        on_progress: Optional[Callable[[str], None]] = None,
    ) -> Tuple[List[CompetitorPage], List[str]]:
        """
        Score every URL ranking for any keyword by sum(volume * (11 - rank)),
        then fetch on-page data for the top_n. Returns pages and deduplicated PAA questions.
        """
        def progress(msg: str) -> None:
            logger.info(msg)
            if on_progress is not None:
                on_progress(msg)

        scores: Dict[str, float] = {}
        rankings: Dict[str, List[KeywordRanking]] = {}
        paa: List[str] = []

        for i, kv in enumerate(keywords):
            progress(f'Fetching SERP for "{kv.kw}" ({i + 1}/{len(keywords)})')
            urls, questions = self.serp(kv.kw, country, language)
            for q in questions:
                if q not in paa:
                    paa.append(q)
            for url, rank in urls:
                rankings.setdefault(url, []).append(KeywordRanking(keyword=kv.kw, rank=rank, volume=kv.volume))
                scores[url] = scores.get(url, 0) + kv.volume * rank_weight(rank)
            self.sleep(self.pause_seconds)

        top = sorted(scores.items(), key=lambda kv: kv[1], reverse=True)[:top_n]
        progress(f"Identified top {len(top)} competitors; starting on-page analysis")

        pages = []
        for i, (url, score) in enumerate(top):
            progress(f"Analyzing {url[:50]} ({i + 1}/{len(top)})")
            pages.append(CompetitorPage(
                URL=url,
                Weighted_Score=round(score),
                rankings=rankings[url],
                is_starred=False,
                **self.onpage(url),
            ))
            self.sleep(self.pause_seconds)

        unparsed = sum(1 for p in pages if p.H1s == [PARSE_FAILED])
        if unparsed:
            logger.warning("%d of %d competitor pages could not be parsed", unparsed, len(pages))
        return pages, paa
