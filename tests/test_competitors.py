# tests/test_competitors.py
from unittest.mock import MagicMock, patch

import pytest
import requests

from briefsmith.competitors import PARSE_FAILED, DataForSEOClient, scrape_page
from briefsmith.errors import DataSourceError
from briefsmith.models import KeywordVolume


def _ok(result):
    return {"status_code": 20000, "tasks_error": 0, "tasks_count": 1,
            "tasks": [{"status_code": 20000, "result": [result]}]}


def _serp(urls, paa=()):
    items = [{"type": "organic", "url": u, "rank_absolute": r} for u, r in urls]
    items.insert(1, {"type": "people_also_ask", "items": [{"title": q} for q in paa]})
    return _ok({"items": items})


def _onpage(*topics):
    return _ok({"items": [{"page_content": {"main_topic": list(topics)}}]})


def _response(data):
    resp = MagicMock()
    resp.json.return_value = data
    resp.raise_for_status.return_value = None
    return resp


def _client(responses):
    session = MagicMock()
    session.post.side_effect = [_response(d) for d in responses]
    return DataForSEOClient(login="u", password="p", session=session, sleep=lambda s: None), session


def test_weighted_scoring_and_paa():
    client, session = _client([
        _serp([("https://a.example", 1), ("https://b.example", 3)], paa=["Q1?", "Q2?"]),
        _serp([("https://b.example", 1), ("https://c.example", 12)], paa=["Q2?", "Q3?"]),
        _onpage({"level": 1, "h_title": "B title", "primary_content": [{"text": "Some   body"}, {"text": "text"}]},
                {"level": 2, "h_title": "B sub", "primary_content": []}),
        _onpage({"level": 2, "h_title": "A sub", "primary_content": [{"text": "words"}]}),
        _ok({"items": []}),
    ])
    pages, paa = client.competitor_pages(
        [KeywordVolume(kw="shoes", volume=100), KeywordVolume(kw="trail shoes", volume=50)], "United States", "English",
    )

    # a: 100*10; b: 100*8 + 50*10; c: rank 12 weighs nothing
    assert [(p.URL, p.Weighted_Score) for p in pages] == [
        ("https://b.example", 1300), ("https://a.example", 1000), ("https://c.example", 0),
    ]
    assert [r.keyword for r in pages[0].rankings] == ["shoes", "trail shoes"]
    assert paa == ["Q1?", "Q2?", "Q3?"]

    b, a, c = pages
    assert b.H1s == ["B title"] and b.H2s == ["B sub"]
    assert b.Full_Text == "Some body text" and b.Word_Count == 3
    assert a.H1s == ["No H1 Found"]
    assert c.H1s == [PARSE_FAILED] and c.Word_Count == 0

    assert session.auth == ("u", "p")
    payload = session.post.call_args_list[0].kwargs["json"]
    assert payload[0]["depth"] == 20 and payload[0]["location_name"] == "United States"


def test_task_error_raises():
    client, _ = _client([{"status_code": 40501, "tasks_error": 1, "tasks": [{"status_message": "Invalid Field"}]}])
    with pytest.raises(DataSourceError, match="Invalid Field"):
        client.serp("shoes", "United States", "English")


def test_transport_error_raises():
    session = MagicMock()
    session.post.side_effect = requests.exceptions.ConnectionError("offline")
    client = DataForSEOClient(login="u", password="p", session=session)
    with pytest.raises(DataSourceError):
        client.onpage("https://a.example")


def test_scrape_page_extracts_headings_and_text():
    html = """<html><body><nav>Menu</nav><main><h1>Title</h1><p>Hello  there</p>
    <h2>Part</h2><p>More</p><script>var x;</script></main></body></html>"""
    resp = MagicMock(text=html)
    resp.raise_for_status.return_value = None
    with patch("briefsmith.competitors.requests.get", return_value=resp):
        page = scrape_page("https://a.example")
    assert page["H1s"] == ["Title"]
    assert page["H2s"] == ["Part"]
    assert "Menu" not in page["Full_Text"] and "var x" not in page["Full_Text"]
    assert page["Full_Text"] == "Title Hello there Part More"


def test_scrape_page_failure_returns_sentinel():
    with patch("briefsmith.competitors.requests.get", side_effect=requests.exceptions.Timeout("slow")):
        page = scrape_page("https://a.example")
    assert page["H1s"] == [PARSE_FAILED]
    assert page["Word_Count"] == 0
