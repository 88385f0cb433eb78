# tests/conftest.py
import json
from typing import Any, Dict, List

import pytest

from briefsmith.config import LengthConstraints, ModelSettings
from briefsmith.llm import RetryPolicy, SchemaGenerationClient
from briefsmith.models import (
    ArticleStructure,
    CompetitorInsights,
    CompetitorPage,
    ContentBrief,
    ContentGapAnalysis,
    FAQItem,
    FAQs,
    GenerationContext,
    KeywordItem,
    KeywordStrategy,
    KeywordVolume,
    OnPageSeo,
    OutlineItem,
    ReasoningItem,
    SearchIntent,
)


class FakeBackend:
    """
    Replays canned responses in order. A response may be a string, a dict/list
    (sent as JSON) or an exception instance (raised). Streams are lists of chunks.
    """

    def __init__(self):
        self.responses: List[Any] = []
        self.streams: List[Any] = []
        self.calls: List[Dict[str, Any]] = []

    def queue(self, *responses: Any) -> "FakeBackend":
        self.responses.extend(responses)
        return self

    def queue_stream(self, *streams: Any) -> "FakeBackend":
        self.streams.extend(streams)
        return self

    def _record(self, kind, model, system_prompt, user_prompt, config):
        self.calls.append({"kind": kind, "model": model, "system": system_prompt,
                           "user": user_prompt, "config": config})

    def generate(self, model, system_prompt, user_prompt, config, cancel_token=None):
        self._record("generate", model, system_prompt, user_prompt, config)
        if not self.responses:
            raise AssertionError("FakeBackend has no responses left")
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item if isinstance(item, str) else json.dumps(item)

    def stream(self, model, system_prompt, user_prompt, config, cancel_token=None):
        self._record("stream", model, system_prompt, user_prompt, config)
        item = self.streams.pop(0)
        if isinstance(item, BaseException):
            raise item
        for chunk in item:
            yield chunk


class RecordingSleep:
    def __init__(self):
        self.calls: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def sleeps():
    return RecordingSleep()


@pytest.fixture
def retry(sleeps):
    return RetryPolicy(max_attempts=3, delay_seconds=2.0, sleep=sleeps)


@pytest.fixture
def client(backend, retry):
    return SchemaGenerationClient(backend=backend, retry_policy=retry)


@pytest.fixture
def pages():
    return [
        CompetitorPage(URL="https://a.example/guide", Weighted_Score=120, H1s=["Guide"], Word_Count=4,
                       Full_Text="All about running shoes."),
        CompetitorPage(URL="https://b.example/best", Weighted_Score=300, H1s=["Best"], Word_Count=3,
                       Full_Text="Best running shoes."),
        CompetitorPage(URL="https://c.example/review", Weighted_Score=50, H1s=["Review"], Word_Count=2,
                       Full_Text="Shoe review.", is_starred=True),
    ]


@pytest.fixture
def ctx(pages):
    return GenerationContext(
        competitor_pages=pages,
        available_keywords=[KeywordVolume(kw="running shoes", volume=1000),
                            KeywordVolume(kw="best running shoes", volume=400)],
        paa_questions=["How long do running shoes last?"],
        language="English",
        settings=ModelSettings(model="gpt-5", fast_model="gpt-5-mini", thinking_level=None),
        length=LengthConstraints(),
    )


def goal_fields() -> Dict[str, Any]:
    return {
        "search_intent": SearchIntent(type="commercial_investigation", preferred_format="listicle"),
        "page_goal": ReasoningItem(value="Help readers pick running shoes", reasoning="intent"),
        "target_audience": ReasoningItem(value="Recreational runners", reasoning="volume"),
    }


@pytest.fixture
def full_brief() -> ContentBrief:
    return ContentBrief(
        **goal_fields(),
        keyword_strategy=KeywordStrategy(
            primary_keywords=[KeywordItem(keyword="running shoes")],
            secondary_keywords=[KeywordItem(keyword="best running shoes")],
        ),
        competitor_insights=CompetitorInsights(),
        content_gap_analysis=ContentGapAnalysis(
            table_stakes=[ReasoningItem(value="Sizing", reasoning="everyone covers it")],
        ),
        article_structure=ArticleStructure(
            word_count_target=1200,
            outline=[
                OutlineItem(heading="Introduction", guidelines=["Hook the reader"]),
                OutlineItem(heading="How to Choose", children=[
                    OutlineItem(level="H3", heading="Cushioning"),
                ]),
            ],
        ),
        faqs=FAQs(questions=[FAQItem(question="How long do running shoes last?", guidelines=["Give mileage"])]),
        on_page_seo=OnPageSeo(h1=ReasoningItem(value="The Best Running Shoes")),
    )
