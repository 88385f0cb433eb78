# tests/test_writer.py
import pytest

from briefsmith.config import LengthConstraints
from briefsmith.errors import BackendError, BriefsmithError, GenerationCancelled, SectionError
from briefsmith.llm import CancellationToken
from briefsmith.models import ContentBrief, OutlineItem, WordBudget
from briefsmith.writer import (
    ArticleGenerator,
    BodyFilter,
    StreamingSectionWriter,
    allocate_section_budget,
    article_title,
    needs_trim,
    strip_echoed_heading,
)

EXPECTED_ARTICLE = (
    "# The Best Running Shoes\n\n"
    "## Introduction\n\nIntro body.\n\n"
    "## How to Choose\n\nChoose body.\n\n"
    "### Cushioning\n\nCushion body.\n\n"
    "## Frequently Asked Questions\n\n"
    "### How long do running shoes last?\n\nAnswer body.\n"
)


def test_even_split_of_global_target():
    b = allocate_section_budget(1500, False, 5, 0, 0)
    assert (b.target, b.minimum, b.maximum) == (300, 255, 345)
    strict = allocate_section_budget(1500, True, 5, 0, 0)
    assert (strict.minimum, strict.maximum) == (270, 330)


def test_budget_rebalances_after_overrun():
    b = allocate_section_budget(1500, False, 5, 400, 1)
    assert b.target == 275


def test_section_target_wins_and_no_target_means_no_budget():
    assert allocate_section_budget(1500, False, 5, 0, 0, section_target=120).target == 120
    assert allocate_section_budget(None, False, 5, 0, 0) is None


def test_needs_trim_only_in_strict_mode():
    text = "word " * 13
    assert needs_trim(text, WordBudget(target=10, minimum=9, maximum=11, strict=True))
    assert not needs_trim(text, WordBudget(target=10, minimum=9, maximum=11, strict=False))
    assert not needs_trim("word " * 12, WordBudget(target=10, minimum=9, maximum=11, strict=True))


def test_strip_echoed_heading():
    assert strip_echoed_heading("## Intro\n\nBody", "Intro") == "Body"
    assert strip_echoed_heading("**intro**\nBody", "Intro") == "Body"
    assert strip_echoed_heading("Body first", "Intro") == "Body first"


def test_article_title_fallbacks(full_brief):
    assert article_title(full_brief) == "The Best Running Shoes"
    assert article_title(full_brief.model_copy(update={"on_page_seo": None})) == "running shoes"
    assert article_title(ContentBrief()) == "Untitled Article"


def test_overlong_strict_section_is_trimmed(client, backend, full_brief, ctx):
    backend.queue("word " * 20, "short trimmed text")
    writer = StreamingSectionWriter(client)
    text = writer.write_section(
        full_brief, OutlineItem(heading="Intro"), ctx,
        content_so_far="", upcoming_headings=[], section_index=0,
        budget=WordBudget(target=10, minimum=9, maximum=11, strict=True),
    )
    assert text == "short trimmed text"
    assert backend.calls[1]["model"] == "gpt-5-mini"
    assert backend.calls[1]["config"].thinking_budget == 1024
    assert "approximately 10 words" in backend.calls[1]["user"]


def test_failed_trim_keeps_original(client, backend, full_brief, ctx, sleeps):
    backend.queue("word " * 20, "", "", "")
    writer = StreamingSectionWriter(client)
    text = writer.write_section(
        full_brief, OutlineItem(heading="Intro"), ctx,
        content_so_far="", upcoming_headings=[], section_index=0,
        budget=WordBudget(target=10, minimum=9, maximum=11, strict=True),
    )
    assert text == ("word " * 20).strip()
    assert sleeps.calls == [2.0, 2.0]


def test_article_assembly(client, backend, full_brief, ctx):
    backend.queue("## Introduction\n\nIntro body.", "Choose body.", "Cushion body.", "Answer body.")
    progress = []
    article = ArticleGenerator(StreamingSectionWriter(client)).generate(
        full_brief, ctx, on_section=lambda i, n, h: progress.append((i, n, h)),
    )
    assert article == EXPECTED_ARTICLE
    assert [p[0] for p in progress] == [0, 1, 2, 3]
    assert progress[3][2] == "Answer the question: How long do running shoes last?"
    # sections see what came before and what comes next
    assert "Intro body." in backend.calls[1]["user"]
    assert "### Cushioning" in backend.calls[1]["user"]


def test_streamed_article_matches_returned_text(client, backend, full_brief, ctx):
    backend.queue_stream(["## Introduction\n\n", "Intro ", "body.  \n"], ["Choose body."], ["\nCushion body."],
                         ["Answer body."])
    chunks = []
    article = ArticleGenerator(StreamingSectionWriter(client)).generate(full_brief, ctx, on_chunk=chunks.append)
    assert article == EXPECTED_ARTICLE
    assert "".join(chunks) == article
    assert chunks[0] == "# The Best Running Shoes\n\n"
    assert "## Introduction" not in "".join(chunks[2:])


def test_body_filter_holds_back_a_split_heading():
    out = []
    body = BodyFilter("How to Choose", out.append)
    for chunk in ["\n## How to", " Choose", "\n\nFirst", " para.\n\n", "Second."]:
        body.feed(chunk)
    assert body.close() == "First para.\n\nSecond."
    assert "".join(out) == "First para.\n\nSecond."
    assert out[0] == "First"


def test_trimmed_stream_is_replaced(client, backend, full_brief, ctx):
    ctx.length = LengthConstraints(strict_mode=True, section_targets={"Introduction": 5})
    backend.queue_stream([" ".join(["word"] * 20)], ["Choose body."], ["Cushion body."], ["Answer body."])
    backend.queue("Intro body.")
    streamed = []

    def on_replace(old, new):
        text = "".join(streamed)
        assert text.endswith(old)
        streamed[:] = [text[: len(text) - len(old)] + new]

    article = ArticleGenerator(StreamingSectionWriter(client)).generate(
        full_brief, ctx, on_chunk=streamed.append, on_replace=on_replace,
    )
    assert article == EXPECTED_ARTICLE
    assert "".join(streamed) == article


def test_cancel_mid_stream_stops_the_section(client, backend, full_brief, ctx):
    token = CancellationToken()
    backend.queue_stream(["Welcome ", "to ", "never seen."])
    chunks = []

    def on_chunk(chunk):
        chunks.append(chunk)
        if chunk == "Welcome":
            token.cancel()

    with pytest.raises(GenerationCancelled):
        ArticleGenerator(StreamingSectionWriter(client)).generate(
            full_brief, ctx, on_chunk=on_chunk, cancel_token=token,
        )
    assert "never seen." not in "".join(chunks)


def test_section_failure_reports_partial_article(client, backend, full_brief, ctx):
    backend.queue("Intro body.", BackendError("down"), BackendError("down"), BackendError("down"))
    with pytest.raises(SectionError) as exc:
        ArticleGenerator(StreamingSectionWriter(client)).generate(full_brief, ctx)
    assert exc.value.index == 1
    assert exc.value.heading == "How to Choose"
    assert "Intro body." in exc.value.partial_content
    assert exc.value.partial_content.endswith("## How to Choose\n\n")


def test_cancellation_is_not_a_section_error(client, backend, full_brief, ctx):
    token = CancellationToken()
    backend.queue("Intro body.")

    def on_section(i, n, h):
        if i == 1:
            token.cancel()

    with pytest.raises(GenerationCancelled):
        ArticleGenerator(StreamingSectionWriter(client)).generate(
            full_brief, ctx, on_section=on_section, cancel_token=token,
        )


def test_brief_without_structure_is_rejected(client, ctx):
    with pytest.raises(BriefsmithError):
        ArticleGenerator(StreamingSectionWriter(client)).generate(ContentBrief(), ctx)
