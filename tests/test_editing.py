# tests/test_editing.py
import pytest

from briefsmith.editing import ArticleEditor, match_section, paragraph_context

ARTICLE = "\n".join([
    "# Title",           # 0
    "",                  # 1
    "## How to Choose",  # 2
    "",                  # 3
    "First para.",       # 4
    "",                  # 5
    "Target para.",      # 6
    "",                  # 7
    "### Cushioning",    # 8
    "After para.",       # 9
])


def test_paragraph_context():
    pc = paragraph_context(ARTICLE, 6)
    assert pc.paragraph == "Target para."
    assert pc.before == "First para."
    assert pc.after == "After para."
    assert pc.section_heading == "How to Choose"
    with pytest.raises(IndexError):
        paragraph_context(ARTICLE, 99)


def test_context_window_is_limited():
    lines = [f"p{i}" for i in range(12)]
    pc = paragraph_context("\n".join(lines), 6, window=5)
    assert pc.before.split("\n") == ["p1", "p2", "p3", "p4", "p5"]
    assert pc.after.split("\n") == ["p7", "p8", "p9", "p10", "p11"]
    assert pc.section_line == ""


def test_match_section(full_brief):
    assert match_section(full_brief, "how to choose").heading == "How to Choose"
    assert match_section(full_brief, "Cushioning and Foam").heading == "Cushioning"
    assert match_section(full_brief, "Unrelated") is None


def test_regenerate_paragraph_uses_section_guidelines(client, backend, full_brief, ctx):
    backend.queue("  New intro paragraph.  ")
    new = ArticleEditor(client).regenerate_paragraph(
        "# T\n\n## Introduction\n\nOld paragraph.", 4, "more punch", full_brief, ctx,
    )
    assert new == "New intro paragraph."
    user = backend.calls[0]["user"]
    assert "Hook the reader" in user
    assert "more punch" in user
    assert "Old paragraph." in user


def test_rewrite_selection(client, backend, ctx):
    backend.queue("Shorter.")
    assert ArticleEditor(client).rewrite_selection("A long sentence.", "shorten", ctx) == "Shorter."
    assert "Shorten the text" in backend.calls[0]["user"]
    with pytest.raises(ValueError):
        ArticleEditor(client).rewrite_selection("x", "custom", ctx)


def test_optimize_article_streams(client, backend, full_brief, ctx):
    backend.queue_stream(["# The Best Running Shoes\n\n", "Better text."])
    chunks = []
    out = ArticleEditor(client).optimize_article("# Old\n\nText.", "make it better", full_brief, ctx,
                                                 on_chunk=chunks.append)
    assert out == "# The Best Running Shoes\n\nBetter text."
    assert len(chunks) == 2
    user = backend.calls[0]["user"]
    assert "Current article metrics" in user
    assert "1200 words" in user
