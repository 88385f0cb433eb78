# tests/test_validators.py
import pytest

from briefsmith.errors import KeywordIdentityError, OutlineDepthError, OutlineStructureError
from briefsmith.models import FeaturedSnippetTarget, KeywordItem, KeywordStrategy, OutlineItem
from briefsmith.validators import (
    check_keyword_identity,
    check_outline_depth,
    check_structure_unchanged,
    clamp_featured_snippets,
    outline_depth,
    seo_lint,
)


def _strategy(primary, secondary=()):
    return KeywordStrategy(
        primary_keywords=[KeywordItem(keyword=k) for k in primary],
        secondary_keywords=[KeywordItem(keyword=k) for k in secondary],
    )


def test_keyword_identity_ignores_surrounding_whitespace():
    check_keyword_identity(_strategy([" running shoes"], ["trail shoes "]), ["trail shoes", "running shoes"])


def test_keyword_identity_is_case_sensitive():
    with pytest.raises(KeywordIdentityError) as exc:
        check_keyword_identity(_strategy(["Running Shoes"]), ["running shoes"])
    assert exc.value.missing == ["running shoes"]
    assert exc.value.unexpected == ["Running Shoes"]


def test_keyword_identity_counts_duplicates():
    with pytest.raises(KeywordIdentityError) as exc:
        check_keyword_identity(_strategy(["a"], ["a"]), ["a", "b"])
    assert exc.value.missing == ["b"]
    assert exc.value.unexpected == ["a"]


def _chain(depth: int) -> OutlineItem:
    node = OutlineItem(heading=f"level {depth}")
    for d in range(depth - 1, 0, -1):
        node = OutlineItem(heading=f"level {d}", children=[node])
    return node


def test_outline_depth_limit():
    check_outline_depth([_chain(3)])
    assert outline_depth([_chain(3)]) == 3
    with pytest.raises(OutlineDepthError) as exc:
        check_outline_depth([_chain(4)])
    assert exc.value.depth == 4
    assert exc.value.heading == "level 4"


def test_structure_change_is_detected():
    before = [OutlineItem(heading="A", children=[OutlineItem(heading="B")])]
    same = [OutlineItem(heading="A ", children=[OutlineItem(heading="B", guidelines=["x"])])]
    check_structure_unchanged(before, same, "enrichment")

    renamed = [OutlineItem(heading="A", children=[OutlineItem(heading="C")])]
    with pytest.raises(OutlineStructureError):
        check_structure_unchanged(before, renamed, "enrichment")

    flattened = [OutlineItem(heading="A"), OutlineItem(heading="B")]
    with pytest.raises(OutlineStructureError):
        check_structure_unchanged(before, flattened, "enrichment")

    relevelled = [OutlineItem(heading="A", children=[OutlineItem(heading="B", level="H4")])]
    with pytest.raises(OutlineStructureError, match="H4"):
        check_structure_unchanged(before, relevelled, "enrichment")


def test_only_first_snippet_target_survives():
    target = FeaturedSnippetTarget(is_target=True, format="list")
    outline = [
        OutlineItem(heading="A", children=[OutlineItem(heading="A1", featured_snippet_target=target)]),
        OutlineItem(heading="B", featured_snippet_target=target),
        OutlineItem(heading="C", featured_snippet_target=FeaturedSnippetTarget(is_target=False)),
        OutlineItem(heading="D", featured_snippet_target=target),
    ]
    assert clamp_featured_snippets(outline) == 2
    assert outline[0].children[0].featured_snippet_target.is_target
    assert outline[1].featured_snippet_target is None
    assert outline[2].featured_snippet_target is not None
    assert outline[3].featured_snippet_target is None


def test_seo_lint():
    assert seo_lint("# Title\n\n## A\n\nShort.\n") == []
    errs = seo_lint("# One\n\n# Two\n\n#### [Deep](http://x)\n\n" + "word " * 140)
    assert any("exactly one H1" in e for e in errs)
    assert any("jumps" in e for e in errs)
    assert any("Link" in e for e in errs)
    assert any("exceed" in e for e in errs)
