# tests/test_outline.py
import logging

import pytest

from briefsmith.errors import GenerationError, SchemaValidationError
from briefsmith.llm import RetryPolicy
from briefsmith.outline import OutlineEnrichmentPipeline, normalize_outline, parse_structure
from briefsmith.validators import walk


def _node(heading, children=(), **fields):
    return {"level": "H2", "heading": heading, "guidelines": [], "reasoning": "r",
            "targeted_keywords": [], "competitor_coverage": [], "additional_resources": [],
            "children": list(children), **fields}


def _structure(*nodes):
    return {"article_structure": {"word_count_target": 1200, "reasoning": "why", "outline": list(nodes)}}


SKELETON = _structure(
    _node("Intro", guidelines=["leaked"]),
    _node("Choosing", [_node("Cushioning")]),
)
ENRICHED = _structure(
    _node("Intro", guidelines=["Hook"], targeted_keywords=["running shoes"], reasoning="changed"),
    _node("Choosing", [_node("Cushioning", guidelines=["Compare foams"], competitor_coverage=["https://a.example"])]),
)
RESOURCES = _structure(
    _node("Intro", additional_resources=["Hero image"]),
    _node("Choosing", [_node("Cushioning", additional_resources=["Foam comparison table"])]),
)


@pytest.fixture
def pipeline(client, sleeps):
    return OutlineEnrichmentPipeline(client, resource_retry=RetryPolicy(max_attempts=2, delay_seconds=1.0, sleep=sleeps))


def _run(pipeline, brief, ctx):
    return pipeline.run(brief, ctx, competitor_payload="[]")


def test_normalize_is_idempotent():
    once = normalize_outline([{"heading": "A", "children": [{"heading": "B"}]}])
    assert once[0]["id"] and once[0]["children"][0]["id"]
    assert normalize_outline(once) == once
    assert normalize_outline(None) == []


def test_parse_structure_rejects_missing_object():
    with pytest.raises(SchemaValidationError):
        parse_structure({"outline": []})


def test_three_passes(pipeline, backend, full_brief, ctx):
    backend.queue(SKELETON, ENRICHED, RESOURCES)
    result = _run(pipeline, full_brief, ctx)

    nodes = [n for _, n in walk(result.outline)]
    assert [n.heading for n in nodes] == ["Intro", "Choosing", "Cushioning"]
    assert nodes[0].guidelines == ["Hook"]
    assert nodes[0].targeted_keywords == ["running shoes"]
    assert nodes[0].additional_resources == ["Hero image"]
    assert nodes[2].competitor_coverage == ["https://a.example"]
    assert nodes[2].additional_resources == ["Foam comparison table"]
    # fields not owned by the enrichment pass come from the skeleton
    assert nodes[0].reasoning == "r"
    assert len(backend.calls) == 3


def test_skeleton_pass_empties_enrichment_fields(pipeline, backend, full_brief, ctx):
    backend.queue(SKELETON)
    skeleton = pipeline.skeleton_pass(full_brief, ctx, competitor_payload="[]")
    assert skeleton.outline[0].guidelines == []


def test_enrichment_keeps_skeleton_ids(pipeline, backend, full_brief, ctx):
    backend.queue(SKELETON, ENRICHED)
    skeleton = pipeline.skeleton_pass(full_brief, ctx, competitor_payload="[]")
    enriched = pipeline.enrichment_pass(skeleton, full_brief, ctx, competitor_payload="[]")
    assert [n.id for _, n in walk(enriched.outline)] == [n.id for _, n in walk(skeleton.outline)]
    assert '"id":' not in backend.calls[1]["user"]


def test_structure_drift_is_retried(pipeline, backend, full_brief, ctx, sleeps):
    drifted = _structure(_node("Intro"), _node("Choosing Shoes", [_node("Cushioning")]))
    backend.queue(SKELETON, drifted, ENRICHED, RESOURCES)
    result = _run(pipeline, full_brief, ctx)
    assert result.outline[1].heading == "Choosing"
    assert result.outline[0].guidelines == ["Hook"]
    assert sleeps.calls == [2.0]


def test_resource_failure_keeps_enriched_outline(pipeline, backend, full_brief, ctx, sleeps, caplog):
    backend.queue(SKELETON, ENRICHED, "garbage", "garbage")
    with caplog.at_level(logging.WARNING, logger="briefsmith.outline"):
        result = _run(pipeline, full_brief, ctx)
    assert result.outline[0].guidelines == ["Hook"]
    assert all(not n.additional_resources for _, n in walk(result.outline))
    assert sleeps.calls == [1.0]
    assert any("Resource analysis failed" in r.getMessage() for r in caplog.records)


def test_skeleton_failure_propagates(pipeline, backend, full_brief, ctx):
    too_deep = _structure(_node("A", [_node("B", [_node("C", [_node("D")])])]))
    backend.queue(too_deep, too_deep, too_deep)
    with pytest.raises(GenerationError):
        _run(pipeline, full_brief, ctx)
