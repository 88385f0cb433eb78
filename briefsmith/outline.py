# briefsmith/outline.py
"""
Three-pass outline generation: skeleton, enrichment, resource analysis.

Each pass returns the full outline JSON. Later passes are only trusted for the
fields they own; everything else is taken from the skeleton.
"""
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from briefsmith.brief_context import drop_keys
from briefsmith.errors import GenerationError, SchemaValidationError
from briefsmith.llm import RESOURCE_RETRY, CancellationToken, RetryPolicy, SchemaGenerationClient
from briefsmith.models import ArticleStructure, ContentBrief, GenerationContext, new_id
from briefsmith.prompt_factory import build_enrichment_prompt, build_resource_prompt, build_stage_prompt
from briefsmith.schemas import OUTLINE_SCHEMA
from briefsmith.stages import Stage
from briefsmith.validators import (
    check_outline_depth,
    check_structure_unchanged,
    clamp_featured_snippets,
    walk,
)

logger = logging.getLogger(__name__)

ENRICHMENT_FIELDS = ("guidelines", "targeted_keywords", "competitor_coverage")
RESOURCE_FIELDS = ("additional_resources",)


def normalize_outline(items: Optional[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    """Give every node an id and a children list, recursively. Safe to run twice."""
    out = []
    for node in items or []:
        node = dict(node)
        node.setdefault("id", new_id())
        node["children"] = normalize_outline(node.get("children"))
        out.append(node)
    return out


def parse_structure(data: Any) -> ArticleStructure:
    if not isinstance(data, dict) or not isinstance(data.get("article_structure"), dict):
        raise SchemaValidationError("Response has no 'article_structure' object.")
    raw = dict(data["article_structure"])
    raw["outline"] = normalize_outline(raw.get("outline"))
    try:
        structure = ArticleStructure.model_validate(raw)
    except ValidationError as e:
        raise SchemaValidationError(f"article_structure does not match the schema: {e}") from e
    check_outline_depth(structure.outline)
    return structure


def structure_payload(structure: ArticleStructure) -> Dict[str, Any]:
    """What the model sees: the structure without node ids."""
    return {"article_structure": drop_keys(structure.model_dump(exclude_none=True), ("id",))}


def _copy_fields(base: ArticleStructure, source: ArticleStructure, fields) -> ArticleStructure:
    merged = base.model_copy(deep=True)
    for (_, dst), (_, src) in zip(walk(merged.outline), walk(source.outline)):
        for f in fields:
            setattr(dst, f, list(getattr(src, f)))
    return merged


class OutlineEnrichmentPipeline:
    def __init__(self, client: SchemaGenerationClient, resource_retry: RetryPolicy = RESOURCE_RETRY):
        self.client = client
        self.resource_retry = resource_retry

    def run(
        self,
        brief: ContentBrief,
        ctx: GenerationContext,
        *,
        competitor_payload: str,
        ground_truth: str = "",
        is_regeneration: bool = False,
        feedback: Optional[str] = None,
        thinking_effort: Optional[str] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ArticleStructure:
        model = ctx.settings.model
        skeleton = self.skeleton_pass(
            brief, ctx,
            competitor_payload=competitor_payload, ground_truth=ground_truth,
            is_regeneration=is_regeneration, feedback=feedback,
            thinking_effort=thinking_effort, cancel_token=cancel_token,
        )
        logger.info("Outline skeleton: %d items", len(list(walk(skeleton.outline))))

        enriched = self.enrichment_pass(
            skeleton, brief, ctx,
            competitor_payload=competitor_payload, ground_truth=ground_truth,
            feedback=feedback, thinking_effort=thinking_effort, cancel_token=cancel_token,
        )
        try:
            return self.resource_pass(enriched, ctx.language, model, thinking_effort, cancel_token)
        except GenerationError as e:
            logger.warning("Resource analysis failed, keeping the outline without additional resources: %s", e)
            return enriched

    # ---------- passes ----------

    def skeleton_pass(self, brief, ctx, *, competitor_payload, ground_truth="", is_regeneration=False,
                      feedback=None, thinking_effort=None, cancel_token=None) -> ArticleStructure:
        prompt = build_stage_prompt(
            Stage.OUTLINE, brief, ctx,
            competitor_payload=competitor_payload, ground_truth=ground_truth,
            is_regeneration=is_regeneration, feedback=feedback,
        )

        def validate(data) -> ArticleStructure:
            structure = parse_structure(data)
            for _, node in walk(structure.outline):
                for f in ENRICHMENT_FIELDS + RESOURCE_FIELDS:
                    setattr(node, f, [])
            clamp_featured_snippets(structure.outline)
            return structure

        return self.client.generate_json(
            ctx.settings.model, prompt.system, prompt.user, OUTLINE_SCHEMA, thinking_effort,
            operation="outline skeleton", validate=validate,
            cancel_token=cancel_token, schema_name="article_structure",
        )

    def enrichment_pass(self, skeleton: ArticleStructure, brief, ctx, *, competitor_payload, ground_truth="",
                        feedback=None, thinking_effort=None, cancel_token=None) -> ArticleStructure:
        prompt = build_enrichment_prompt(
            structure_payload(skeleton), brief, ctx,
            competitor_payload=competitor_payload, ground_truth=ground_truth, feedback=feedback,
        )

        def validate(data) -> ArticleStructure:
            result = parse_structure(data)
            check_structure_unchanged(skeleton.outline, result.outline, "Outline enrichment")
            return _copy_fields(skeleton, result, ENRICHMENT_FIELDS)

        return self.client.generate_json(
            ctx.settings.model, prompt.system, prompt.user, OUTLINE_SCHEMA, thinking_effort,
            operation="outline enrichment", validate=validate,
            cancel_token=cancel_token, schema_name="article_structure",
        )

    def resource_pass(self, enriched: ArticleStructure, language: str, model: str,
                      thinking_effort: Optional[str] = None,
                      cancel_token: Optional[CancellationToken] = None) -> ArticleStructure:
        prompt = build_resource_prompt(structure_payload(enriched), language)

        def validate(data) -> ArticleStructure:
            result = parse_structure(data)
            check_structure_unchanged(enriched.outline, result.outline, "Resource analysis")
            return _copy_fields(enriched, result, RESOURCE_FIELDS)

        return self.client.generate_json(
            model, prompt.system, prompt.user, OUTLINE_SCHEMA, thinking_effort,
            operation="outline resource analysis", validate=validate,
            retry_policy=self.resource_retry, cancel_token=cancel_token, schema_name="article_structure",
        )
