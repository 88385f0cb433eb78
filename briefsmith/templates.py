# briefsmith/templates.py
"""Heading templates lifted from an existing page and re-targeted to a new topic."""
import logging
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from briefsmith.errors import SchemaValidationError
from briefsmith.llm import CancellationToken, SchemaGenerationClient
from briefsmith.models import GenerationContext, HeadingNode, OutlineItem
from briefsmith.prompt_factory import build_adapt_headings_prompt, build_template_extraction_prompt
from briefsmith.schemas import HEADING_TREE_SCHEMA
from briefsmith.validators import MAX_OUTLINE_DEPTH

logger = logging.getLogger(__name__)

TEMPLATE_REASONING = "Pre-populated from template structure"


# ---------- tree helpers ----------

def build_tree(flat: Sequence[HeadingNode]) -> List[HeadingNode]:
    """Nest a document-order heading list by level: each heading owns the deeper ones that follow it."""
    roots: List[HeadingNode] = []
    stack: List[HeadingNode] = []
    for h in flat:
        node = h.model_copy(update={"children": []})
        while stack and stack[-1].level >= node.level:
            stack.pop()
        (stack[-1].children if stack else roots).append(node)
        stack.append(node)
    return roots


def flatten_tree(nodes: Sequence[HeadingNode]) -> List[HeadingNode]:
    out = []
    for n in nodes:
        out.append(n.model_copy(update={"children": []}))
        out.extend(flatten_tree(n.children))
    return out


def _parse_flat(data: Dict[str, Any]) -> List[HeadingNode]:
    try:
        nodes = [HeadingNode.model_validate(h) for h in data.get("headings") or []]
    except ValidationError as e:
        raise SchemaValidationError(f"Heading list does not match the schema: {e}") from e
    if not nodes:
        raise SchemaValidationError("No headings were returned.")
    return nodes


def headings_to_outline(nodes: Sequence[HeadingNode], depth: int = 1) -> List[OutlineItem]:
    """
    Convert a heading tree to outline items. H1s are not outline sections, so
    their children are promoted in their place. Anything deeper than the
    outline allows is folded into its parent's guidelines.
    """
    items: List[OutlineItem] = []
    for n in nodes:
        if n.level <= 1:
            items.extend(headings_to_outline(n.children, depth))
            continue
        guidelines = list(n.guidelines)
        children: List[OutlineItem] = []
        if depth < MAX_OUTLINE_DEPTH:
            children = headings_to_outline(n.children, depth + 1)
        else:
            guidelines += [f"Cover: {c.adapted_text or c.text}" for c in flatten_tree(n.children)]
        items.append(OutlineItem(
            level=f"H{n.level}",
            heading=n.adapted_text or n.text,
            guidelines=guidelines,
            reasoning=TEMPLATE_REASONING,
            children=children,
        ))
    return items


# ---------- model calls ----------

class TemplateExtractor:
    def __init__(self, client: SchemaGenerationClient):
        self.client = client

    def extract(self, content: str, ctx: GenerationContext,
                cancel_token: Optional[CancellationToken] = None) -> List[HeadingNode]:
        if not content or not content.strip():
            raise ValueError("No page content to extract a template from.")
        prompt = build_template_extraction_prompt(content, ctx.language)
        flat = self.client.generate_json(
            ctx.settings.model, prompt.system, prompt.user, HEADING_TREE_SCHEMA, "low",
            operation="template extraction", validate=_parse_flat,
            cancel_token=cancel_token, schema_name="heading_list",
        )
        tree = build_tree(flat)
        logger.info("Extracted %d headings (%d top-level)", len(flat), len(tree))
        return tree

    def adapt(self, headings: Sequence[HeadingNode], source: str, new_topic: str, ctx: GenerationContext,
              cancel_token: Optional[CancellationToken] = None) -> List[HeadingNode]:
        """Re-word a heading tree for a new topic, keeping its levels and order."""
        flat = flatten_tree(headings)
        prompt = build_adapt_headings_prompt(flat, source, new_topic, ctx.language)

        def validate(data: Dict[str, Any]) -> List[HeadingNode]:
            adapted = _parse_flat(data)
            if [h.level for h in adapted] != [h.level for h in flat]:
                raise SchemaValidationError("Adapted headings changed the template's hierarchy.")
            # originals are kept on `text`
            return [
                orig.model_copy(update={"adapted_text": a.adapted_text or a.text, "guidelines": a.guidelines})
                for orig, a in zip(flat, adapted)
            ]

        adapted = self.client.generate_json(
            ctx.settings.model, prompt.system, prompt.user, HEADING_TREE_SCHEMA, "low",
            operation="template adaptation", validate=validate,
            cancel_token=cancel_token, schema_name="heading_list",
        )
        return build_tree(adapted)
