# briefsmith/editing.py
"""Targeted edits on a written article: one paragraph, a selection, or the whole thing."""
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from briefsmith.llm import CancellationToken, SchemaGenerationClient
from briefsmith.metrics import calculate_metrics, format_metrics_context
from briefsmith.models import ContentBrief, GenerationContext, OutlineItem
from briefsmith.prompt_factory import build_optimizer_prompt, build_paragraph_prompt, build_rewrite_prompt
from briefsmith.validators import walk

logger = logging.getLogger(__name__)

CONTEXT_LINES = 5


@dataclass
class ParagraphContext:
    paragraph: str
    before: str
    after: str
    section_line: str
    section_heading: str


def paragraph_context(content: str, line_index: int, window: int = CONTEXT_LINES) -> ParagraphContext:
    """Up to `window` non-heading, non-blank lines either side, plus the enclosing heading."""
    lines = content.split("\n")
    if not 0 <= line_index < len(lines):
        raise IndexError(f"Line {line_index} is outside the article ({len(lines)} lines).")

    def usable(s: str) -> bool:
        return bool(s.strip()) and not s.startswith("#")

    before: List[str] = []
    for i in range(line_index - 1, -1, -1):
        if len(before) >= window:
            break
        if usable(lines[i]):
            before.insert(0, lines[i])

    after: List[str] = []
    for i in range(line_index + 1, len(lines)):
        if len(after) >= window:
            break
        if usable(lines[i]):
            after.append(lines[i])

    section_line = next((lines[i] for i in range(line_index - 1, -1, -1) if lines[i].startswith("#")), "")
    return ParagraphContext(
        paragraph=lines[line_index],
        before="\n".join(before),
        after="\n".join(after),
        section_line=section_line,
        section_heading=section_line.lstrip("#").strip(),
    )


def match_section(brief: ContentBrief, heading: str) -> Optional[OutlineItem]:
    """First outline node whose heading contains, or is contained in, the given heading."""
    if not brief.article_structure or not heading:
        return None
    h = heading.lower()
    for _, node in walk(brief.article_structure.outline):
        nh = node.heading.lower()
        if nh in h or h in nh:
            return node
    return None


class ArticleEditor:
    def __init__(self, client: SchemaGenerationClient):
        self.client = client

    def regenerate_paragraph(
        self,
        content: str,
        line_index: int,
        feedback: str,
        brief: ContentBrief,
        ctx: GenerationContext,
        cancel_token: Optional[CancellationToken] = None,
    ) -> str:
        pc = paragraph_context(content, line_index)
        node = match_section(brief, pc.section_heading)
        prompt = build_paragraph_prompt(
            pc.section_line or "(no heading)", pc.paragraph, pc.before, pc.after, feedback,
            node.guidelines if node else [], ctx.language,
        )
        return self.client.generate(
            ctx.settings.model, prompt.system, prompt.user,
            operation="paragraph regeneration", cancel_token=cancel_token,
        ).strip()

    def rewrite_selection(
        self,
        text: str,
        action: str,
        ctx: GenerationContext,
        context: str = "",
        instruction: str = "",
        cancel_token: Optional[CancellationToken] = None,
    ) -> str:
        prompt = build_rewrite_prompt(action, text, context, ctx.language, instruction)
        return self.client.generate(
            ctx.settings.model, prompt.system, prompt.user,
            operation=f"{action} selection", cancel_token=cancel_token,
        ).strip()

    def optimize_article(
        self,
        article: str,
        instructions: str,
        brief: ContentBrief,
        ctx: GenerationContext,
        on_chunk: Optional[Callable[[str], None]] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> str:
        """Rewrite the whole article, streamed, steered by its current metrics."""
        metrics = calculate_metrics(article, brief, ctx.length)
        target = ctx.length.global_target or metrics.target_word_count or None
        prompt = build_optimizer_prompt(
            article, instructions, brief, ctx.language,
            target_words=target, metrics_context=format_metrics_context(metrics),
        )
        parts: List[str] = []
        for chunk in self.client.stream(ctx.settings.model, prompt.system, prompt.user,
                                        operation="article optimization", cancel_token=cancel_token):
            parts.append(chunk)
            if on_chunk is not None:
                on_chunk(chunk)
        result = "".join(parts).strip()
        logger.info("Optimized article: %d -> %d words", metrics.word_count,
                    calculate_metrics(result, brief, ctx.length).word_count)
        return result
