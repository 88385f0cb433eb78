# briefsmith/writer.py
import re
import logging
from typing import Callable, List, Optional, Sequence

from briefsmith.brief_context import count_words
from briefsmith.content_guidelines import TRIM_THINKING_BUDGET_LEVEL
from briefsmith.errors import BriefsmithError, GenerationCancelled, GenerationError, SectionError
from briefsmith.llm import CancellationToken, RetryPolicy, SchemaGenerationClient
from briefsmith.models import ContentBrief, GenerationContext, OutlineItem, WordBudget
from briefsmith.prompt_factory import UPCOMING_HEADINGS, build_section_prompt, build_trim_prompt
from briefsmith.validators import walk

logger = logging.getLogger(__name__)

STRICT_TOLERANCE = 0.10
LOOSE_TOLERANCE = 0.15
TRIM_THRESHOLD = 1.2
FAQ_HEADING = "Frequently Asked Questions"
UNTITLED = "Untitled Article"

ChunkCallback = Callable[[str], None]
# (streamed_text, replacement): the streamed output so far ends with streamed_text
ReplaceCallback = Callable[[str, str], None]
ProgressCallback = Callable[[int, int, str], None]


# ---------- word budget ----------

def allocate_section_budget(
    global_target: Optional[int],
    strict: bool,
    total_sections: int,
    words_written: int,
    current_index: int,
    section_target: Optional[int] = None,
) -> Optional[WordBudget]:
    """
    Word band for the next section.

    An explicit section target wins; otherwise what is left of the global
    target is split evenly over the sections still to write. No targets at
    all means no budget.
    """
    if section_target and section_target > 0:
        target = section_target
    elif global_target and global_target > 0:
        remaining = max(0, global_target - words_written)
        sections_left = max(1, total_sections - current_index)
        target = int(round(remaining / sections_left))
    else:
        return None
    tol = STRICT_TOLERANCE if strict else LOOSE_TOLERANCE
    return WordBudget(
        target=target,
        minimum=int(round(target * (1 - tol))),
        maximum=int(round(target * (1 + tol))),
        strict=strict,
    )


def section_target_for(node: OutlineItem, section_targets) -> Optional[int]:
    return (section_targets or {}).get(node.heading) or node.target_word_count


def needs_trim(text: str, budget: Optional[WordBudget]) -> bool:
    return bool(budget and budget.strict and count_words(text) > budget.target * TRIM_THRESHOLD)


# ---------- outline helpers ----------

def flatten_outline(outline: Sequence[OutlineItem]) -> List[OutlineItem]:
    return [node for _, node in walk(outline)]


def heading_level(level: str) -> int:
    m = re.fullmatch(r"[Hh](\d)", (level or "").strip())
    return int(m.group(1)) if m else 2


def markdown_heading(node: OutlineItem) -> str:
    return f"{'#' * heading_level(node.level)} {node.heading}"


def _echoes_heading(line: str, heading: str) -> bool:
    first = re.sub(r"^#+\s*", "", line).strip().strip("*").strip()
    return bool(first) and first.lower() == heading.strip().lower()


def _may_echo_heading(partial: str, heading: str) -> bool:
    """Whether an unfinished first line could still turn out to be the heading."""
    text = re.sub(r"^#+\s*", "", partial).lstrip("*").lower()
    h = heading.strip().lower()
    if len(text) <= len(h):
        return h.startswith(text.rstrip()) if text.strip() else True
    return text.startswith(h) and not text[len(h):].strip("* \t")


class BodyFilter:
    """
    Turns raw section output into body text as it streams in.

    Leading whitespace and a first line that repeats the section heading are
    dropped; trailing whitespace is held back until more text follows it.
    Everything passed to ``emit`` joins up to exactly what ``close`` returns.
    """

    def __init__(self, heading: str, emit: Optional[ChunkCallback] = None):
        self.heading = heading
        self.emit = emit
        self._head = ""
        self._decided = False
        self._leading = True
        self._pending = ""
        self._parts: List[str] = []

    def feed(self, chunk: str) -> None:
        if self._decided:
            self._push(chunk)
            return
        self._head += chunk
        stripped = self._head.lstrip()
        if "\n" in stripped:
            self._decide(stripped)
        elif not _may_echo_heading(stripped, self.heading):
            self._decided = True
            self._push(stripped)

    def close(self) -> str:
        if not self._decided:
            self._decide(self._head.lstrip())
        return "".join(self._parts)

    def _decide(self, stripped: str) -> None:
        self._decided = True
        first, _, rest = stripped.partition("\n")
        self._push(rest if _echoes_heading(first, self.heading) else stripped)

    def _push(self, text: str) -> None:
        if self._leading:
            text = text.lstrip()
            if not text:
                return
            self._leading = False
        body = text.rstrip()
        if not body:
            self._pending += text
            return
        out = self._pending + body
        self._pending = text[len(body):]
        self._parts.append(out)
        if self.emit is not None:
            self.emit(out)


def strip_echoed_heading(text: str, heading: str) -> str:
    """Drop a leading line that just repeats the section heading."""
    body = BodyFilter(heading)
    body.feed(text or "")
    return body.close()


def article_title(brief: ContentBrief) -> str:
    if brief.on_page_seo and brief.on_page_seo.h1.value:
        return str(brief.on_page_seo.h1.value)
    if brief.keyword_strategy and brief.keyword_strategy.primary_keywords:
        return brief.keyword_strategy.primary_keywords[0].keyword
    return UNTITLED


# ---------- writer ----------

class StreamingSectionWriter:
    """Writes one outline node at a time, streaming when a chunk callback is given."""

    def __init__(self, client: SchemaGenerationClient, retry_policy: Optional[RetryPolicy] = None):
        self.client = client
        self.retry_policy = retry_policy

    def write_section(
        self,
        brief: ContentBrief,
        node: OutlineItem,
        ctx: GenerationContext,
        *,
        content_so_far: str,
        upcoming_headings: Sequence[str],
        section_index: int,
        budget: Optional[WordBudget] = None,
        words_so_far: int = 0,
        on_chunk: Optional[ChunkCallback] = None,
        on_replace: Optional[ReplaceCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> str:
        """
        Body text for one section. While streaming, a section that gets trimmed
        afterwards is announced through ``on_replace`` so the caller can swap the
        streamed text for the returned one.
        """
        prompt = build_section_prompt(
            brief, node, ctx,
            content_so_far=content_so_far, upcoming_headings=upcoming_headings,
            section_index=section_index, budget=budget, words_so_far=words_so_far,
        )
        model = ctx.settings.model
        operation = f"section '{node.heading}'"

        if on_chunk is not None:
            body = BodyFilter(node.heading, on_chunk)
            for chunk in self.client.stream(model, prompt.system, prompt.user,
                                            operation=operation, cancel_token=cancel_token):
                body.feed(chunk)
            text = body.close()
        else:
            text = strip_echoed_heading(
                self.client.generate(model, prompt.system, prompt.user,
                                     operation=operation, retry_policy=self.retry_policy,
                                     cancel_token=cancel_token),
                node.heading,
            )

        if needs_trim(text, budget):
            trimmed = self.trim(text, budget, node.heading, ctx, cancel_token=cancel_token)
            if trimmed != text and on_chunk is not None and on_replace is not None:
                on_replace(text, trimmed)
            text = trimmed
        return text

    def trim(self, text: str, budget: WordBudget, heading: str, ctx: GenerationContext,
             cancel_token: Optional[CancellationToken] = None) -> str:
        """Condense an overlong section. Any failure keeps the original text."""
        before = count_words(text)
        prompt = build_trim_prompt(text, budget.target, ctx.language, heading)
        try:
            trimmed = self.client.generate(
                ctx.settings.fast_model, prompt.system, prompt.user,
                thinking_effort=TRIM_THINKING_BUDGET_LEVEL,
                operation=f"trim '{heading}'", retry_policy=self.retry_policy, cancel_token=cancel_token,
            ).strip()
        except GenerationError as e:
            logger.warning("Trimming '%s' failed, keeping %d words: %s", heading, before, e)
            return text
        logger.info("Trimmed '%s' from %d to %d words (target %d)", heading, before, count_words(trimmed), budget.target)
        return trimmed


class ArticleGenerator:
    """
    Writes a whole article from a finished brief, strictly top to bottom.
    Section N+1 starts only after section N is final (trimmed if needed).
    """

    def __init__(self, writer: StreamingSectionWriter):
        self.writer = writer

    def generate(
        self,
        brief: ContentBrief,
        ctx: GenerationContext,
        *,
        on_chunk: Optional[ChunkCallback] = None,
        on_replace: Optional[ReplaceCallback] = None,
        on_section: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> str:
        if brief.article_structure is None:
            raise BriefsmithError("Cannot write an article without an article structure in the brief.")

        sections = flatten_outline(brief.article_structure.outline)
        faqs = brief.faqs.questions if brief.faqs else []
        for faq in faqs:
            sections.append(OutlineItem(
                level="H3",
                heading=f"Answer the question: {faq.question}",
                guidelines=list(faq.guidelines),
                reasoning="Answering a user FAQ",
            ))
        faq_start = len(sections) - len(faqs)
        total = len(sections)

        length = ctx.length
        global_target = length.global_target or brief.article_structure.word_count_target
        article = f"# {article_title(brief)}\n\n"
        words_written = 0

        def emit(text: str) -> None:
            if on_chunk is not None:
                on_chunk(text)

        emit(article)
        for i, node in enumerate(sections):
            is_faq = i >= faq_start
            if i == faq_start and faqs:
                block = f"## {FAQ_HEADING}\n\n"
                article += block
                emit(block)

            heading_md = f"### {faqs[i - faq_start].question}" if is_faq else markdown_heading(node)
            article += heading_md + "\n\n"
            emit(heading_md + "\n\n")
            if on_section is not None:
                on_section(i, total, node.heading)

            upcoming = [] if is_faq else [markdown_heading(n) for n in sections[i + 1:faq_start][:UPCOMING_HEADINGS]]
            budget = allocate_section_budget(
                global_target, length.strict_mode, total, words_written, i,
                section_target=None if is_faq else section_target_for(node, length.section_targets),
            )
            try:
                body = self.writer.write_section(
                    brief, node, ctx,
                    content_so_far=article, upcoming_headings=upcoming, section_index=i,
                    budget=budget, words_so_far=words_written,
                    on_chunk=on_chunk, on_replace=on_replace, cancel_token=cancel_token,
                )
            except GenerationCancelled:
                raise
            except BriefsmithError as e:
                raise SectionError(node.heading, i, partial_content=article, cause=e) from e

            sep = "\n" if i == total - 1 else "\n\n"
            article += body + sep
            emit(sep)
            words_written += count_words(body)

        return article
