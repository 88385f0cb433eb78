# briefsmith/content_validation.py
"""
Post-hoc validation of a written article against its brief, and selective
application of the edits it proposes.
"""
import re
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Sequence

from pydantic import ValidationError

from briefsmith.brief_context import count_words
from briefsmith.content_guidelines import VALIDATION_WEIGHTS
from briefsmith.errors import SchemaValidationError
from briefsmith.llm import CancellationToken, SchemaGenerationClient
from briefsmith.models import ContentBrief, ContentValidationResult, GenerationContext, ProposedChange
from briefsmith.prompt_factory import build_content_validation_prompt, build_followup_validation_prompt
from briefsmith.schemas import CONTENT_VALIDATION_SCHEMA

logger = logging.getLogger(__name__)

SEVERITY_ORDER = {"critical": 0, "warning": 1, "suggestion": 2}
MIN_SCORE, MAX_SCORE = 1, 100
# categories the model scores; the word-count score is computed here
MODEL_SCORED = ("brief_alignment", "structure_adherence", "keyword_usage", "paragraph_lengths")
_CHANGE_ID = re.compile(r"^change-(\d+)$")


# ---------- scoring ----------

def word_count_score(actual: int, target: Optional[int]) -> int:
    """100 on target, falling linearly with relative deviation, never below 1."""
    if not target or target <= 0:
        return 100
    deviation = abs(actual - target) / target
    return max(1, min(100, int(round(100 * (1 - deviation)))))


def clamp_score(score: int) -> int:
    return max(MIN_SCORE, min(MAX_SCORE, int(score)))


def overall_score(result: ContentValidationResult) -> int:
    s = result.scores
    values = {
        "brief_alignment": s.brief_alignment.score,
        "structure_adherence": s.structure_adherence.score,
        "keyword_usage": s.keyword_usage.score,
        "paragraph_lengths": s.paragraph_lengths.score,
        "total_word_count": s.total_word_count.score,
    }
    return int(round(sum(values[k] * w for k, w in VALIDATION_WEIGHTS.items())))


def sort_changes(changes: Sequence[ProposedChange]) -> List[ProposedChange]:
    return sorted(changes, key=lambda c: SEVERITY_ORDER.get(c.severity, len(SEVERITY_ORDER)))


def _next_id(used: set) -> str:
    n = 1
    for cid in used:
        m = _CHANGE_ID.match(cid)
        if m:
            n = max(n, int(m.group(1)) + 1)
    while f"change-{n}" in used:
        n += 1
    return f"change-{n}"


def ensure_unique_ids(changes: Sequence[ProposedChange], taken: Iterable[str] = ()) -> List[ProposedChange]:
    """Give blank or colliding change ids the next free 'change-N'."""
    used = set(taken)
    out = []
    for c in changes:
        if not c.id or c.id in used:
            c = c.model_copy(update={"id": _next_id(used)})
        used.add(c.id)
        out.append(c)
    return out


def finalize_result(result: ContentValidationResult, article: str, target: Optional[int]) -> ContentValidationResult:
    """Recompute what can be measured locally and order the changes."""
    for name in MODEL_SCORED:
        category = getattr(result.scores, name)
        category.score = clamp_score(category.score)
    actual = count_words(article)
    wc = result.scores.total_word_count
    wc.actual = actual
    wc.target = target
    wc.score = word_count_score(actual, target)
    if not wc.explanation:
        wc.explanation = f"{actual} words" + (f" against a target of {target}." if target else "; no target set.")
    result.proposed_changes = sort_changes(ensure_unique_ids(result.proposed_changes))
    result.overall_score = overall_score(result)
    return result


def parse_result(data: Any) -> ContentValidationResult:
    try:
        return ContentValidationResult.model_validate(data)
    except ValidationError as e:
        raise SchemaValidationError(f"Content validation response does not match the schema: {e}") from e


# ---------- engine ----------

class ContentValidationEngine:
    def __init__(self, client: SchemaGenerationClient):
        self.client = client

    def _target(self, brief: ContentBrief, ctx: GenerationContext) -> Optional[int]:
        if ctx.length.global_target:
            return ctx.length.global_target
        return brief.article_structure.word_count_target if brief.article_structure else None

    def validate(
        self,
        brief: ContentBrief,
        article: str,
        ctx: GenerationContext,
        instructions: str = "",
        cancel_token: Optional[CancellationToken] = None,
    ) -> ContentValidationResult:
        target = self._target(brief, ctx)
        prompt = build_content_validation_prompt(
            brief, article, target_words=target, strict=ctx.length.strict_mode,
            instructions=instructions, language=ctx.language,
        )
        result = self.client.generate_json(
            ctx.settings.model, prompt.system, prompt.user, CONTENT_VALIDATION_SCHEMA, "medium",
            operation="content validation", validate=parse_result,
            cancel_token=cancel_token, schema_name="content_validation",
        )
        result = finalize_result(result, article, target)
        logger.info("Content validation: overall %d, %d proposed change(s)", result.overall_score,
                    len(result.proposed_changes))
        return result

    def follow_up(
        self,
        brief: ContentBrief,
        article: str,
        previous: ContentValidationResult,
        instructions: str,
        ctx: GenerationContext,
        addressed_ids: Iterable[str] = (),
        cancel_token: Optional[CancellationToken] = None,
    ) -> ContentValidationResult:
        """
        Re-validate with user feedback. Earlier changes survive when the user
        has not dealt with them and their text is still in the article.
        """
        target = self._target(brief, ctx)
        prompt = build_followup_validation_prompt(
            brief, article, previous.model_dump(by_alias=True), instructions, language=ctx.language,
        )
        result = self.client.generate_json(
            ctx.settings.model, prompt.system, prompt.user, CONTENT_VALIDATION_SCHEMA, "medium",
            operation="content re-validation", validate=parse_result,
            cancel_token=cancel_token, schema_name="content_validation",
        )

        addressed = set(addressed_ids)
        new_texts = {c.current_text for c in result.proposed_changes if c.current_text}
        carried = [
            c for c in previous.proposed_changes
            if c.id not in addressed
            and c.current_text
            and c.current_text in article
            and c.current_text not in new_texts
        ]
        fresh = ensure_unique_ids(result.proposed_changes, taken=[c.id for c in carried])
        result.proposed_changes = carried + fresh
        return finalize_result(result, article, target)


# ---------- diff application ----------

@dataclass
class ApplyResult:
    content: str
    applied_ids: List[str] = field(default_factory=list)
    unmatched_ids: List[str] = field(default_factory=list)


def apply_changes(content: str, changes: Sequence[ProposedChange], selected_ids: Iterable[str]) -> ApplyResult:
    """
    Apply selected changes bottom-up (highest paragraph index first) as
    first-occurrence literal replacements. Changes missing either text are skipped.
    """
    selected = set(selected_ids)
    todo = [c for c in changes if c.id in selected and c.current_text and c.proposed_text]
    todo.sort(key=lambda c: c.location.paragraph_index or 0, reverse=True)

    out = ApplyResult(content=content)
    for c in todo:
        if c.current_text in out.content:
            out.content = out.content.replace(c.current_text, c.proposed_text, 1)
            out.applied_ids.append(c.id)
        else:
            out.unmatched_ids.append(c.id)
    if out.unmatched_ids:
        logger.info("%d selected change(s) no longer match the article: %s", len(out.unmatched_ids), out.unmatched_ids)
    return out
