# briefsmith/orchestrator.py
import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel, ValidationError

from briefsmith.brief_context import competitors_payload, ground_truth_text
from briefsmith.config import TOKEN_HARD_LIMIT, ModelSettings
from briefsmith.content_guidelines import THINKING_LEVEL_BY_STAGE
from briefsmith.errors import (
    GenerationError,
    PromptTooLargeError,
    SchemaValidationError,
    StageDependencyError,
    StageError,
)
from briefsmith.llm import CancellationToken, SchemaGenerationClient
from briefsmith.models import (
    CompetitorInsights,
    ContentBrief,
    ContentGapAnalysis,
    FAQs,
    GenerationContext,
    KeywordStrategy,
    OnPageSeo,
    ReasoningItem,
    SearchIntent,
)
from briefsmith.outline import OutlineEnrichmentPipeline
from briefsmith.prompt_factory import build_stage_prompt
from briefsmith.stages import (
    STAGE_BRIEF_FIELDS,
    STAGE_LABELS,
    STAGE_SCHEMAS,
    Stage,
    StalenessSet,
    has_stage_data,
    missing_prerequisites,
)
from briefsmith.store import BriefRecord, BriefStore
from briefsmith.token_budget import COMPETITOR_SHARE, GROUND_TRUTH_SHARE
from briefsmith.validators import check_keyword_identity

logger = logging.getLogger(__name__)

FIELD_MODELS = {
    "search_intent": SearchIntent,
    "page_goal": ReasoningItem,
    "target_audience": ReasoningItem,
    "keyword_strategy": KeywordStrategy,
    "competitor_insights": CompetitorInsights,
    "content_gap_analysis": ContentGapAnalysis,
    "faqs": FAQs,
    "on_page_seo": OnPageSeo,
}


def thinking_effort_for(stage: Stage, settings: ModelSettings) -> str:
    return settings.thinking_level or THINKING_LEVEL_BY_STAGE[int(stage)]


class StageOrchestrator:
    """Builds one stage's prompt, runs it, and returns the brief fields it owns."""

    def __init__(self, client: SchemaGenerationClient, outline_pipeline: Optional[OutlineEnrichmentPipeline] = None):
        self.client = client
        self.outline_pipeline = outline_pipeline or OutlineEnrichmentPipeline(client)

    def _parse_fields(self, stage: Stage, data: Any, ctx: GenerationContext) -> Dict[str, BaseModel]:
        if not isinstance(data, dict):
            raise SchemaValidationError(f"Stage {int(stage)} response is not a JSON object.")
        out: Dict[str, BaseModel] = {}
        for field in STAGE_BRIEF_FIELDS[stage]:
            if field not in data:
                raise SchemaValidationError(f"Stage {int(stage)} response is missing '{field}'.")
            try:
                out[field] = FIELD_MODELS[field].model_validate(data[field])
            except ValidationError as e:
                raise SchemaValidationError(f"'{field}' does not match the schema: {e}") from e
        if stage == Stage.KEYWORDS and ctx.available_keywords:
            check_keyword_identity(out["keyword_strategy"], [k.kw for k in ctx.available_keywords])
        return out

    def run_stage(
        self,
        stage: Stage,
        context: GenerationContext,
        is_regeneration: bool = False,
        feedback: Optional[str] = None,
        *,
        brief: ContentBrief,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Dict[str, BaseModel]:
        """
        Generate one stage. Returns {brief field: value} for the caller to merge.

        Raises StageDependencyError when an earlier stage has no data, and
        StageError when generation fails; the brief itself is never touched.
        """
        stage = Stage(stage)
        missing = missing_prerequisites(brief, stage)
        if missing:
            raise StageDependencyError(int(stage), [int(s) for s in missing])

        effort = thinking_effort_for(stage, context.settings)
        payload = competitors_payload(context.competitor_pages, int(TOKEN_HARD_LIMIT * COMPETITOR_SHARE))
        ground_truth = ground_truth_text(context.competitor_pages, max_tokens=int(TOKEN_HARD_LIMIT * GROUND_TRUTH_SHARE))
        logger.info("Generating stage %d (%s)%s, effort=%s", int(stage), STAGE_LABELS[stage],
                    " [regeneration]" if is_regeneration else "", effort)

        try:
            if stage == Stage.OUTLINE:
                structure = self.outline_pipeline.run(
                    brief, context,
                    competitor_payload=payload, ground_truth=ground_truth,
                    is_regeneration=is_regeneration, feedback=feedback,
                    thinking_effort=effort, cancel_token=cancel_token,
                )
                return {"article_structure": structure}

            prompt = build_stage_prompt(
                stage, brief, context,
                competitor_payload=payload, ground_truth=ground_truth,
                is_regeneration=is_regeneration, feedback=feedback,
            )
            return self.client.generate_json(
                context.settings.model, prompt.system, prompt.user, STAGE_SCHEMAS[stage], effort,
                operation=f"stage {int(stage)} ({STAGE_LABELS[stage]})",
                validate=lambda data: self._parse_fields(stage, data, context),
                cancel_token=cancel_token, schema_name=f"stage_{int(stage)}",
            )
        except (GenerationError, PromptTooLargeError) as e:
            raise StageError(int(stage), f"{STAGE_LABELS[stage]} could not be generated", e) from e


class BriefSession:
    """
    One brief being worked on: its data, its staleness flags and its cancel token.
    All writes for a brief id go through the store's per-brief lock.
    """

    def __init__(
        self,
        brief_id: str,
        orchestrator: StageOrchestrator,
        store: BriefStore,
        context: GenerationContext,
        cancel_token: Optional[CancellationToken] = None,
    ):
        self.brief_id = brief_id
        self.orchestrator = orchestrator
        self.store = store
        self.context = context
        self.cancel_token = cancel_token or CancellationToken()
        record = store.get(brief_id)
        self.brief = record.brief if record else ContentBrief()
        self.staleness = StalenessSet(record.stale if record else ())

    def is_stale(self, stage: Stage) -> bool:
        return stage in self.staleness

    def save(self) -> None:
        with self.store.lock_for(self.brief_id):
            self.store.set(BriefRecord(brief_id=self.brief_id, brief=self.brief, stale=self.staleness.to_list()))

    def generate_stage(self, stage: Stage, feedback: Optional[str] = None,
                       is_regeneration: Optional[bool] = None) -> ContentBrief:
        stage = Stage(stage)
        with self.store.lock_for(self.brief_id):
            if is_regeneration is None:
                is_regeneration = has_stage_data(self.brief, stage)
            result = self.orchestrator.run_stage(
                stage, self.context, is_regeneration, feedback,
                brief=self.brief, cancel_token=self.cancel_token,
            )
            self.brief = self.brief.model_copy(update=result)
            if is_regeneration:
                self.staleness.mark_regenerated(stage)
            self.save()
        return self.brief

    def update_brief(self, **fields) -> ContentBrief:
        """Store fields produced outside the stage pipeline (review, E-E-A-T, manual edits)."""
        with self.store.lock_for(self.brief_id):
            self.brief = ContentBrief.model_validate({**self.brief.model_dump(), **fields})
            self.save()
        return self.brief

    def cancel(self) -> None:
        self.cancel_token.cancel()
