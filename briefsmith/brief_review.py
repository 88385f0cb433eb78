# briefsmith/brief_review.py
"""Self-review of a finished brief: criterion scores and E-E-A-T recommendations."""
import logging
from typing import Any, Optional

from pydantic import ValidationError

from briefsmith.errors import SchemaValidationError
from briefsmith.llm import CancellationToken, SchemaGenerationClient
from briefsmith.models import BriefValidation, ContentBrief, EEATSignals, GenerationContext
from briefsmith.prompt_factory import build_brief_validation_prompt, build_eeat_prompt
from briefsmith.schemas import BRIEF_REVIEW_CRITERIA, BRIEF_VALIDATION_SCHEMA, EEAT_SCHEMA

logger = logging.getLogger(__name__)


def _parse_validation(data: Any) -> BriefValidation:
    try:
        result = BriefValidation.model_validate(data)
    except ValidationError as e:
        raise SchemaValidationError(f"Brief validation response does not match the schema: {e}") from e
    missing = [c for c in BRIEF_REVIEW_CRITERIA if c not in result.scores]
    if missing:
        raise SchemaValidationError(f"Brief validation is missing scores for {missing}")
    return result


def _parse_eeat(data: Any) -> EEATSignals:
    try:
        return EEATSignals.model_validate(data)
    except ValidationError as e:
        raise SchemaValidationError(f"E-E-A-T response does not match the schema: {e}") from e


class BriefReviewer:
    def __init__(self, client: SchemaGenerationClient):
        self.client = client

    def validate_brief(self, brief: ContentBrief, ctx: GenerationContext,
                       cancel_token: Optional[CancellationToken] = None) -> BriefValidation:
        prompt = build_brief_validation_prompt(brief, ctx.language)
        result = self.client.generate_json(
            ctx.settings.model, prompt.system, prompt.user, BRIEF_VALIDATION_SCHEMA, "medium",
            operation="brief validation", validate=_parse_validation,
            cancel_token=cancel_token, schema_name="brief_validation",
        )
        logger.info("Brief scored %d/5 (%d improvement(s), ready=%s)",
                    result.overall_score, len(result.improvements), result.ready_for_writing)
        return result

    def eeat_signals(self, brief: ContentBrief, ctx: GenerationContext,
                     cancel_token: Optional[CancellationToken] = None) -> EEATSignals:
        prompt = build_eeat_prompt(brief, ctx.language)
        return self.client.generate_json(
            ctx.settings.model, prompt.system, prompt.user, EEAT_SCHEMA, "medium",
            operation="E-E-A-T signals", validate=_parse_eeat,
            cancel_token=cancel_token, schema_name="eeat_signals",
        )

    def review(self, brief: ContentBrief, ctx: GenerationContext,
               cancel_token: Optional[CancellationToken] = None) -> ContentBrief:
        """Copy of the brief with `validation` and `eeat_signals` filled in."""
        validation = self.validate_brief(brief, ctx, cancel_token=cancel_token)
        eeat = self.eeat_signals(brief, ctx, cancel_token=cancel_token)
        return brief.model_copy(update={"validation": validation, "eeat_signals": eeat}, deep=True)
