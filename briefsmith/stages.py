# briefsmith/stages.py
"""The seven brief stages, their prerequisites and which brief fields each one owns."""
from enum import IntEnum
from typing import Dict, Iterable, List, Optional, Set, Tuple

from briefsmith import schemas
from briefsmith.models import ContentBrief


class Stage(IntEnum):
    GOAL = 1
    KEYWORDS = 2
    COMPETITORS = 3
    CONTENT_GAPS = 4
    OUTLINE = 5
    FAQS = 6
    ON_PAGE_SEO = 7


ALL_STAGES: Tuple[Stage, ...] = tuple(Stage)

# Screens show competitor analysis before keywords; the data dependency runs the other way.
UI_TO_LOGICAL: Dict[int, Stage] = {
    1: Stage.GOAL,
    2: Stage.COMPETITORS,
    3: Stage.KEYWORDS,
    4: Stage.CONTENT_GAPS,
    5: Stage.OUTLINE,
    6: Stage.FAQS,
    7: Stage.ON_PAGE_SEO,
}
LOGICAL_TO_UI: Dict[Stage, int] = {v: k for k, v in UI_TO_LOGICAL.items()}

STAGE_BRIEF_FIELDS: Dict[Stage, Tuple[str, ...]] = {
    Stage.GOAL: ("search_intent", "page_goal", "target_audience"),
    Stage.KEYWORDS: ("keyword_strategy",),
    Stage.COMPETITORS: ("competitor_insights",),
    Stage.CONTENT_GAPS: ("content_gap_analysis",),
    Stage.OUTLINE: ("article_structure",),
    Stage.FAQS: ("faqs",),
    Stage.ON_PAGE_SEO: ("on_page_seo",),
}

# Fields whose presence means "this stage has data". Search intent was added to
# stage 1 later, so briefs without it still count as having stage 1.
_STAGE_PRESENCE: Dict[Stage, Tuple[str, ...]] = {
    **STAGE_BRIEF_FIELDS,
    Stage.GOAL: ("page_goal", "target_audience"),
}

STAGE_SCHEMAS = {
    Stage.GOAL: schemas.GOAL_SCHEMA,
    Stage.KEYWORDS: schemas.KEYWORDS_SCHEMA,
    Stage.COMPETITORS: schemas.COMPETITORS_SCHEMA,
    Stage.CONTENT_GAPS: schemas.CONTENT_GAPS_SCHEMA,
    Stage.OUTLINE: schemas.OUTLINE_SCHEMA,
    Stage.FAQS: schemas.FAQS_SCHEMA,
    Stage.ON_PAGE_SEO: schemas.ON_PAGE_SEO_SCHEMA,
}

STAGE_LABELS: Dict[Stage, str] = {
    Stage.GOAL: "Search Intent, Page Goal & Target Audience",
    Stage.KEYWORDS: "Keyword Strategy",
    Stage.COMPETITORS: "Competitive Analysis",
    Stage.CONTENT_GAPS: "Content Gap Analysis",
    Stage.OUTLINE: "Article Structure",
    Stage.FAQS: "FAQs",
    Stage.ON_PAGE_SEO: "On-Page SEO",
}


def from_ui(step: int) -> Stage:
    return UI_TO_LOGICAL[step]


def has_stage_data(brief: ContentBrief, stage: Stage) -> bool:
    return all(getattr(brief, f) is not None for f in _STAGE_PRESENCE[stage])


def completed_stages(brief: ContentBrief) -> List[Stage]:
    return [s for s in ALL_STAGES if has_stage_data(brief, s)]


def missing_prerequisites(brief: ContentBrief, stage: Stage) -> List[Stage]:
    return [s for s in ALL_STAGES if s < stage and not has_stage_data(brief, s)]


class StalenessSet:
    """
    Stages whose data was produced from inputs that have since changed.

    Regenerating stage K clears K and marks everything after it stale. Nothing
    else ever clears a flag; a caller has to regenerate the stage.
    """

    def __init__(self, stale: Optional[Iterable[int]] = None):
        self._stale: Set[Stage] = {Stage(s) for s in (stale or ())}

    def __contains__(self, stage) -> bool:
        return Stage(stage) in self._stale

    def __iter__(self):
        return iter(sorted(self._stale))

    def __len__(self) -> int:
        return len(self._stale)

    def __repr__(self) -> str:
        return f"StalenessSet({sorted(int(s) for s in self._stale)})"

    def mark_regenerated(self, stage: Stage) -> None:
        stage = Stage(stage)
        self._stale.discard(stage)
        self._stale.update(s for s in ALL_STAGES if s > stage)

    def to_list(self) -> List[int]:
        return sorted(int(s) for s in self._stale)
