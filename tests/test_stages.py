# tests/test_stages.py
from briefsmith.models import ContentBrief
from briefsmith.stages import (
    Stage,
    StalenessSet,
    completed_stages,
    from_ui,
    has_stage_data,
    missing_prerequisites,
)

from conftest import goal_fields


def test_regenerating_marks_later_stages_stale():
    s = StalenessSet()
    s.mark_regenerated(Stage.COMPETITORS)
    assert s.to_list() == [4, 5, 6, 7]


def test_regenerating_clears_only_that_stage():
    s = StalenessSet([4, 5, 6, 7])
    s.mark_regenerated(Stage.OUTLINE)
    assert s.to_list() == [4, 6, 7]
    assert Stage.OUTLINE not in s
    assert 4 in s


def test_staleness_only_grows_downstream():
    s = StalenessSet()
    s.mark_regenerated(Stage.FAQS)
    assert s.to_list() == [7]
    s.mark_regenerated(Stage.KEYWORDS)
    assert s.to_list() == [3, 4, 5, 6, 7]
    assert len(s) == 5


def test_missing_prerequisites():
    assert missing_prerequisites(ContentBrief(), Stage.OUTLINE) == [Stage.GOAL, Stage.KEYWORDS,
                                                                   Stage.COMPETITORS, Stage.CONTENT_GAPS]
    assert missing_prerequisites(ContentBrief(), Stage.GOAL) == []


def test_goal_without_search_intent_still_counts():
    fields = goal_fields()
    fields.pop("search_intent")
    brief = ContentBrief(**fields)
    assert has_stage_data(brief, Stage.GOAL)
    assert completed_stages(brief) == [Stage.GOAL]


def test_ui_order_maps_to_logical_stages():
    assert from_ui(2) == Stage.COMPETITORS
    assert from_ui(3) == Stage.KEYWORDS
