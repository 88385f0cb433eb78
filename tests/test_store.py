# tests/test_store.py
import json
import logging

from briefsmith.models import ContentBrief, ReasoningItem
from briefsmith.store import BriefRecord, InMemoryBriefStore, JsonFileBriefStore


def test_in_memory_round_trip_is_isolated(full_brief):
    store = InMemoryBriefStore()
    record = BriefRecord(brief_id="x", brief=full_brief, stale=[5, 6])
    store.set(record)

    record.brief.page_goal = ReasoningItem(value="mutated")
    got = store.get("x")
    assert got.brief.page_goal.value == "Help readers pick running shoes"
    assert got.stale == [5, 6]
    assert got.updated_at
    assert store.get("missing") is None


def test_lock_is_per_brief():
    store = InMemoryBriefStore()
    assert store.lock_for("a") is store.lock_for("a")
    assert store.lock_for("a") is not store.lock_for("b")


def test_json_file_store(tmp_path, full_brief):
    store = JsonFileBriefStore(tmp_path)
    store.set(BriefRecord(brief_id="brief/1", brief=full_brief))

    files = list(tmp_path.iterdir())
    assert [f.name for f in files] == ["brief_1.json"]
    got = store.get("brief/1")
    assert got.brief == full_brief
    assert store.get("nope") is None


def test_old_schema_version_warns(tmp_path, caplog):
    (tmp_path / "old.json").write_text(json.dumps({
        "brief_id": "old", "brief": ContentBrief().model_dump(), "stale": [], "schema_version": "1",
    }))
    with caplog.at_level(logging.WARNING, logger="briefsmith.store"):
        record = JsonFileBriefStore(tmp_path).get("old")
    assert record.brief_id == "old"
    assert any("schema version 1" in r.getMessage() for r in caplog.records)
