# briefsmith/store.py
"""Brief persistence: opaque get/set by brief id, plus a lock per brief id."""
from __future__ import annotations

import os
import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from pydantic import BaseModel, Field

from briefsmith.config import BRIEF_STORE_DIR
from briefsmith.models import ContentBrief
from briefsmith.schemas import SCHEMA_VERSION

logger = logging.getLogger(__name__)


class BriefRecord(BaseModel):
    brief_id: str
    brief: ContentBrief = Field(default_factory=ContentBrief)
    stale: List[int] = Field(default_factory=list)
    schema_version: str = SCHEMA_VERSION
    updated_at: str = ""


class BriefStore(Protocol):
    def get(self, brief_id: str) -> Optional[BriefRecord]: ...
    def set(self, record: BriefRecord) -> None: ...
    def lock_for(self, brief_id: str) -> threading.RLock: ...


class _LockRegistry:
    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.RLock] = {}

    def lock_for(self, brief_id: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(brief_id)
            if lock is None:
                lock = self._locks[brief_id] = threading.RLock()
            return lock


def _stamp(record: BriefRecord) -> BriefRecord:
    return record.model_copy(update={"updated_at": datetime.now(timezone.utc).isoformat()})


class InMemoryBriefStore(_LockRegistry):
    def __init__(self):
        super().__init__()
        self._data: Dict[str, str] = {}

    def get(self, brief_id: str) -> Optional[BriefRecord]:
        raw = self._data.get(brief_id)
        return BriefRecord.model_validate_json(raw) if raw is not None else None

    def set(self, record: BriefRecord) -> None:
        # stored serialized so callers never share mutable state with the store
        self._data[record.brief_id] = _stamp(record).model_dump_json()


class JsonFileBriefStore(_LockRegistry):
    """One JSON file per brief under a directory."""

    def __init__(self, root: Optional[str | Path] = None):
        super().__init__()
        self.root = Path(root or BRIEF_STORE_DIR)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, brief_id: str) -> Path:
        safe = "".join(c if c.isalnum() or c in "-_" else "_" for c in brief_id)
        return self.root / f"{safe}.json"

    def get(self, brief_id: str) -> Optional[BriefRecord]:
        path = self._path(brief_id)
        if not path.exists():
            return None
        data = json.loads(path.read_text(encoding="utf-8"))
        if data.get("schema_version") != SCHEMA_VERSION:
            logger.warning("Brief %s was stored with schema version %s (current %s)",
                           brief_id, data.get("schema_version"), SCHEMA_VERSION)
        return BriefRecord.model_validate(data)

    def set(self, record: BriefRecord) -> None:
        path = self._path(record.brief_id)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(_stamp(record).model_dump_json(indent=2), encoding="utf-8")
        os.replace(tmp, path)
