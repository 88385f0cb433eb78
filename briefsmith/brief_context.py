# briefsmith/brief_context.py
"""Helpers that turn a brief and competitor pages into prompt-ready text."""
import re
import json
from typing import Any, Iterable, List, Optional, Sequence

from briefsmith.models import CompetitorPage, ContentBrief
from briefsmith.token_budget import fit_texts, truncate

GROUND_TRUTH_PAGES = 3


def drop_keys(data: Any, keys: Iterable[str]) -> Any:
    """Recursively remove the given keys from every dict in a JSON-like value."""
    keys = frozenset(keys)
    if isinstance(data, dict):
        return {k: drop_keys(v, keys) for k, v in data.items() if k not in keys}
    if isinstance(data, list):
        return [drop_keys(v, keys) for v in data]
    return data


def strip_reasoning(data: Any) -> Any:
    return drop_keys(data, ("reasoning",))


def brief_for_prompt(brief: ContentBrief, *, keep_reasoning: bool = False) -> str:
    data = brief.model_dump(exclude_none=True)
    data = drop_keys(data, ("id",))
    if not keep_reasoning:
        data = strip_reasoning(data)
    return json.dumps(data, indent=2, ensure_ascii=False)


def count_words(text: str) -> int:
    return len([w for w in re.split(r"\s+", (text or "").strip()) if w])


def select_ground_truth(pages: Sequence[CompetitorPage], limit: int = GROUND_TRUTH_PAGES) -> List[CompetitorPage]:
    """Starred pages first, then the best-scored of the rest, up to `limit`."""
    starred = [p for p in pages if p.is_starred]
    others = sorted((p for p in pages if not p.is_starred), key=lambda p: p.Weighted_Score, reverse=True)
    picked = starred[:limit]
    picked.extend(others[: max(0, limit - len(picked))])
    return picked


def ground_truth_text(pages: Sequence[CompetitorPage], limit: int = GROUND_TRUTH_PAGES,
                      max_tokens: Optional[int] = None) -> str:
    picked = [p for p in select_ground_truth(pages, limit) if p.Full_Text]
    texts = [p.Full_Text for p in picked]
    if max_tokens is not None:
        texts = fit_texts(texts, max_tokens)
    blocks = [f"URL: {p.URL}\nTEXT: {text}" for p, text in zip(picked, texts)]
    return "\n\n---\n\n".join(blocks)


def competitors_payload(pages: Sequence[CompetitorPage], max_tokens: int) -> str:
    """Competitor records as compact JSON, truncated to fit the prompt budget."""
    records = [p.model_dump() for p in pages]
    payload = json.dumps(records, ensure_ascii=False, separators=(",", ":"))
    return truncate(payload, max_tokens)
