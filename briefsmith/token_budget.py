# briefsmith/token_budget.py
"""Rough token accounting for prompt payloads (~4 characters per token)."""
import json
import logging
from typing import List

from briefsmith.config import TOKEN_HARD_LIMIT, TOKEN_WARN_AT

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "\n[... content truncated to fit token budget ...]"

# shares of the hard limit for the two competitor blocks of a stage prompt;
# the rest is left for the brief and the instructions
COMPETITOR_SHARE = 0.55
GROUND_TRUTH_SHARE = 0.25


def estimate_tokens(text: str) -> int:
    return len(text or "") // 4


def check_budget(label: str, text: str, warn_at: int = TOKEN_WARN_AT, hard_limit: int = TOKEN_HARD_LIMIT) -> bool:
    """Log when a payload is large. Returns True when it is over the hard limit."""
    tokens = estimate_tokens(text)
    if tokens > hard_limit:
        logger.error("%s is ~%d tokens, over the hard limit of %d", label, tokens, hard_limit)
        return True
    if tokens > warn_at:
        logger.warning("%s is ~%d tokens (warn at %d)", label, tokens, warn_at)
    return False


def truncate(payload: str, max_tokens: int = TOKEN_HARD_LIMIT) -> str:
    """
    Shrink a JSON array of competitor records so the whole payload fits max_tokens.

    Every record keeps its place; only Full_Text is cut, proportionally.
    Anything that is not a JSON array falls back to a plain character cut.
    """
    estimated = estimate_tokens(payload)
    if estimated <= max_tokens:
        return payload

    try:
        records = json.loads(payload)
    except (ValueError, TypeError):
        records = None

    if not isinstance(records, list):
        logger.warning("Payload is not a JSON array; cutting to %d characters", max_tokens * 4)
        return payload[: max_tokens * 4] + TRUNCATION_MARKER

    ratio = max_tokens / estimated
    shrunk = []
    for rec in records:
        if isinstance(rec, dict) and isinstance(rec.get("Full_Text"), str):
            text = rec["Full_Text"]
            keep = int(len(text) * ratio)
            rec = dict(rec, Full_Text=text[:keep] + TRUNCATION_MARKER)
        shrunk.append(rec)

    logger.warning(
        "Truncated %d competitor records to %.0f%% of their text (~%d -> %d tokens)",
        len(shrunk), ratio * 100, estimated, max_tokens,
    )
    return json.dumps(shrunk, ensure_ascii=False, separators=(",", ":"))


def fit_texts(texts: List[str], max_tokens: int) -> List[str]:
    """Cut every text by the same ratio so that together they fit max_tokens."""
    estimated = sum(estimate_tokens(t) for t in texts)
    if estimated <= max_tokens:
        return list(texts)
    ratio = max_tokens / estimated
    logger.warning("Cutting %d texts to %.0f%% (~%d -> %d tokens)", len(texts), ratio * 100, estimated, max_tokens)
    return [t[: int(len(t) * ratio)] + TRUNCATION_MARKER for t in texts]
