# briefsmith/validators.py
import re
import logging
from collections import Counter
from typing import Iterable, Iterator, List, Sequence, Tuple

from briefsmith.errors import KeywordIdentityError, OutlineDepthError, OutlineStructureError
from briefsmith.models import KeywordStrategy, OutlineItem

logger = logging.getLogger(__name__)

MAX_OUTLINE_DEPTH = 3
LONG_PARAGRAPH_WORDS = 130


# ---------- keyword identity ----------

def check_keyword_identity(strategy: KeywordStrategy, supplied: Iterable[str]) -> None:
    """
    Primary + secondary keywords must be the supplied list, as a multiset.
    Surrounding whitespace is ignored; case and inner spelling are not.
    """
    got = Counter(k.strip() for k in strategy.all_keywords())
    want = Counter(k.strip() for k in supplied)
    if got == want:
        return
    missing = list((want - got).elements())
    unexpected = list((got - want).elements())
    raise KeywordIdentityError(missing, unexpected)


# ---------- outline shape ----------

def walk(outline: Sequence[OutlineItem], depth: int = 1) -> Iterator[Tuple[int, OutlineItem]]:
    """Depth-first, document order. Root items are depth 1."""
    for node in outline:
        yield depth, node
        yield from walk(node.children, depth + 1)


def outline_depth(outline: Sequence[OutlineItem]) -> int:
    return max((d for d, _ in walk(outline)), default=0)


def check_outline_depth(outline: Sequence[OutlineItem], max_depth: int = MAX_OUTLINE_DEPTH) -> None:
    for depth, node in walk(outline):
        if depth > max_depth:
            raise OutlineDepthError(node.heading, depth, max_depth)


def structure_signature(outline: Sequence[OutlineItem]) -> List[Tuple[int, str, str]]:
    return [(d, n.level, n.heading.strip()) for d, n in walk(outline)]


def check_structure_unchanged(before: Sequence[OutlineItem], after: Sequence[OutlineItem], pass_name: str) -> None:
    b, a = structure_signature(before), structure_signature(after)
    if b == a:
        return
    if len(b) != len(a):
        raise OutlineStructureError(f"{pass_name} changed the number of outline items ({len(b)} -> {len(a)}).")
    for (bd, bl, bh), (ad, al, ah) in zip(b, a):
        if (bd, bl, bh) != (ad, al, ah):
            raise OutlineStructureError(
                f"{pass_name} changed outline item '{bh}' ({bl}, depth {bd}) to '{ah}' ({al}, depth {ad})."
            )


def clamp_featured_snippets(outline: Sequence[OutlineItem]) -> int:
    """Keep only the first snippet target in document order. Returns how many were cleared."""
    seen = False
    cleared = 0
    for _, node in walk(outline):
        fst = node.featured_snippet_target
        if fst is None or not fst.is_target:
            continue
        if seen:
            node.featured_snippet_target = None
            cleared += 1
        seen = True
    if cleared:
        logger.warning("Outline marked %d extra featured snippet target(s); kept the first only.", cleared)
    return cleared


# ---------- article lint ----------

def seo_lint(md: str) -> List[str]:
    """Cheap structural checks on a finished markdown article."""
    errs = []

    paras = [p for p in (md or "").split("\n\n") if p.strip() and not p.lstrip().startswith("#")]
    long = [p for p in paras if len(p.split()) > LONG_PARAGRAPH_WORDS]
    if long:
        errs.append(f"{len(long)} paragraph(s) exceed ~{LONG_PARAGRAPH_WORDS} words.")

    levels = [len(m.group(1)) for m in re.finditer(r"^(#{1,6})\s", md or "", flags=re.M)]
    if levels.count(1) != 1:
        errs.append(f"Expected exactly one H1, found {levels.count(1)}.")
    for prev, cur in zip(levels, levels[1:]):
        if cur > prev + 1:
            errs.append(f"Heading level jumps from H{prev} to H{cur}.")
            break

    for h in re.findall(r"^#+ .*", md or "", flags=re.M):
        if "](" in h:
            errs.append("Link found in a heading.")
    return errs
