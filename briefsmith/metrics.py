# briefsmith/metrics.py
"""Article metrics computed locally from markdown; no model calls."""
import re
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from briefsmith.brief_context import count_words
from briefsmith.config import LengthConstraints
from briefsmith.models import ContentBrief
from briefsmith.validators import walk


class SectionMetric(BaseModel):
    heading: str
    level: str
    actual_words: int
    target_words: int = 0
    percentage: int = 0


class KeywordMetric(BaseModel):
    keyword: str
    count: int
    density: float
    is_primary: bool


class ArticleMetrics(BaseModel):
    word_count: int
    target_word_count: int = 0
    word_count_percentage: int = 0
    section_breakdown: List[SectionMetric] = Field(default_factory=list)
    missing_sections: List[str] = Field(default_factory=list)
    keyword_metrics: List[KeywordMetric] = Field(default_factory=list)
    avg_sentence_length: float = 0.0
    paragraph_count: int = 0
    heading_count: Dict[str, int] = Field(default_factory=dict)


_MD_RULES = [
    (re.compile(r"^#{1,6}\s+", re.M), ""),
    (re.compile(r"\*\*(.+?)\*\*"), r"\1"),
    (re.compile(r"\*(.+?)\*"), r"\1"),
    (re.compile(r"\[(.+?)\]\(.+?\)"), r"\1"),
    (re.compile(r"`(.+?)`"), r"\1"),
    (re.compile(r"^[-*+]\s+", re.M), ""),
    (re.compile(r"^\d+\.\s+", re.M), ""),
    (re.compile(r"^>\s+", re.M), ""),
    (re.compile(r"---+"), ""),
]


def strip_markdown(text: str) -> str:
    for pat, repl in _MD_RULES:
        text = pat.sub(repl, text)
    return text.strip()


def parse_sections(md: str) -> List[Tuple[str, str, str]]:
    """(heading, level, body) for every H1-H3; text before the first heading is dropped."""
    sections = []
    heading, level, lines = "", "", []
    for line in md.split("\n"):
        m = re.match(r"^(#{1,3})\s+(.+)", line)
        if m:
            if heading:
                sections.append((heading, level, "\n".join(lines)))
            heading, level, lines = m.group(2).strip(), f"H{len(m.group(1))}", []
        else:
            lines.append(line)
    if heading:
        sections.append((heading, level, "\n".join(lines)))
    return sections


def _norm(heading: str) -> str:
    return re.sub(r"\*(.+?)\*", r"\1", re.sub(r"\*\*(.+?)\*\*", r"\1", heading.lower())).strip()


def keyword_count(text: str, keyword: str) -> int:
    """Whole-word, case-insensitive occurrences."""
    return len(re.findall(rf"\b{re.escape(keyword)}\b", text, flags=re.I))


def avg_sentence_length(text: str) -> float:
    sentences = [s.strip() for s in re.split(r"[.!?]+(?:\s|$)", strip_markdown(text)) if s.strip()]
    if not sentences:
        return 0.0
    return round(sum(count_words(s) for s in sentences) / len(sentences), 1)


def paragraph_count(text: str) -> int:
    return len([p for p in re.split(r"\n\s*\n", text) if p.strip()])


def heading_counts(text: str) -> Dict[str, int]:
    counts = {"h1": 0, "h2": 0, "h3": 0}
    for line in text.split("\n"):
        if re.match(r"^###\s+", line):
            counts["h3"] += 1
        elif re.match(r"^##\s+", line):
            counts["h2"] += 1
        elif re.match(r"^#\s+", line):
            counts["h1"] += 1
    return counts


def calculate_metrics(md: str, brief: ContentBrief, length: Optional[LengthConstraints] = None) -> ArticleMetrics:
    plain = strip_markdown(md)
    words = count_words(plain)
    section_targets = length.section_targets if length else {}
    target = (length.global_target if length else None) or (
        brief.article_structure.word_count_target if brief.article_structure else None
    ) or 0

    outline = [n for _, n in walk(brief.article_structure.outline)] if brief.article_structure else []
    by_heading = {}
    for node in outline:
        by_heading.setdefault(_norm(node.heading), node)

    breakdown, matched = [], set()
    for heading, level, body in parse_sections(md):
        node = by_heading.get(_norm(heading))
        tw = 0
        if node is not None:
            matched.add(_norm(node.heading))
            tw = section_targets.get(node.heading) or node.target_word_count or 0
        actual = count_words(strip_markdown(body))
        breakdown.append(SectionMetric(
            heading=heading, level=level, actual_words=actual, target_words=tw,
            percentage=int(round(actual / tw * 100)) if tw else 0,
        ))

    kw_metrics = []
    if brief.keyword_strategy:
        for primary, items in ((True, brief.keyword_strategy.primary_keywords),
                               (False, brief.keyword_strategy.secondary_keywords)):
            for kw in items:
                n = keyword_count(plain, kw.keyword)
                kw_metrics.append(KeywordMetric(
                    keyword=kw.keyword, count=n, is_primary=primary,
                    density=round(n / words * 100, 2) if words else 0.0,
                ))

    return ArticleMetrics(
        word_count=words,
        target_word_count=target,
        word_count_percentage=int(round(words / target * 100)) if target else 0,
        section_breakdown=breakdown,
        missing_sections=[n.heading for n in outline if _norm(n.heading) not in matched],
        keyword_metrics=kw_metrics,
        avg_sentence_length=avg_sentence_length(md),
        paragraph_count=paragraph_count(md),
        heading_count=heading_counts(md),
    )


def format_metrics_context(m: ArticleMetrics) -> str:
    """Plain-text summary handed to the optimizer prompt."""
    hc = m.heading_count
    lines = [
        f"Word count: {m.word_count}/{m.target_word_count} ({m.word_count_percentage}%)",
        f"Avg sentence length: {m.avg_sentence_length} words",
        f"Paragraphs: {m.paragraph_count}",
        f"Headings: H1={hc.get('h1', 0)}, H2={hc.get('h2', 0)}, H3={hc.get('h3', 0)}",
    ]
    if m.missing_sections:
        lines.append(f"Missing sections: {', '.join(m.missing_sections)}")
    lines.append("\nKeyword metrics:")
    for k in m.keyword_metrics:
        lines.append(f'- "{k.keyword}": {k.count} occurrences, {k.density}% density{" (PRIMARY)" if k.is_primary else ""}')
    if m.section_breakdown:
        lines.append("\nSection breakdown:")
        for s in m.section_breakdown:
            tail = f" / target: {s.target_words} ({s.percentage}%)" if s.target_words else ""
            lines.append(f'- {s.level} "{s.heading}": {s.actual_words} words{tail}')
    return "\n".join(lines)
