# briefsmith/models.py
from __future__ import annotations

import uuid
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from briefsmith.config import DEFAULT_LANGUAGE, LengthConstraints, ModelSettings


def new_id() -> str:
    return uuid.uuid4().hex[:12]


class Prompt(BaseModel):
    system: str
    user: str


class ReasoningItem(BaseModel):
    value: Any = ""
    reasoning: str = ""


# ---------- stage 1: goal & audience ----------

class SearchIntent(BaseModel):
    type: Literal["informational", "transactional", "navigational", "commercial_investigation"] = "informational"
    preferred_format: str = ""
    serp_features: List[str] = Field(default_factory=list)
    reasoning: str = ""


# ---------- stage 2: keywords ----------

class KeywordItem(BaseModel):
    keyword: str
    notes: str = ""


class KeywordStrategy(BaseModel):
    primary_keywords: List[KeywordItem] = Field(default_factory=list)
    secondary_keywords: List[KeywordItem] = Field(default_factory=list)
    reasoning: str = ""

    def all_keywords(self) -> List[str]:
        return [k.keyword for k in self.primary_keywords] + [k.keyword for k in self.secondary_keywords]


class KeywordVolume(BaseModel):
    kw: str
    volume: int = 0


# ---------- stage 3 / 4: competitors & gaps ----------

class CompetitorBreakdown(BaseModel):
    url: str
    description: str = ""
    good_points: List[str] = Field(default_factory=list)
    bad_points: List[str] = Field(default_factory=list)


class CompetitorInsights(BaseModel):
    competitor_breakdown: List[CompetitorBreakdown] = Field(default_factory=list)
    differentiation_summary: ReasoningItem = Field(default_factory=ReasoningItem)


class ContentGapAnalysis(BaseModel):
    table_stakes: List[ReasoningItem] = Field(default_factory=list)
    strategic_opportunities: List[ReasoningItem] = Field(default_factory=list)
    reasoning: str = ""


# ---------- stage 5: outline ----------

class FeaturedSnippetTarget(BaseModel):
    is_target: bool = False
    format: Literal["paragraph", "list", "table"] = "paragraph"
    target_query: Optional[str] = None


class OutlineItem(BaseModel):
    id: str = Field(default_factory=new_id)
    level: str = "H2"  # "H2" | "Hero" | "Conclusion" | "H3" | "H4"
    heading: str
    guidelines: List[str] = Field(default_factory=list)
    reasoning: str = ""
    targeted_keywords: List[str] = Field(default_factory=list)
    competitor_coverage: List[str] = Field(default_factory=list)
    additional_resources: List[str] = Field(default_factory=list)
    featured_snippet_target: Optional[FeaturedSnippetTarget] = None
    target_word_count: Optional[int] = None
    children: List["OutlineItem"] = Field(default_factory=list)


class ArticleStructure(BaseModel):
    word_count_target: Optional[int] = None
    outline: List[OutlineItem] = Field(default_factory=list)
    reasoning: str = ""


# ---------- stage 6 / 7 ----------

class FAQItem(BaseModel):
    question: str
    guidelines: List[str] = Field(default_factory=list)


class FAQs(BaseModel):
    questions: List[FAQItem] = Field(default_factory=list)
    reasoning: str = ""


class OnPageSeo(BaseModel):
    title_tag: ReasoningItem = Field(default_factory=ReasoningItem)
    meta_description: ReasoningItem = Field(default_factory=ReasoningItem)
    h1: ReasoningItem = Field(default_factory=ReasoningItem)
    url_slug: ReasoningItem = Field(default_factory=ReasoningItem)
    og_title: ReasoningItem = Field(default_factory=ReasoningItem)
    og_description: ReasoningItem = Field(default_factory=ReasoningItem)


# ---------- brief review ----------

class BriefImprovement(BaseModel):
    section: str
    issue: str
    suggestion: str


class CategoryScore(BaseModel):
    score: int = 0
    explanation: str = ""


class BriefValidation(BaseModel):
    scores: Dict[str, CategoryScore] = Field(default_factory=dict)
    overall_score: int = 0
    improvements: List[BriefImprovement] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list)
    ready_for_writing: bool = False


class EEATSignals(BaseModel):
    experience: List[str] = Field(default_factory=list)
    expertise: List[str] = Field(default_factory=list)
    authority: List[str] = Field(default_factory=list)
    trust: List[str] = Field(default_factory=list)
    reasoning: str = ""


class ContentBrief(BaseModel):
    """A brief is filled in stage by stage; every section is optional until generated."""
    search_intent: Optional[SearchIntent] = None
    page_goal: Optional[ReasoningItem] = None
    target_audience: Optional[ReasoningItem] = None
    keyword_strategy: Optional[KeywordStrategy] = None
    competitor_insights: Optional[CompetitorInsights] = None
    content_gap_analysis: Optional[ContentGapAnalysis] = None
    article_structure: Optional[ArticleStructure] = None
    faqs: Optional[FAQs] = None
    on_page_seo: Optional[OnPageSeo] = None
    validation: Optional[BriefValidation] = None
    eeat_signals: Optional[EEATSignals] = None


# ---------- competitors ----------

class KeywordRanking(BaseModel):
    keyword: str
    rank: int
    volume: int = 0


class CompetitorPage(BaseModel):
    model_config = ConfigDict(frozen=True)

    URL: str
    Weighted_Score: float = 0
    rankings: List[KeywordRanking] = Field(default_factory=list)
    H1s: List[str] = Field(default_factory=list)
    H2s: List[str] = Field(default_factory=list)
    H3s: List[str] = Field(default_factory=list)
    Word_Count: int = 0
    Full_Text: str = ""
    is_starred: bool = False


# ---------- templates ----------

class HeadingNode(BaseModel):
    level: int
    text: str
    adapted_text: Optional[str] = None
    guidelines: List[str] = Field(default_factory=list)
    children: List["HeadingNode"] = Field(default_factory=list)


# ---------- content validation ----------

Severity = Literal["critical", "warning", "suggestion"]
ChangeType = Literal["alignment", "length", "paragraph_length", "missing_keyword", "structure", "tone"]


class ChangeLocation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    section_heading: Optional[str] = Field(default=None, alias="sectionHeading")
    paragraph_index: Optional[int] = Field(default=None, alias="paragraphIndex")


class ProposedChange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    type: ChangeType = "alignment"
    severity: Severity = "suggestion"
    location: ChangeLocation = Field(default_factory=ChangeLocation)
    description: str = ""
    current_text: Optional[str] = Field(default=None, alias="currentText")
    proposed_text: Optional[str] = Field(default=None, alias="proposedText")
    reasoning: str = ""


class WordCountScore(BaseModel):
    actual: int = 0
    target: Optional[int] = None
    score: int = 100
    explanation: str = ""


class ValidationScores(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    brief_alignment: CategoryScore = Field(default_factory=CategoryScore, alias="briefAlignment")
    paragraph_lengths: CategoryScore = Field(default_factory=CategoryScore, alias="paragraphLengths")
    total_word_count: WordCountScore = Field(default_factory=WordCountScore, alias="totalWordCount")
    keyword_usage: CategoryScore = Field(default_factory=CategoryScore, alias="keywordUsage")
    structure_adherence: CategoryScore = Field(default_factory=CategoryScore, alias="structureAdherence")


class ContentValidationResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    overall_score: int = Field(default=0, alias="overallScore")
    scores: ValidationScores = Field(default_factory=ValidationScores)
    proposed_changes: List[ProposedChange] = Field(default_factory=list, alias="proposedChanges")
    summary: str = ""


# ---------- generation inputs ----------

class WordBudget(BaseModel):
    target: int
    minimum: int
    maximum: int
    strict: bool = False


class GenerationContext(BaseModel):
    """Everything a stage prompt may draw on, besides the brief itself."""
    competitor_pages: List[CompetitorPage] = Field(default_factory=list)
    available_keywords: List[KeywordVolume] = Field(default_factory=list)
    paa_questions: List[str] = Field(default_factory=list)
    subject_info: str = ""
    brand_info: str = ""
    language: str = DEFAULT_LANGUAGE
    writer_instructions: str = ""
    template_headings: List[HeadingNode] = Field(default_factory=list)
    settings: ModelSettings = Field(default_factory=ModelSettings)
    length: LengthConstraints = Field(default_factory=LengthConstraints)


OutlineItem.model_rebuild()
HeadingNode.model_rebuild()
