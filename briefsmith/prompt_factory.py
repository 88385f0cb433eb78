# briefsmith/prompt_factory.py
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Sequence

from briefsmith.brief_context import brief_for_prompt, drop_keys, strip_reasoning
from briefsmith.content_guidelines import (
    GUIDELINES,
    RESOURCE_KINDS,
    SEVERITY_GUIDELINES,
    get_style_instructions,
    language_directive,
    snippet_instructions,
)
from briefsmith.models import (
    BriefImprovement,
    ContentBrief,
    GenerationContext,
    HeadingNode,
    OutlineItem,
    Prompt,
    WordBudget,
)
from briefsmith.stages import STAGE_BRIEF_FIELDS, Stage

CONTENT_WINDOW_CHARS = 3000
UPCOMING_HEADINGS = 3
TEMPLATE_CONTENT_CHARS = 50000

# ---------- helpers ----------

def _json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def _or_none(text: str) -> str:
    return text.strip() if text and text.strip() else "Not provided."


def _bullets(items: Sequence[str]) -> str:
    return "\n".join(f"- {i}" for i in items) or "(none)"


def _block(title: str, body: str) -> str:
    return f"**{title}:**\n{body}"


def _join(*parts: str) -> str:
    return "\n\n---\n\n".join(p.strip() for p in parts if p and p.strip())


def _length_context(global_target: Optional[int], section_target: Optional[int] = None) -> str:
    out = []
    if global_target:
        out.append(f"IMPORTANT: the whole article should run about {global_target} words. Allocate across sections accordingly.")
    if section_target:
        out.append(f"This section should be roughly {section_target} words.")
    return "\n".join(out)


def _strategist_base(language: str, is_regeneration: bool) -> str:
    a = GUIDELINES["analysis"]
    out = f"""You are "BriefStrategist", an expert SEO content strategist.
You receive a JSON array of competitor pages. {a['weighted_score']}

ANALYSIS DIRECTIVE: {a['starred_competitors']}

Produce ONLY the part of the content brief for the current stage. Your whole response must be a single valid JSON
object matching the supplied schema, with no conversational text around it.

{language_directive(language)}"""
    if is_regeneration:
        out += """

REGENERATION: the user wants this stage redone based on their feedback. The current JSON for this stage is given
under "Existing JSON for this stage". Modify that JSON to apply the feedback; do not start over, and keep changes
targeted to what the user asked for."""
    return out


_STAGE_TASKS: Dict[Stage, str] = {
    Stage.GOAL: """CURRENT TASK: Stage 1 - Search intent, page goal and target audience.

A) SEARCH INTENT (do this first). From the competitor data, decide what the search engine rewards:
   1. type: one of 'informational' (learn something), 'transactional' (buy or do something),
      'navigational' (find a specific site), 'commercial_investigation' (research before buying).
   2. preferred_format: the format winning the top positions, e.g. how-to guide, listicle, comparison table, tool.
   3. serp_features: features you expect on the results page, e.g. featured snippet, People Also Ask, video.
   Return these in 'search_intent' together with 'reasoning'.

B) PAGE GOAL & AUDIENCE. Study the highest 'Weighted_Score' pages and any starred pages, infer their goal and
   audience, then set a goal for our page that serves that audience better or wins an underserved niche.
   Both 'page_goal' and 'target_audience' are objects with 'value' and 'reasoning' (cite the competitors).

The response MUST contain 'search_intent', 'page_goal' and 'target_audience'.""",

    Stage.KEYWORDS: """CURRENT TASK: Stage 2 - Keyword strategy.

You get a JSON list of available keywords with search volumes. Organise it into a plan:
1. Pick one or more primary keywords from the list that best capture the core intent.
2. Every other keyword from the list becomes a secondary keyword.
3. Give EVERY keyword short 'notes' on how to use it (e.g. "use in the H2 for section 3").
4. Explain the overall strategy in 'reasoning'.

HARD CONSTRAINT: use the keywords exactly as given. Do not add, drop, merge or reword any of them. Every keyword in
the list must appear exactly once, as either primary or secondary.""",

    Stage.COMPETITORS: """CURRENT TASK: Stage 3 - Competitive analysis.

1. 'differentiation_summary' ('value' + 'reasoning'): what separates the top performers (high score, starred) from
   the rest? What do the winners do that the others don't?
2. 'competitor_breakdown': one entry for EVERY competitor URL in the data, with
   - 'description': one sentence on the page's content and angle,
   - 'good_points': concrete strengths worth learning from,
   - 'bad_points': concrete weaknesses or missed opportunities.""",

    Stage.CONTENT_GAPS: """CURRENT TASK: Stage 4 - Content gap analysis.

Use everything so far, especially the ground-truth text of the top competitors.
1. 'table_stakes': topics every top-ranking and starred competitor covers; we must cover them too.
   Each is {'value': topic, 'reasoning': why it is table stakes, citing competitors}.
2. 'strategic_opportunities': topics, angles or formats the competitors cover poorly or not at all.
   Each is {'value': opportunity, 'reasoning': why it is a gap}.
3. 'reasoning': a summary of the analysis.

This output is the main directive for the article structure stage.""",

    Stage.OUTLINE: """CURRENT TASK: Stage 5, part 1 - Hierarchical outline skeleton.

Build the best, most logical article structure you can, driven by the strongest and starred competitors and every
earlier stage, above all the content gap analysis.
1. Cover every table-stakes topic and exploit every strategic opportunity.
2. Nest the outline: 'H2' for main sections, 'H3' for sub-sections, 'H4' at most below that. Never nest deeper.
3. Use level "Hero" and "Conclusion" for those special sections. Do NOT add an FAQ section; FAQs come later.
4. Each item's 'reasoning' must tie it back to the gap analysis or competitor insights.
5. Recommend a competitive 'word_count_target' from the top and starred competitors, and optionally give major
   sections a 'target_word_count'.

FEATURED SNIPPET: if the search intent suggests a featured snippet opportunity, mark exactly ONE section with
featured_snippet_target = {is_target: true, format: "paragraph" | "list" | "table", target_query: "..."}.
Use "paragraph" for definitions, "list" for steps or items, "table" for comparisons. Otherwise omit the field.

Leave 'guidelines', 'targeted_keywords', 'competitor_coverage' and 'additional_resources' EMPTY ([]) on every item.
A later pass fills them in.""",

    Stage.FAQS: """CURRENT TASK: Stage 6 - Frequently asked questions.

1. Any keyword phrased as a question MUST become an FAQ question.
2. Add further questions users are likely to have, based on the competitors and the gap analysis.
3. For each question give 'guidelines' telling a writer HOW to answer it. Do not write the answer.
4. Explain the selection in one overall 'reasoning', naming the question keywords you used.""",

    Stage.ON_PAGE_SEO: f"""CURRENT TASK: Stage 7 - On-page SEO, with a heavy keyword focus.

1. At least one primary keyword MUST appear in 'title_tag', 'h1' and 'og_title'.
2. Work in as many secondary keywords as read naturally across all elements.
3. Limits: 'title_tag' ~{GUIDELINES['on_page_limits']['title_tag']} chars, 'meta_description'
   ~{GUIDELINES['on_page_limits']['meta_description']} chars, 'og_title' ~{GUIDELINES['on_page_limits']['og_title']} chars,
   'og_description' ~{GUIDELINES['on_page_limits']['og_description']} chars. 'url_slug' is short, readable and contains
   the main primary keyword. 'h1' is the on-page main heading.
4. Each of the six elements is {{'value', 'reasoning'}}; the reasoning says how it uses the keywords.""",
}


def stage_system_prompt(stage: Stage, language: str, is_regeneration: bool = False) -> str:
    return f"{_strategist_base(language, is_regeneration)}\n\n{_STAGE_TASKS[Stage(stage)]}"


def clear_enrichment(outline: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Outline dicts with the enrichment arrays emptied, recursively."""
    out = []
    for node in outline:
        node = dict(node)
        for key in ("guidelines", "targeted_keywords", "competitor_coverage", "additional_resources"):
            node[key] = []
        node["children"] = clear_enrichment(node.get("children") or [])
        out.append(node)
    return out


def existing_stage_json(stage: Stage, brief: ContentBrief) -> Optional[Dict[str, Any]]:
    data = {
        f: getattr(brief, f).model_dump(exclude_none=True)
        for f in STAGE_BRIEF_FIELDS[Stage(stage)]
        if getattr(brief, f) is not None
    }
    if not data:
        return None
    if stage == Stage.OUTLINE:
        structure = dict(data["article_structure"])
        structure["outline"] = clear_enrichment(structure.get("outline") or [])
        data["article_structure"] = structure
    return drop_keys(data, ("id",))


def _shared_context(
    brief: ContentBrief,
    ctx: GenerationContext,
    competitor_payload: str,
    ground_truth: str,
) -> List[str]:
    parts = []
    if ground_truth:
        parts.append(_block('"Ground Truth" competitor text (full text of the top 3 competitors)', ground_truth))
    parts.extend([
        _block("Competitor data", competitor_payload or "[]"),
        _block("Subject matter context from the user", _or_none(ctx.subject_info)),
        _block("Brand information from the user", _or_none(ctx.brand_info)),
        _block("Results from previous stages", brief_for_prompt(brief, keep_reasoning=True)),
    ])
    return parts


def build_stage_prompt(
    stage: Stage,
    brief: ContentBrief,
    ctx: GenerationContext,
    *,
    competitor_payload: str,
    ground_truth: str = "",
    is_regeneration: bool = False,
    feedback: Optional[str] = None,
) -> Prompt:
    """System + user prompt for one non-outline stage (and the outline skeleton pass)."""
    stage = Stage(stage)
    parts: List[str] = []

    if stage == Stage.KEYWORDS and ctx.available_keywords:
        keywords = [k.model_dump() for k in ctx.available_keywords]
        parts.append(_block(
            "Available keywords (use ALL of them, exactly as written, each exactly once)", _json(keywords)
        ))

    if stage == Stage.FAQS and ctx.paa_questions:
        numbered = "\n".join(f"{i}. {q}" for i, q in enumerate(ctx.paa_questions, 1))
        parts.append(_block(
            '"People Also Ask" questions from the search results',
            "Users are demonstrably searching for these. Use as many as are relevant before adding your own:\n"
            + numbered,
        ))

    if stage == Stage.OUTLINE and ctx.template_headings:
        headings = [h.model_dump(exclude_none=True) for h in ctx.template_headings]
        parts.append(_block(
            "Template heading structure (use it as the foundation, adapted to this topic)",
            _json(headings) + "\nAdd or adjust headings where the analysis calls for it, but keep the overall shape.",
        ))

    if is_regeneration:
        existing = existing_stage_json(stage, brief)
        if existing is not None:
            parts.append(_block("Existing JSON for this stage (modify it based on the feedback)", _json(existing)))

    length = _length_context(ctx.length.global_target)
    if length:
        parts.append(length)

    parts.extend(_shared_context(brief, ctx, competitor_payload, ground_truth))

    if feedback and feedback.strip():
        parts.append(_block("User feedback to apply (the most important instruction)", feedback.strip()))

    if stage == Stage.OUTLINE:
        parts.append("Generate the JSON for stage 5, part 1: the core structure only.")
    else:
        parts.append(f"Generate the JSON for stage {int(stage)}.")

    return Prompt(system=stage_system_prompt(stage, ctx.language, is_regeneration), user=_join(*parts))


# ---------- outline passes ----------

def enrichment_system_prompt(language: str) -> str:
    return f"""You are "BriefStrategist", an expert SEO content strategist.
You receive a finished article outline as JSON. Your only job is to fill three fields on EVERY item, nested
children included: 'guidelines', 'targeted_keywords' and 'competitor_coverage'.

{language_directive(language)}

1. 'guidelines': specific, actionable instructions for the writer. Recommend formats where they help, e.g.
   "include a comparison table of X and Y", "end with a CTA to the product page".
2. 'targeted_keywords': the keywords from 'keyword_strategy' this heading serves, copied exactly.
3. 'competitor_coverage': URLs of competitors whose ground-truth text covers the same topic.

Return the COMPLETE outline JSON with those arrays filled. Do not rename, add, remove or reorder any heading and do
not change any other field."""


def build_enrichment_prompt(
    skeleton: Dict[str, Any],
    brief: ContentBrief,
    ctx: GenerationContext,
    *,
    competitor_payload: str,
    ground_truth: str = "",
    feedback: Optional[str] = None,
) -> Prompt:
    parts = [
        _block("Full context from previous stages", brief_for_prompt(brief, keep_reasoning=True)),
        _block("Outline to enrich (JSON)", _json(skeleton)),
        _block("Competitor data", competitor_payload or "[]"),
    ]
    if ground_truth:
        parts.append(_block('"Ground Truth" competitor text', ground_truth))
    if feedback and feedback.strip():
        parts.append(_block("User feedback", feedback.strip()))
    parts.append("Fill in 'guidelines', 'targeted_keywords' and 'competitor_coverage'.")
    return Prompt(system=enrichment_system_prompt(ctx.language), user=_join(*parts))


def resource_system_prompt(language: str) -> str:
    kinds = ", ".join(f"'{k}'" for k in RESOURCE_KINDS)
    return f"""You are "BriefStrategist", acting as production manager for a content team.
You receive a fully detailed article outline as JSON. Find the non-text assets that must be produced for it.

{language_directive(language)}

1. Read the 'guidelines' of every item, nested children included.
2. When a guideline calls for something a writer cannot make alone ({kinds}), add a short description of it to
   that item's 'additional_resources', e.g. "Infographic comparing X and Y".
3. Items whose guidelines need no such asset keep an empty 'additional_resources'.

Return the COMPLETE outline JSON, changed only in 'additional_resources'."""


def build_resource_prompt(enriched: Dict[str, Any], language: str) -> Prompt:
    user = _join(
        _block("Fully enriched article outline (JSON)", _json(enriched)),
        "Identify the non-text resources the guidelines call for.",
    )
    return Prompt(system=resource_system_prompt(language), user=user)


# ---------- section writing ----------

def relevant_improvements(
    improvements: Sequence[BriefImprovement], heading: str, section_index: int
) -> List[BriefImprovement]:
    """Brief review findings worth showing the writer of one section (all of them for the first)."""
    if section_index == 0:
        return list(improvements)
    heading_l = heading.lower()
    heading_head = heading_l.split(":")[0].strip()
    out = []
    for imp in improvements:
        sec = imp.section.lower()
        if sec in ("general", "overall") or sec in heading_l or (heading_head and heading_head in sec):
            out.append(imp)
    return out


def _budget_instructions(budget: WordBudget, global_target: Optional[int], words_so_far: int) -> str:
    if budget.strict:
        lines = ["STRICT WORD COUNT LIMIT (mandatory):"]
        if global_target:
            lines += [
                f"- Article target: {global_target} words",
                f"- Written so far: {words_so_far}",
                f"- Remaining budget: {max(0, global_target - words_so_far)}",
            ]
        lines += [
            f"- Write between {budget.minimum} and {budget.maximum} words for this section. Do not leave this range.",
            "- Running long makes the article too long. Be concise and keep the most valuable information.",
        ]
    else:
        lines = ["WORD COUNT REQUIREMENT:"]
        if global_target:
            lines += [f"- Article target: {global_target} words", f"- Written so far: {words_so_far}"]
        lines.append(
            f"- Write between {budget.minimum} and {budget.maximum} words for this section (target: {budget.target})."
        )
    return "\n".join(lines)


def _eeat_instructions(brief: ContentBrief) -> str:
    s = brief.eeat_signals
    if s is None:
        return ""
    bullets = [
        f"{name}: {'; '.join(items)}"
        for name, items in (
            ("Experience", s.experience),
            ("Expertise", s.expertise),
            ("Authority", s.authority),
            ("Trust", s.trust),
        )
        if items
    ]
    if not bullets:
        return ""
    return (
        "E-E-A-T SIGNALS. Where they fit this section naturally, weave in:\n"
        + _bullets(bullets)
        + "\nDo not force every signal into every section; one well-placed signal beats several shoehorned ones."
    )


def build_section_prompt(
    brief: ContentBrief,
    node: OutlineItem,
    ctx: GenerationContext,
    *,
    content_so_far: str,
    upcoming_headings: Sequence[str],
    section_index: int,
    budget: Optional[WordBudget] = None,
    words_so_far: int = 0,
) -> Prompt:
    """Prompt for the body of one outline node. Reasoning fields are stripped from the brief."""
    section = [
        f"- Heading: {node.heading}",
        f"- Keywords to include: {', '.join(node.targeted_keywords) or 'none specified'}",
        "- Guidelines:",
        "\n".join(f"  - {g}" for g in node.guidelines) or "  - (none)",
    ]
    extras: List[str] = []

    snippet = node.featured_snippet_target
    if snippet is not None and snippet.is_target:
        extras.append(snippet_instructions(snippet.format, snippet.target_query, node.heading))

    if node.additional_resources:
        placeholders = "\n".join(f"<!-- [RESOURCE: {r}] -->" for r in node.additional_resources)
        extras.append(
            "MEDIA PLACEHOLDERS. Insert these comments where each resource would best support the text:\n"
            + placeholders
        )

    if budget is not None:
        extras.append(_budget_instructions(budget, ctx.length.global_target, words_so_far))

    eeat = _eeat_instructions(brief)
    if eeat:
        extras.append(eeat)

    if brief.validation is not None and brief.validation.improvements:
        imps = relevant_improvements(brief.validation.improvements, node.heading, section_index)
        if imps:
            extras.append(
                "BRIEF QUALITY ISSUES. A review of the brief found these gaps; compensate where relevant:\n"
                + _bullets([f"{i.section}: {i.issue} -> {i.suggestion}" for i in imps])
            )

    window = content_so_far[-CONTENT_WINDOW_CHARS:] if content_so_far else ""
    upcoming = "\n".join(upcoming_headings[:UPCOMING_HEADINGS]) or "This is the last section."

    user = _join(
        _block("Content brief (JSON, reasoning removed)", _json(drop_keys(strip_reasoning(
            brief.model_dump(exclude_none=True)), ("id",)))),
        _block("Content written so far", window or "(nothing yet)"),
        _block("Section to write now", "\n".join(section)),
        *extras,
        _block("Upcoming headings (for context)", upcoming),
        "Write the body content for this section now.",
    )
    system = get_style_instructions(ctx.writer_instructions) + f"\n\n{language_directive(ctx.language)}"
    return Prompt(system=system, user=user)


def build_trim_prompt(content: str, target_words: int, language: str, heading: str) -> Prompt:
    user = f"""Condense the following section to approximately {target_words} words.

RULES:
- Keep every key fact and main point
- Keep the flow natural and readable
- Cut filler, repetition and wordy phrasing
- Return ONLY the condensed text, no commentary
- Write in {language}

SECTION HEADING: {heading}

CONTENT TO CONDENSE:
{content}

Condensed version (about {target_words} words):"""
    return Prompt(system="You are a precise copy editor.", user=user)


# ---------- brief review ----------

def build_brief_validation_prompt(brief: ContentBrief, language: str) -> Prompt:
    user = f"""Review this completed content brief for quality and strategic alignment.

BRIEF:
{brief_for_prompt(brief, keep_reasoning=False)}

Score each criterion from 1 to 5 with a short explanation:
1. search_intent_alignment: does the structure match the search intent and the format that ranks?
2. table_stakes_coverage: does the outline cover EVERY table-stakes topic from the gap analysis?
3. strategic_opportunities: does the outline exploit the strategic opportunities? Is the differentiation clear?
4. keyword_integration: are primary keywords in the H1, title and key headings, secondaries spread through?
5. competitive_advantage: would this brief produce something better than the top competitors, and why?

Also return an overall_score (1-5), concrete 'improvements' ({{section, issue, suggestion}}), 'strengths', and
'ready_for_writing'."""
    system = f"You are a senior SEO editor reviewing content briefs.\n\n{language_directive(language)}"
    return Prompt(system=system, user=user)


def build_eeat_prompt(brief: ContentBrief, language: str) -> Prompt:
    topic = {
        "page_goal": brief.page_goal.value if brief.page_goal else None,
        "target_audience": brief.target_audience.value if brief.target_audience else None,
        "primary_keywords": [k.keyword for k in brief.keyword_strategy.primary_keywords] if brief.keyword_strategy else [],
    }
    insights = strip_reasoning(brief.competitor_insights.model_dump()) if brief.competitor_insights else {}
    user = f"""Recommend E-E-A-T signals for this content, based on the topic and the competitive analysis.

TOPIC & CONTEXT:
{_json(topic)}

COMPETITOR INSIGHTS:
{_json(insights)}

- experience: how the content can show first-hand experience (original screenshots, anecdotes, testing, case studies)
- expertise: what expertise the author should demonstrate (credentials, industry experience, specialist knowledge)
- authority: authoritative sources to cite (official docs, research, industry leaders, statistics)
- trust: trust signals to include (last-updated date, methodology, disclosures, fact-checking)

Return specific, actionable recommendations for each, plus overall 'reasoning'."""
    system = f"You are an SEO content strategist specialising in E-E-A-T.\n\n{language_directive(language)}"
    return Prompt(system=system, user=user)


# ---------- content validation ----------

CONTENT_VALIDATION_SYSTEM = """You are an expert SEO content editor doing quality assurance.
You compare generated content with the brief it was written from and propose improvements.

- Flag only issues that really affect quality, SEO or the reader
- Give specific, actionable changes quoting the exact text to replace
- Judge sections in the context of the whole article
- Prioritise by impact: critical, then warning, then suggestion

Your whole response must be valid JSON matching the schema."""


def _severity_block() -> str:
    return "\n".join(f"- {k}: {v}" for k, v in SEVERITY_GUIDELINES.items())


def build_content_validation_prompt(
    brief: ContentBrief,
    article: str,
    *,
    target_words: Optional[int],
    strict: bool,
    instructions: str = "",
    language: str = "English",
) -> Prompt:
    extra = _block("Additional instructions from the user", instructions.strip()) if instructions.strip() else ""
    user = _join(
        "TASK: validate the generated content against its brief.",
        _block("Content brief (source of truth)", brief_for_prompt(brief)),
        _block("Generated content", article),
        _block("Length constraints", f"Target word count: {target_words or 'none'}\nStrict mode: {strict}"),
        extra,
        """VALIDATION CRITERIA:
1. briefAlignment (1-100): does each section follow its guidelines? Are the brief's key points and angles covered,
   in the intended tone?
2. paragraphLengths (1-100): are paragraphs sensibly sized and varied? Any walls of text?
3. totalWordCount: actual vs target; is the content comprehensive enough?
4. keywordUsage (1-100): primary keywords in headings and body, secondaries spread naturally, no stuffing?
5. structureAdherence (1-100): does the content follow the outline hierarchy with every planned section?""",
        f"""OUTPUT:
- Score each category with an explanation, and give overallScore as the weighted average
  (alignment 30%, structure 25%, keywords 20%, paragraphs 15%, word count 10%).
- Propose specific changes, each with a unique id ("change-1", "change-2", ...), the exact current text, the
  replacement text and the reasoning. Order them critical first, then warnings, then suggestions.
- Finish with a short 'summary'.

SEVERITY:
{_severity_block()}""",
    )
    return Prompt(system=CONTENT_VALIDATION_SYSTEM + f"\n\n{language_directive(language)}", user=user)


def build_followup_validation_prompt(
    brief: ContentBrief,
    article: str,
    previous: Dict[str, Any],
    instructions: str,
    language: str = "English",
) -> Prompt:
    user = _join(
        "TASK: re-validate the content taking the user's feedback into account.",
        _block("Previous validation result", _json(previous)),
        _block("User feedback / instructions", _or_none(instructions)),
        _block("Content brief (source of truth)", brief_for_prompt(brief)),
        _block("Generated content", article),
        """Re-evaluate with particular attention to what the user raised and propose new changes for it.
- Keep earlier changes the user has not addressed
- Update scores if the feedback shows issues you missed
- Use change ids that do not clash with the previous result""",
    )
    return Prompt(system=CONTENT_VALIDATION_SYSTEM + f"\n\n{language_directive(language)}", user=user)


# ---------- templates ----------

def build_template_extraction_prompt(content: str, language: str) -> Prompt:
    user = f"""Extract the HEADING STRUCTURE of this content, nothing else.

Return {{"headings": [...]}} as a flat list in document order where each entry has
- level: 1 for H1, 2 for H2, 3 for H3, 4 for H4
- text: the heading text exactly as written

CONTENT:
{content[:TEMPLATE_CONTENT_CHARS]}"""
    return Prompt(system=f"You analyse document structure.\n\n{language_directive(language)}", user=user)


def build_adapt_headings_prompt(headings: List[HeadingNode], source: str, new_topic: str, language: str) -> Prompt:
    flat = [{"level": h.level, "text": h.text} for h in headings]
    user = f"""Adapt these headings from their original topic to a new one.
Keep the hierarchy and order; change only the topic-specific wording. For each entry add 'adapted_text' and
optionally a few 'guidelines' for the writer.

Original source: {source}
New topic: {new_topic}

Headings:
{_json({"headings": flat})}"""
    return Prompt(system=f"You adapt article templates.\n\n{language_directive(language)}", user=user)


# ---------- editing ----------

REWRITE_INSTRUCTIONS = {
    "rewrite": "Rewrite the text below keeping its meaning, making it clearer, more engaging and better written.",
    "expand": "Expand the text below with more detail, examples or explanation, keeping the same tone.",
    "shorten": "Shorten the text below, keeping the key information. Be concise.",
}


def build_paragraph_prompt(
    section: str, paragraph: str, before: str, after: str, feedback: str,
    guidelines: Sequence[str], language: str,
) -> Prompt:
    user = _join(
        _block("Section heading", section),
        _block("Section guidelines from the brief", _bullets(guidelines)),
        _block("Paragraph to rewrite", paragraph),
        _block("Content before this paragraph", before or "(start of article)"),
        _block("Content after this paragraph", after or "(end of article)"),
        _block("User feedback", feedback),
        "Rewrite ONLY the target paragraph following the feedback. Keep the tone and style of the section and make "
        "it flow with its neighbours. Return only the new paragraph.",
    )
    return Prompt(system=f"You are editing one paragraph of a longer article.\n\n{language_directive(language)}", user=user)


def build_rewrite_prompt(action: str, text: str, context: str, language: str, instruction: str = "") -> Prompt:
    if action == "custom":
        head = instruction.strip()
        if not head:
            raise ValueError("A custom rewrite needs an instruction.")
    elif action in REWRITE_INSTRUCTIONS:
        head = REWRITE_INSTRUCTIONS[action]
    else:
        raise ValueError(f"Unknown rewrite action: {action}")
    user = f"{head}\n\nTEXT:\n{text}\n\nCONTEXT:\n{context or '(none)'}\n\nReturn only the new text."
    return Prompt(system=f"You are a skilled editor.\n\n{language_directive(language)}", user=user)


def build_optimizer_prompt(
    article: str, instructions: str, brief: ContentBrief, language: str,
    target_words: Optional[int] = None, metrics_context: str = "",
) -> Prompt:
    parts = [
        _block("Content brief", brief_for_prompt(brief)),
        _block("Current article (markdown)", article),
    ]
    if metrics_context:
        parts.append(_block("Current article metrics", metrics_context))
    parts.append(_block("What to change", instructions))
    if target_words:
        parts.append(f"Keep the article within +/-10% of {target_words} words.")
    parts.append("Return the full revised article in markdown, keeping the heading structure unless asked otherwise.")
    return Prompt(
        system=_join(
            "You are an expert editor optimising a finished article against its content brief.",
            "Rules:\n- Return ONLY the full article in markdown, starting with the # H1.\n"
            "- Keep the heading structure unless the instructions ask otherwise.\n"
            "- Integrate the brief's keywords naturally.\n"
            "- No commentary before or after the article.",
            language_directive(language),
        ),
        user=_join(*parts),
    )
