# briefsmith/content_guidelines.py
"""
Static writing and analysis guidance shared by the prompt builders.
Nothing here talks to a model; it is plain data plus small text renderers.
"""
from typing import Dict, List, Optional

# Reasoning effort per logical stage; the session can override it for all stages.
THINKING_LEVEL_BY_STAGE: Dict[int, str] = {
    1: "high",    # intent, goal & audience
    2: "high",    # keyword strategy
    3: "high",    # competitor analysis
    4: "high",    # content gaps
    5: "high",    # outline
    6: "medium",  # FAQs
    7: "low",     # on-page SEO
}

TRIM_THINKING_BUDGET_LEVEL = "minimal"

GUIDELINES = {
    "analysis": {
        "starred_competitors": (
            "Competitors flagged with 'is_starred': true were hand-picked as strong examples. "
            "Weight them well above the others, borrow from their structure and angle, and say in "
            "your 'reasoning' fields when a starred page shaped a decision."
        ),
        "weighted_score": "Each competitor carries a 'Weighted_Score'; higher means stronger rankings across the keyword set.",
    },
    "writing": {
        "tone": "profound, engaging and expert",
        "body_only": "Write only the body of the current section. Never repeat its heading.",
        "flow": "Continue naturally from the content written so far and set up the next heading.",
    },
    "on_page_limits": {
        "title_tag": 60,
        "meta_description": 160,
        "og_title": 60,
        "og_description": 200,
    },
}

SNIPPET_FORMAT_RULES: Dict[str, str] = {
    "paragraph": "Open with a direct 40-60 word answer to the query in the first one or two sentences.",
    "list": "Structure the answer as a numbered or bulleted list of 5-8 clear, actionable items.",
    "table": "Present the information as a markdown table with clear column headers.",
}

RESOURCE_KINDS: List[str] = [
    "infographic",
    "custom illustration or diagram",
    "video",
    "interactive tool",
    "calculator",
    "custom photography",
    "data visualization",
]

SEVERITY_GUIDELINES = {
    "critical": "missing key sections, major keyword gaps, completely wrong tone, factual errors",
    "warning": "overlong paragraphs, minor keyword issues, slight drift from the section guidelines",
    "suggestion": "style improvements, optional enhancements, small readability tweaks",
}

# Weights of the content validation categories; they sum to 1.
VALIDATION_WEIGHTS: Dict[str, float] = {
    "brief_alignment": 0.30,
    "structure_adherence": 0.25,
    "keyword_usage": 0.20,
    "paragraph_lengths": 0.15,
    "total_word_count": 0.10,
}


def language_directive(language: str) -> str:
    return (
        f"LANGUAGE: every piece of text you produce, including all JSON string values "
        f"('value', 'reasoning', 'notes', 'heading', ...), MUST be written in {language}."
    )


def snippet_instructions(fmt: str, target_query: Optional[str], heading: str) -> str:
    query = target_query or heading
    return (
        "FEATURED SNIPPET TARGET:\n"
        f'Optimise this section to win the featured snippet for: "{query}"\n'
        f"Format the answer as a {fmt.upper()}.\n"
        f"- {SNIPPET_FORMAT_RULES.get(fmt, SNIPPET_FORMAT_RULES['paragraph'])}"
    )


def get_style_instructions(writer_instructions: str = "") -> str:
    """Writer-facing rules, plus any free-form instructions from the user."""
    w = GUIDELINES["writing"]
    out = f"""You are an expert content writer producing one section of a longer article in a {w['tone']} voice.

RULES:
1. You receive the content brief, the article written so far and the outline item to write now.
2. The section guidelines are your primary directive; follow them closely.
3. {w['body_only']}
4. {w['flow']}
5. Respond with the section text only (one or more paragraphs): no titles, no commentary."""
    if writer_instructions and writer_instructions.strip():
        out += (
            "\n\nADDITIONAL WRITER INSTRUCTIONS (style, tone, etc.). Follow these throughout:\n"
            f"---\n{writer_instructions.strip()}\n---"
        )
    return out
