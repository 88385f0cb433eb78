# briefsmith/schemas.py
"""
JSON schemas sent to the backend as structured-output constraints.

All stage schemas are versioned together; bump SCHEMA_VERSION whenever a shape
changes so stored briefs can be told apart.
"""
from typing import Any, Dict

SCHEMA_VERSION = "2"

# ---------- building blocks ----------

def _str(desc: str = "") -> Dict[str, Any]:
    return {"type": "string", "description": desc} if desc else {"type": "string"}


def _str_list(desc: str = "") -> Dict[str, Any]:
    out: Dict[str, Any] = {"type": "array", "items": {"type": "string"}}
    if desc:
        out["description"] = desc
    return out


def _obj(properties: Dict[str, Any], required=None) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": properties,
        "required": list(required if required is not None else properties.keys()),
    }


REASONING_ITEM = _obj({"value": _str(), "reasoning": _str()})


def _reasoning_item(value_schema: Dict[str, Any]) -> Dict[str, Any]:
    return _obj({"value": value_schema, "reasoning": _str()})


# ---------- stage 1 ----------

GOAL_SCHEMA = _obj({
    "search_intent": _obj({
        "type": {
            "type": "string",
            "enum": ["informational", "transactional", "navigational", "commercial_investigation"],
        },
        "preferred_format": _str("e.g. listicle, how-to guide, comparison table"),
        "serp_features": _str_list("SERP features to target, e.g. featured snippet, People Also Ask"),
        "reasoning": _str(),
    }),
    "page_goal": REASONING_ITEM,
    "target_audience": REASONING_ITEM,
})

# ---------- stage 2 ----------

_KEYWORD = _obj({"keyword": _str(), "notes": _str()})

KEYWORDS_SCHEMA = _obj({
    "keyword_strategy": _obj({
        "primary_keywords": {"type": "array", "items": _KEYWORD},
        "secondary_keywords": {"type": "array", "items": _KEYWORD},
        "reasoning": _str(),
    }),
})

# ---------- stage 3 ----------

COMPETITORS_SCHEMA = _obj({
    "competitor_insights": _obj({
        "competitor_breakdown": {
            "type": "array",
            "items": _obj({
                "url": _str(),
                "description": _str(),
                "good_points": _str_list(),
                "bad_points": _str_list(),
            }),
        },
        "differentiation_summary": REASONING_ITEM,
    }),
})

# ---------- stage 4 ----------

CONTENT_GAPS_SCHEMA = _obj({
    "content_gap_analysis": _obj({
        "table_stakes": {"type": "array", "items": REASONING_ITEM},
        "strategic_opportunities": {"type": "array", "items": REASONING_ITEM},
        "reasoning": _str(),
    }),
})

# ---------- stage 5 ----------

_SNIPPET = _obj(
    {
        "is_target": {"type": "boolean"},
        "format": {"type": "string", "enum": ["paragraph", "list", "table"]},
        "target_query": _str(),
    },
    required=["is_target", "format"],
)

_NODE_PROPS: Dict[str, Any] = {
    "level": _str("H2, Hero, Conclusion, H3 or H4"),
    "heading": _str(),
    "guidelines": _str_list(),
    "reasoning": _str(),
    "targeted_keywords": _str_list(),
    "competitor_coverage": _str_list(),
    "additional_resources": _str_list("Images, tables, charts or embeds that would strengthen the section"),
    "featured_snippet_target": _SNIPPET,
    "target_word_count": {"type": "integer"},
}
_NODE_REQUIRED = ["level", "heading", "guidelines", "reasoning", "targeted_keywords", "competitor_coverage"]


def _outline_node(depth: int) -> Dict[str, Any]:
    # Nesting is spelled out level by level; the deepest level has no children.
    props = dict(_NODE_PROPS)
    if depth > 1:
        props["children"] = {"type": "array", "items": _outline_node(depth - 1)}
    return _obj(props, required=_NODE_REQUIRED)


OUTLINE_MAX_DEPTH = 3

OUTLINE_SCHEMA = _obj({
    "article_structure": _obj({
        "word_count_target": {"type": "integer"},
        "outline": {"type": "array", "items": _outline_node(OUTLINE_MAX_DEPTH)},
        "reasoning": _str(),
    }),
})

# ---------- stage 6 ----------

FAQS_SCHEMA = _obj({
    "faqs": _obj({
        "questions": {
            "type": "array",
            "items": _obj({"question": _str(), "guidelines": _str_list()}),
        },
        "reasoning": _str(),
    }),
})

# ---------- stage 7 ----------

ON_PAGE_SEO_SCHEMA = _obj({
    "on_page_seo": _obj({
        "title_tag": REASONING_ITEM,
        "meta_description": REASONING_ITEM,
        "h1": REASONING_ITEM,
        "url_slug": REASONING_ITEM,
        "og_title": REASONING_ITEM,
        "og_description": REASONING_ITEM,
    }),
})

# ---------- brief review ----------

BRIEF_REVIEW_CRITERIA = (
    "search_intent_alignment",
    "table_stakes_coverage",
    "strategic_opportunities",
    "keyword_integration",
    "competitive_advantage",
)

BRIEF_VALIDATION_SCHEMA = _obj({
    "scores": _obj({
        k: _obj({"score": {"type": "integer", "minimum": 1, "maximum": 5}, "explanation": _str()})
        for k in BRIEF_REVIEW_CRITERIA
    }),
    "overall_score": {"type": "integer", "minimum": 1, "maximum": 5},
    "improvements": {
        "type": "array",
        "items": _obj({"section": _str(), "issue": _str(), "suggestion": _str()}),
    },
    "strengths": _str_list(),
    "ready_for_writing": {"type": "boolean"},
})

EEAT_SCHEMA = _obj({
    "experience": _str_list(),
    "expertise": _str_list(),
    "authority": _str_list(),
    "trust": _str_list(),
    "reasoning": _str(),
})

# ---------- templates ----------

# structured output needs an object at the top level, so the flat list is wrapped
HEADING_TREE_SCHEMA = _obj({
    "headings": {
        "type": "array",
        "items": _obj(
            {
                "level": {"type": "integer"},
                "text": _str(),
                "adapted_text": _str(),
                "guidelines": _str_list(),
            },
            required=["level", "text"],
        ),
    },
})

# ---------- content validation ----------

_CATEGORY = _obj({"score": {"type": "integer", "minimum": 1, "maximum": 100}, "explanation": _str()})

CONTENT_VALIDATION_SCHEMA = _obj({
    "overallScore": {"type": "integer"},
    "scores": _obj({
        "briefAlignment": _CATEGORY,
        "paragraphLengths": _CATEGORY,
        "totalWordCount": _obj({
            "actual": {"type": "integer"},
            "target": {"type": "integer"},
            "score": {"type": "integer"},
            "explanation": _str(),
        }, required=["explanation"]),
        "keywordUsage": _CATEGORY,
        "structureAdherence": _CATEGORY,
    }),
    "proposedChanges": {
        "type": "array",
        "items": _obj(
            {
                "id": _str(),
                "type": {
                    "type": "string",
                    "enum": ["alignment", "length", "paragraph_length", "missing_keyword", "structure", "tone"],
                },
                "severity": {"type": "string", "enum": ["critical", "warning", "suggestion"]},
                "location": _obj(
                    {"sectionHeading": _str(), "paragraphIndex": {"type": "integer"}},
                    required=[],
                ),
                "description": _str(),
                "currentText": _str("Exact text from the article to replace"),
                "proposedText": _str(),
                "reasoning": _str(),
            },
            required=["id", "type", "severity", "description", "reasoning"],
        ),
    },
    "summary": _str(),
})
