# briefsmith/outline_editor.py
"""Edit an outline tree by stable node id instead of index paths."""
from typing import Any, List, Optional, Tuple

from briefsmith.errors import OutlineDepthError
from briefsmith.models import OutlineItem
from briefsmith.validators import MAX_OUTLINE_DEPTH, walk

EDITABLE_FIELDS = {
    "heading", "level", "guidelines", "reasoning", "targeted_keywords",
    "competitor_coverage", "additional_resources", "featured_snippet_target", "target_word_count",
}

_CHILD_LEVEL = {"H2": "H3", "Hero": "H3", "Conclusion": "H3", "H3": "H4"}


def _locate(outline: List[OutlineItem], node_id: str) -> Optional[Tuple[List[OutlineItem], int, int]]:
    """(sibling list, index in it, depth) for the node, or None."""
    stack = [(outline, 1)]
    while stack:
        siblings, depth = stack.pop()
        for i, node in enumerate(siblings):
            if node.id == node_id:
                return siblings, i, depth
            stack.append((node.children, depth + 1))
    return None


def find_node(outline: List[OutlineItem], node_id: str) -> Optional[OutlineItem]:
    return next((n for _, n in walk(outline) if n.id == node_id), None)


def update_node(outline: List[OutlineItem], node_id: str, field: str, value: Any) -> OutlineItem:
    if field not in EDITABLE_FIELDS:
        raise ValueError(f"Field '{field}' cannot be edited.")
    node = find_node(outline, node_id)
    if node is None:
        raise KeyError(node_id)
    # validate through the model so bad values fail here rather than later
    updated = OutlineItem.model_validate({**node.model_dump(), field: value})
    setattr(node, field, getattr(updated, field))
    return node


def remove_node(outline: List[OutlineItem], node_id: str) -> OutlineItem:
    """Remove a node and its subtree."""
    loc = _locate(outline, node_id)
    if loc is None:
        raise KeyError(node_id)
    siblings, idx, _ = loc
    return siblings.pop(idx)


def add_node(outline: List[OutlineItem], heading: str = "New Section", parent_id: Optional[str] = None) -> OutlineItem:
    if parent_id is None:
        node = OutlineItem(level="H2", heading=heading)
        outline.append(node)
        return node
    loc = _locate(outline, parent_id)
    if loc is None:
        raise KeyError(parent_id)
    siblings, idx, depth = loc
    if depth + 1 > MAX_OUTLINE_DEPTH:
        raise OutlineDepthError(heading, depth + 1, MAX_OUTLINE_DEPTH)
    parent = siblings[idx]
    node = OutlineItem(level=_CHILD_LEVEL.get(parent.level, "H4"), heading=heading)
    parent.children.append(node)
    return node


def move_node(outline: List[OutlineItem], node_id: str, delta: int) -> None:
    """Move a node among its siblings, clamped to the ends."""
    loc = _locate(outline, node_id)
    if loc is None:
        raise KeyError(node_id)
    siblings, idx, _ = loc
    new = max(0, min(len(siblings) - 1, idx + delta))
    siblings.insert(new, siblings.pop(idx))
