"""Ordering and traversal helpers for discussion trees.

sort_comments_tree never mutates its input: every node of the result is a new
object, so the caller can keep the original fetch order for display toggles or
hand the original to an analysis run while showing a sorted copy.
"""

from dataclasses import replace
from typing import Callable, Dict, List

from hn_sentiment.models.thread_models import CommentNode, fallback_score, SENTIMENT_NEUTRAL

SORT_DEFAULT = 'default'
SORT_TIME_ASC = 'time-asc'
SORT_TIME_DESC = 'time-desc'
SORT_INTENSITY_ASC = 'intensity-asc'
SORT_INTENSITY_DESC = 'intensity-desc'

SORT_MODES = (
    SORT_DEFAULT,
    SORT_TIME_ASC,
    SORT_TIME_DESC,
    SORT_INTENSITY_ASC,
    SORT_INTENSITY_DESC,
)


def intensity_score(comment: CommentNode) -> int:
    """Sort key for the intensity modes.

    Uses the analysis score when present, otherwise the sentiment's
    representative value; unanalyzed comments rank as neutral.
    """
    if comment.analysis is None:
        return fallback_score(SENTIMENT_NEUTRAL)
    return comment.analysis.effective_score


_SORT_KEYS: Dict[str, Callable[[CommentNode], int]] = {
    SORT_TIME_ASC: lambda c: c.time,
    SORT_TIME_DESC: lambda c: c.time,
    SORT_INTENSITY_ASC: intensity_score,
    SORT_INTENSITY_DESC: intensity_score,
}

_DESCENDING = {SORT_TIME_DESC, SORT_INTENSITY_DESC}


def _copy_node(comment: CommentNode, children: List[CommentNode]) -> CommentNode:
    analysis = comment.analysis
    if analysis is not None:
        analysis = replace(analysis, keywords=list(analysis.keywords))
    return replace(comment, children=children, analysis=analysis)


def sort_comments_tree(comments: List[CommentNode], mode: str = SORT_DEFAULT) -> List[CommentNode]:
    """Return a deep copy of the tree with every sibling list ordered by ``mode``.

    Each level is sorted independently. Python's sort is stable, so ties keep
    their original relative order; descending modes negate the key instead of
    reversing so ties stay in original order there too.

    Args:
        comments: Root comments of the tree
        mode: One of SORT_MODES

    Returns:
        A new list of new nodes; the input is left untouched

    Raises:
        ValueError: If mode is not a known sort mode
    """
    if mode not in SORT_MODES:
        raise ValueError(f"Invalid sort mode: {mode}. Must be one of {SORT_MODES}")

    key = _SORT_KEYS.get(mode)
    descending = mode in _DESCENDING

    def clone_and_sort(siblings: List[CommentNode]) -> List[CommentNode]:
        cloned = [_copy_node(c, clone_and_sort(c.children)) for c in siblings]
        if key is not None:
            if descending:
                cloned.sort(key=lambda c: -key(c))
            else:
                cloned.sort(key=key)
        return cloned

    return clone_and_sort(comments)


def flatten_comments(comments: List[CommentNode]) -> List[CommentNode]:
    """Depth-first, parent-before-children listing of every node."""
    result: List[CommentNode] = []

    def walk(siblings: List[CommentNode]) -> None:
        for comment in siblings:
            result.append(comment)
            walk(comment.children)

    walk(comments)
    return result


def analysis_targets(comments: List[CommentNode]) -> List[CommentNode]:
    """Every node eligible for enrichment, in depth-first order.

    A node reachable under more than one parent is listed once, at its first
    position.
    """
    seen = set()
    targets: List[CommentNode] = []
    for comment in flatten_comments(comments):
        if id(comment) in seen or not comment.is_analyzable:
            continue
        seen.add(id(comment))
        targets.append(comment)
    return targets
