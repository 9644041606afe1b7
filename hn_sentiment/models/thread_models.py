"""Hacker News thread data models for HN Sentiment.

This module defines the data structures used throughout the discovery pipeline
(item store -> comment tree) and the enrichment pipeline (comment tree -> annotated tree).

Data Models:
    Item: raw item-store record, read-only
    HNPost: the story being analyzed
    Analysis: per-comment enrichment result
    CommentNode: one comment in the discussion tree

A discussion tree is a plain ``List[CommentNode]``: the ordered root comments
directly under the analyzed post, each owning its subtree through ``children``.

Sentiment vocabulary follows the NPS scale the inference prompt asks for:
promoter (supportive), neutral, detractor (opposing).
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


SENTIMENT_PROMOTER = "promoter"
SENTIMENT_NEUTRAL = "neutral"
SENTIMENT_DETRACTOR = "detractor"

VALID_SENTIMENTS = (SENTIMENT_PROMOTER, SENTIMENT_NEUTRAL, SENTIMENT_DETRACTOR)

# Representative intensity for each sentiment when no usable score exists
SENTIMENT_FALLBACK_SCORES = {
    SENTIMENT_PROMOTER: 9,
    SENTIMENT_NEUTRAL: 7,
    SENTIMENT_DETRACTOR: 3,
}

# Inclusive intensity band for each sentiment
SENTIMENT_SCORE_BANDS = {
    SENTIMENT_PROMOTER: (9, 10),
    SENTIMENT_NEUTRAL: (7, 8),
    SENTIMENT_DETRACTOR: (0, 6),
}

DELETED_AUTHOR = "[deleted]"


def fallback_score(sentiment: Optional[str]) -> int:
    """Return the representative intensity for a sentiment (neutral when unknown)."""
    return SENTIMENT_FALLBACK_SCORES.get(sentiment, SENTIMENT_FALLBACK_SCORES[SENTIMENT_NEUTRAL])


@dataclass
class Item:
    """A raw record from the item store.

    Attributes:
        id: Positive integer item id
        type: Item kind ("story", "comment", "job", "poll", "pollopt")
        by: Author username (absent for deleted items)
        time: Creation time in epoch seconds
        text: HTML body text
        kids: Ordered child ids, in the item store's display order
        parent: Parent item id
        deleted: Item was deleted by its author
        dead: Item was killed by moderation
        title: Story title
        url: Story link
        score: Story points
        descendants: Total comment count reported by the item store
    """
    id: int
    type: Optional[str] = None
    by: Optional[str] = None
    time: int = 0
    text: Optional[str] = None
    kids: List[int] = field(default_factory=list)
    parent: Optional[int] = None
    deleted: bool = False
    dead: bool = False
    title: Optional[str] = None
    url: Optional[str] = None
    score: Optional[int] = None
    descendants: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Item":
        """Build an Item from the item store's JSON payload, ignoring unknown keys."""
        return cls(
            id=int(data["id"]),
            type=data.get("type"),
            by=data.get("by"),
            time=int(data.get("time") or 0),
            text=data.get("text"),
            kids=[int(k) for k in (data.get("kids") or [])],
            parent=data.get("parent"),
            deleted=bool(data.get("deleted", False)),
            dead=bool(data.get("dead", False)),
            title=data.get("title"),
            url=data.get("url"),
            score=data.get("score"),
            descendants=data.get("descendants"),
        )


@dataclass
class HNPost:
    """The story whose discussion is analyzed."""
    id: int
    title: str
    author: str
    time: int
    score: int = 0
    descendants: int = 0
    url: Optional[str] = None
    text: Optional[str] = None


@dataclass
class Analysis:
    """Enrichment result attached to a comment.

    Attributes:
        sentiment: One of VALID_SENTIMENTS
        intensity_score: Integer 0-10 inside the sentiment's band, or None
        summary: Short summary of the comment's main point
        keywords: Up to 5 phrases, in provider order
    """
    sentiment: str
    intensity_score: Optional[int] = None
    summary: str = ""
    keywords: List[str] = field(default_factory=list)

    @property
    def effective_score(self) -> int:
        """Intensity score, falling back to the sentiment's representative value."""
        score = self.intensity_score
        if isinstance(score, (int, float)) and not isinstance(score, bool) and math.isfinite(score):
            return int(score)
        return fallback_score(self.sentiment)


@dataclass
class CommentNode:
    """One comment in the discussion tree.

    ``parent_id`` is None for a direct reply to the analyzed post. ``children``
    keeps the item store's ordering of the parent's ``kids`` list. ``analysis``
    is the only field written after construction.
    """
    id: int
    parent_id: Optional[int]
    author: str
    time: int
    text: str
    deleted: bool = False
    dead: bool = False
    children: List["CommentNode"] = field(default_factory=list)
    analysis: Optional[Analysis] = None

    @property
    def is_analyzable(self) -> bool:
        """True when the comment has text and is neither deleted nor dead."""
        return bool(self.text) and not self.deleted and not self.dead
