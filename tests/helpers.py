"""Builders shared by the test modules.

Item-store lookups are served from an in-memory dict, so no test touches the network.
"""

from hn_sentiment.models.thread_models import Analysis, CommentNode, Item
from hn_sentiment.utils.errors import HNAPIError

STORY_ID = 1000


class FakeItemStore:
    """In-memory stand-in for HNClient.get_item that records every lookup."""

    def __init__(self, items):
        self.items = {item.id: item for item in items}
        self.calls = []
        self.failing_ids = set()

    def get_item(self, item_id):
        self.calls.append(item_id)
        if item_id in self.failing_ids:
            raise HNAPIError(f"boom {item_id}")
        return self.items.get(item_id)


def make_item(item_id, kids=None, parent=STORY_ID, text=None, by="alice", time=0, **kwargs):
    """Build a comment Item with sensible defaults."""
    return Item(
        id=item_id,
        type=kwargs.pop("type", "comment"),
        by=by,
        time=time,
        text=f"comment {item_id}" if text is None else text,
        kids=list(kids or []),
        parent=parent,
        **kwargs
    )


def make_story(kids, story_id=STORY_ID, title="Show HN: A tiny database"):
    return Item(id=story_id, type="story", by="founder", time=1, title=title, kids=list(kids))


def make_node(node_id, children=None, text="text", time=0, analysis=None, deleted=False, dead=False, parent_id=None):
    """Build a CommentNode tree node."""
    return CommentNode(
        id=node_id,
        parent_id=parent_id,
        author=f"user{node_id}",
        time=time,
        text=text,
        deleted=deleted,
        dead=dead,
        children=list(children or []),
        analysis=analysis,
    )


def make_analysis(sentiment="neutral", score=None, keywords=None, summary="summary"):
    return Analysis(sentiment=sentiment, intensity_score=score, summary=summary, keywords=list(keywords or []))


def snapshot(comments):
    """Plain-data snapshot of a tree for structural comparison."""
    return [
        (
            c.id,
            c.parent_id,
            c.author,
            c.time,
            c.text,
            c.deleted,
            c.dead,
            None if c.analysis is None else (
                c.analysis.sentiment,
                c.analysis.intensity_score,
                c.analysis.summary,
                tuple(c.analysis.keywords),
            ),
            snapshot(c.children),
        )
        for c in comments
    ]


def all_nodes(comments):
    """Every node of a tree, depth-first."""
    result = []
    for c in comments:
        result.append(c)
        result.extend(all_nodes(c.children))
    return result


def ids(comments):
    return [c.id for c in comments]
