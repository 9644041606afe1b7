"""
Tests for thread data models.
"""

import pytest


class TestItemFromDict:
    """Test item-store payload parsing."""

    def test_full_comment_payload(self):
        from hn_sentiment.models.thread_models import Item

        item = Item.from_dict({
            "id": 2921983, "type": "comment", "by": "norvig", "time": 1314211127,
            "text": "Aw shucks", "parent": 2921506, "kids": [2922097, 2922429],
        })

        assert item.id == 2921983
        assert item.by == "norvig"
        assert item.parent == 2921506
        assert item.kids == [2922097, 2922429]
        assert item.deleted is False
        assert item.dead is False

    def test_deleted_payload_defaults(self):
        """Deleted items carry only id, type, time and the deleted flag."""
        from hn_sentiment.models.thread_models import Item

        item = Item.from_dict({"id": 5, "type": "comment", "deleted": True, "time": 10})

        assert item.by is None
        assert item.text is None
        assert item.kids == []
        assert item.deleted is True

    def test_missing_id_raises(self):
        from hn_sentiment.models.thread_models import Item

        with pytest.raises(KeyError):
            Item.from_dict({"type": "comment"})


class TestAnalysisEffectiveScore:
    """Test the score fallback mapping."""

    @pytest.mark.parametrize("sentiment,expected", [("promoter", 9), ("neutral", 7), ("detractor", 3)])
    def test_fallback_when_score_absent(self, sentiment, expected):
        from hn_sentiment.models.thread_models import Analysis

        assert Analysis(sentiment=sentiment).effective_score == expected

    def test_explicit_score_wins(self):
        from hn_sentiment.models.thread_models import Analysis

        assert Analysis(sentiment="promoter", intensity_score=10).effective_score == 10

    def test_non_finite_score_falls_back(self):
        from hn_sentiment.models.thread_models import Analysis

        assert Analysis(sentiment="detractor", intensity_score=float("nan")).effective_score == 3


class TestCommentNodeEligibility:
    """Test which comments can be analyzed."""

    @pytest.mark.parametrize("text,deleted,dead,expected", [
        ("hello", False, False, True),
        ("", False, False, False),
        ("hello", True, False, False),
        ("hello", False, True, False),
    ])
    def test_is_analyzable(self, text, deleted, dead, expected):
        from hn_sentiment.models.thread_models import CommentNode

        node = CommentNode(id=1, parent_id=None, author="a", time=0, text=text, deleted=deleted, dead=dead)

        assert node.is_analyzable is expected
