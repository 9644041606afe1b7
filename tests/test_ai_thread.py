"""
Tests for thread-level statistics, question suggestion and summary.
"""

import pytest
from unittest.mock import AsyncMock

from tests.helpers import make_analysis, make_node


def _post(**overrides):
    from hn_sentiment.models.thread_models import HNPost

    fields = dict(id=1000, title="Show HN: A tiny database", author="founder", time=0)
    fields.update(overrides)
    return HNPost(**fields)


class TestComputeThreadStats:
    """Test aggregation of annotations."""

    def test_counts_and_nps(self, sample_tree):
        """Promoters 2, neutrals 2, detractors 2 over 6 analyzed gives 0."""
        from hn_sentiment.ai_thread import compute_thread_stats

        stats = compute_thread_stats(sample_tree)

        assert stats.analyzable_count == 7
        assert stats.analyzed_count == 6
        assert (stats.promoters, stats.neutrals, stats.detractors) == (2, 2, 2)
        assert stats.nps_score == 0

    def test_nps_rounded(self):
        from hn_sentiment.ai_thread import compute_thread_stats

        tree = [
            make_node(1, analysis=make_analysis("promoter", 9)),
            make_node(2, analysis=make_analysis("promoter", 10)),
            make_node(3, analysis=make_analysis("detractor", 1)),
        ]

        assert compute_thread_stats(tree).nps_score == 33

    def test_empty_tree(self):
        from hn_sentiment.ai_thread import compute_thread_stats

        stats = compute_thread_stats([])

        assert stats.analyzed_count == 0
        assert stats.nps_score == 0
        assert stats.top_keywords == []

    def test_ineligible_nodes_not_counted(self):
        """An analysis on a deleted node is ignored."""
        from hn_sentiment.ai_thread import compute_thread_stats

        tree = [make_node(1, deleted=True, analysis=make_analysis("promoter"))]

        stats = compute_thread_stats(tree)

        assert stats.analyzable_count == 0
        assert stats.analyzed_count == 0

    def test_top_keywords_case_insensitive_first_spelling(self):
        from hn_sentiment.ai_thread import compute_thread_stats

        tree = [
            make_node(1, analysis=make_analysis(keywords=["SQLite", "speed"])),
            make_node(2, analysis=make_analysis(keywords=["sqlite", "Durability"])),
            make_node(3, analysis=make_analysis(keywords=["speed", "sqlite"])),
        ]

        stats = compute_thread_stats(tree)

        assert stats.top_keywords == ["SQLite", "speed", "Durability"]

    def test_top_keywords_limited(self):
        from hn_sentiment.ai_thread import compute_thread_stats

        tree = [make_node(i, analysis=make_analysis(keywords=[f"kw{i}"])) for i in range(12)]

        assert compute_thread_stats(tree).top_keywords == [f"kw{i}" for i in range(8)]


class TestSuggestSentimentQuestion:
    """Test the AI-suggested sentiment question."""

    @pytest.mark.asyncio
    async def test_returns_cleaned_completion(self):
        from hn_sentiment.ai_thread import suggest_sentiment_question

        client = AsyncMock()
        client.send_chat_completion.return_value = {'content': '"Tiny databases are worth building"\n', 'usage': {}}

        question = await suggest_sentiment_question(client, _post(), [], model="openai/gpt-5-mini")

        assert question == "Tiny databases are worth building"
        assert client.send_chat_completion.call_args[1]['model'] == "openai/gpt-5-mini"

    @pytest.mark.asyncio
    async def test_prompt_uses_first_five_root_comments(self):
        from hn_sentiment.ai_thread import suggest_sentiment_question

        client = AsyncMock()
        client.send_chat_completion.return_value = {'content': 'Statement', 'usage': {}}
        comments = [make_node(i, text=f"comment number {i}") for i in range(1, 8)]

        await suggest_sentiment_question(client, _post(), comments)

        prompt = client.send_chat_completion.call_args[0][0]
        assert "comment number 5" in prompt
        assert "comment number 6" not in prompt

    @pytest.mark.asyncio
    async def test_failure_falls_back_to_title_question(self):
        from hn_sentiment.ai_thread import suggest_sentiment_question
        from hn_sentiment.utils.errors import WarningsCollector

        client = AsyncMock()
        client.send_chat_completion.side_effect = RuntimeError("provider down")
        warnings = WarningsCollector()

        question = await suggest_sentiment_question(client, _post(), [], warnings=warnings)

        assert question == '"A tiny database" is a good/positive thing'
        assert len(warnings.by_type("question_generation_failed")) == 1

    @pytest.mark.asyncio
    async def test_empty_answer_falls_back(self):
        from hn_sentiment.ai_thread import suggest_sentiment_question

        client = AsyncMock()
        client.send_chat_completion.return_value = {'content': '  ', 'usage': {}}

        question = await suggest_sentiment_question(client, _post(title="Is Go boring?"), [])

        assert question == "Is Go boring?"


class TestSummarizeThread:
    """Test the AI thread summary."""

    @pytest.mark.asyncio
    async def test_prompt_contains_stats(self, sample_tree):
        from hn_sentiment.ai_thread import summarize_thread

        client = AsyncMock()
        client.send_chat_completion.return_value = {'content': ' Opinions are split. ', 'usage': {}}

        summary = await summarize_thread(client, "SQLite is enough", sample_tree)

        assert summary == "Opinions are split."
        prompt = client.send_chat_completion.call_args[0][0]
        assert "SQLite is enough" in prompt
        assert "analyzed: 6 of 7 analyzable comments" in prompt
        assert "promoters 2, neutral 2, detractors 2" in prompt
        assert "{{" not in prompt

    @pytest.mark.asyncio
    async def test_nothing_analyzed_skips_call(self):
        from hn_sentiment.ai_thread import summarize_thread

        client = AsyncMock()

        assert await summarize_thread(client, "q", [make_node(1)]) is None
        client.send_chat_completion.assert_not_called()

    @pytest.mark.asyncio
    async def test_failure_returns_none_with_warning(self, sample_tree):
        from hn_sentiment.ai_thread import summarize_thread
        from hn_sentiment.utils.errors import WarningsCollector

        client = AsyncMock()
        client.send_chat_completion.side_effect = RuntimeError("timeout")
        warnings = WarningsCollector()

        assert await summarize_thread(client, "q", sample_tree, warnings=warnings) is None
        assert len(warnings.by_type("thread_summary_failed")) == 1
