"""Thread-level analysis: statistics, question suggestion and summary.

These run once per thread, around the per-comment enrichment pass:
- suggest_sentiment_question: before the pass, asks the model for an
  agree/disagree statement built from the post and its top comments
- compute_thread_stats: after the pass, aggregates the annotations
- summarize_thread: after the pass, asks the model for a short prose summary
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import structlog

from hn_sentiment.config import DEFAULT_MODEL
from hn_sentiment.hn import generate_sentiment_question
from hn_sentiment.models.thread_models import (
    CommentNode,
    HNPost,
    SENTIMENT_DETRACTOR,
    SENTIMENT_NEUTRAL,
    SENTIMENT_PROMOTER,
)
from hn_sentiment.prompts import (
    DEFAULT_QUESTION_PROMPT_TEMPLATE,
    DEFAULT_THREAD_SUMMARY_PROMPT_TEMPLATE,
    build_question_prompt,
    render_prompt_template,
)
from hn_sentiment.sorting import analysis_targets
from hn_sentiment.utils.errors import (
    AnalysisCancelled,
    WarningsCollector,
    WARNING_TYPE_QUESTION_GENERATION_FAILED,
    WARNING_TYPE_THREAD_SUMMARY_FAILED,
)

logger = structlog.get_logger()

TOP_KEYWORDS_LIMIT = 8
QUESTION_CONTEXT_COMMENTS = 5


@dataclass
class ThreadStats:
    """Aggregate sentiment for one analyzed thread.

    Attributes:
        analyzable_count: Comments eligible for analysis
        analyzed_count: Comments that received an analysis
        promoters: Analyzed comments with promoter sentiment
        neutrals: Analyzed comments with neutral sentiment
        detractors: Analyzed comments with detractor sentiment
        nps_score: round(100 * (promoters - detractors) / analyzed_count), 0 when nothing is analyzed
        top_keywords: Most frequent keywords (case-insensitive), first-seen spelling
    """
    analyzable_count: int = 0
    analyzed_count: int = 0
    promoters: int = 0
    neutrals: int = 0
    detractors: int = 0
    nps_score: int = 0
    top_keywords: List[str] = field(default_factory=list)


def compute_thread_stats(comments: List[CommentNode], keyword_limit: int = TOP_KEYWORDS_LIMIT) -> ThreadStats:
    """Aggregate the annotations of a tree.

    Keywords are counted case-insensitively. Ties keep first-seen order.
    """
    targets = analysis_targets(comments)
    stats = ThreadStats(analyzable_count=len(targets))

    keyword_counts: Dict[str, int] = {}
    keyword_spelling: Dict[str, str] = {}

    for comment in targets:
        analysis = comment.analysis
        if analysis is None:
            continue
        stats.analyzed_count += 1
        if analysis.sentiment == SENTIMENT_PROMOTER:
            stats.promoters += 1
        elif analysis.sentiment == SENTIMENT_NEUTRAL:
            stats.neutrals += 1
        elif analysis.sentiment == SENTIMENT_DETRACTOR:
            stats.detractors += 1

        for keyword in analysis.keywords:
            key = keyword.strip().lower()
            if not key:
                continue
            if key not in keyword_counts:
                keyword_counts[key] = 0
                keyword_spelling[key] = keyword.strip()
            keyword_counts[key] += 1

    if stats.analyzed_count:
        stats.nps_score = round(100 * (stats.promoters - stats.detractors) / stats.analyzed_count)

    # dicts keep insertion order and sorted() is stable, so ties stay first-seen
    ranked = sorted(keyword_counts, key=lambda k: -keyword_counts[k])
    stats.top_keywords = [keyword_spelling[k] for k in ranked[:keyword_limit]]

    return stats


def _clean_question(content: str) -> str:
    question = content.strip().splitlines()[0].strip() if content.strip() else ''
    return question.strip('"\'“”').strip()


async def suggest_sentiment_question(
    client: Any,
    post: HNPost,
    comments: List[CommentNode],
    model: str = DEFAULT_MODEL,
    template: str = DEFAULT_QUESTION_PROMPT_TEMPLATE,
    warnings: Optional[WarningsCollector] = None
) -> str:
    """Ask the model for an agree/disagree statement about the thread.

    Uses the post body and URL plus the first few root comments as context.
    Falls back to generate_sentiment_question(post.title) when the call fails
    or the answer is empty.

    Returns:
        str: Statement to evaluate comments against
    """
    prompt = build_question_prompt(post, comments[:QUESTION_CONTEXT_COMMENTS], template)

    try:
        response = await client.send_chat_completion(prompt, model=model)
        question = _clean_question(response.get('content', ''))
    except (AnalysisCancelled, asyncio.CancelledError):
        raise
    except Exception as e:
        logger.warning(
            "question_generation_failed",
            post_id=post.id,
            error_type=type(e).__name__,
            error_message=str(e)
        )
        if warnings is not None:
            warnings.append(
                WARNING_TYPE_QUESTION_GENERATION_FAILED,
                f"Question generation failed for post {post.id}",
                {"post_id": post.id, "error_type": type(e).__name__}
            )
        return generate_sentiment_question(post.title)

    if not question:
        logger.warning("question_generation_empty", post_id=post.id)
        return generate_sentiment_question(post.title)

    logger.info("question_generated", post_id=post.id, question=question)
    return question


async def summarize_thread(
    client: Any,
    sentiment_question: str,
    comments: List[CommentNode],
    model: str = DEFAULT_MODEL,
    template: str = DEFAULT_THREAD_SUMMARY_PROMPT_TEMPLATE,
    warnings: Optional[WarningsCollector] = None
) -> Optional[str]:
    """Ask the model for a short prose summary of the thread's sentiment.

    Returns:
        The summary text, or None when nothing was analyzed or the call failed
    """
    stats = compute_thread_stats(comments)
    if stats.analyzed_count == 0:
        logger.info("thread_summary_skipped", reason="no_analyzed_comments")
        return None

    prompt = render_prompt_template(template, {
        'sentiment_question': sentiment_question,
        'analyzed_count': stats.analyzed_count,
        'analyzable_count': stats.analyzable_count,
        'nps_score': stats.nps_score,
        'promoters': stats.promoters,
        'neutrals': stats.neutrals,
        'detractors': stats.detractors,
        'top_keywords': ', '.join(stats.top_keywords) or 'none',
    })

    try:
        response = await client.send_chat_completion(prompt, model=model)
    except (AnalysisCancelled, asyncio.CancelledError):
        raise
    except Exception as e:
        logger.warning(
            "thread_summary_failed",
            error_type=type(e).__name__,
            error_message=str(e)
        )
        if warnings is not None:
            warnings.append(
                WARNING_TYPE_THREAD_SUMMARY_FAILED,
                "Thread summary generation failed",
                {"error_type": type(e).__name__}
            )
        return None

    summary = (response.get('content') or '').strip()
    return summary or None
