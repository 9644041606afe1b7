"""Concurrent enrichment of a discussion tree.

This module annotates every eligible comment of a tree with an Analysis,
including:
- A bounded pool of workers claiming root comments from a shared cursor
- Strict parent-before-children processing inside each root's subtree
- Retry logic for malformed responses and rate limits
- Cooperative cancellation checked before claiming a root and before each call

Key Functions:
    analyze_comments_tree: Main orchestrator; mutates the tree in place
    process_comment_with_retry: Retry handler for individual comments
    build_enrich_fn: Binds an inference client into an enrichment function
    calculate_backoff_delay: Rate limit backoff schedule

Workers are asyncio tasks on one event loop. The only suspension points are
the enrichment calls, so the root cursor, the set of claimed nodes and the
``done`` counter are updated without any await in between and need no lock.
"""

import asyncio
import threading
from typing import Any, Awaitable, Callable, List, Optional, Set

import structlog
from openai import RateLimitError

from hn_sentiment.ai_parser import MalformedResponseError, parse_analysis_response
from hn_sentiment.config import DEFAULT_CONCURRENCY, DEFAULT_MODEL, DEFAULT_TEMPERATURE
from hn_sentiment.models.thread_models import Analysis, CommentNode
from hn_sentiment.prompts import DEFAULT_ANALYSIS_PROMPT_TEMPLATE, build_analysis_prompt
from hn_sentiment.sorting import analysis_targets
from hn_sentiment.utils.errors import (
    AnalysisCancelled,
    EnrichmentError,
    WarningsCollector,
    WARNING_TYPE_COMMENT_ANALYSIS_FAILED,
)

logger = structlog.get_logger()

EnrichFn = Callable[[str, str], Awaitable[Optional[Analysis]]]
ProgressCallback = Callable[[int, int], None]


class CancelToken:
    """Cooperative cancellation signal shared by one analysis run.

    ``cancel`` may be called from any thread (e.g. a signal handler) and any
    number of times; cancelling a finished run has no effect.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    async def sleep(self, delay: float, poll_interval: float = 0.05) -> bool:
        """Sleep for ``delay`` seconds, waking early once cancelled.

        Returns:
            True if the token was cancelled before the delay elapsed
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + delay
        while not self.is_cancelled:
            remaining = deadline - loop.time()
            if remaining <= 0:
                return False
            await asyncio.sleep(min(poll_interval, remaining))
        return True


def calculate_backoff_delay(attempt: int, base_delay: float = 1.0, max_delay: float = 30.0) -> float:
    """Calculate exponential backoff delay for retry attempts.

    Implements exponential backoff: base_delay * 2^attempt, capped at max_delay.
    Used for rate limit retries in process_comment_with_retry().

    Args:
        attempt: Retry attempt number (0-indexed)
        base_delay: Initial delay in seconds (default: 1.0)
        max_delay: Maximum delay cap in seconds (default: 30.0)

    Returns:
        Delay in seconds for this attempt

    Examples:
        >>> calculate_backoff_delay(0)  # First retry
        1.0
        >>> calculate_backoff_delay(2)  # Third retry
        4.0
        >>> calculate_backoff_delay(10)  # Far future retry (capped)
        30.0
    """
    delay = base_delay * (2 ** attempt)
    return min(delay, max_delay)


async def process_comment_with_retry(
    comment_text: str,
    sentiment_question: str,
    client: Any,
    model: str = DEFAULT_MODEL,
    template: str = DEFAULT_ANALYSIS_PROMPT_TEMPLATE,
    temperature: float = DEFAULT_TEMPERATURE,
    comment_id: Optional[int] = None,
    cancel_token: Optional[CancelToken] = None
) -> Analysis:
    """Analyze a single comment with retry logic for malformed JSON and rate limits.

    Retry behaviors:
    - Malformed JSON (MalformedResponseError): Retry once with identical prompt
    - Rate limit (RateLimitError): Retry up to 3 times with exponential backoff [1s, 2s, 4s]
    - Anything else, including an invalid sentiment: no retry

    A retry is a new call, so a cancelled token stops the loop before it is sent.

    Args:
        comment_text: Raw HTML body of the comment
        sentiment_question: Statement the comment is evaluated against
        client: Inference client with an async send_chat_completion method
        model: Model identifier
        template: Analysis prompt template
        temperature: Sampling temperature
        comment_id: Comment id (for logging context only)
        cancel_token: Run's cancellation signal, if any

    Returns:
        Analysis: Parsed analysis

    Raises:
        EnrichmentError: After retries are exhausted or on a non-retryable failure
        AnalysisCancelled: If the run was cancelled before a retry
    """
    prompt = build_analysis_prompt(sentiment_question, comment_text, template)

    # Malformed JSON retry: max 1 retry (2 total attempts)
    max_malformed_retries = 1
    # Rate limit retry: max 3 retries (4 total attempts)
    max_rate_limit_retries = 3

    malformed_attempt = 0
    rate_limit_attempt = 0

    while True:
        if cancel_token is not None and cancel_token.is_cancelled:
            raise AnalysisCancelled()

        try:
            response = await client.send_chat_completion(prompt, model=model, temperature=temperature)
            return parse_analysis_response(response.get('content', ''))

        except MalformedResponseError as e:
            if malformed_attempt < max_malformed_retries:
                malformed_attempt += 1
                logger.info(
                    "malformed_json_retry",
                    retry_attempt=malformed_attempt,
                    comment_id=comment_id,
                    error_type="malformed_json"
                )
                # No backoff delay for malformed JSON (retry immediately)
                continue
            logger.warning(
                "comment_skipped_malformed_json",
                comment_id=comment_id,
                error_message=str(e)
            )
            raise EnrichmentError(f"Malformed response after retry: {e}", comment_id) from e

        except RateLimitError as e:
            if rate_limit_attempt < max_rate_limit_retries:
                delay = calculate_backoff_delay(rate_limit_attempt)
                rate_limit_attempt += 1
                logger.info(
                    "rate_limit_retry",
                    retry_attempt=rate_limit_attempt,
                    comment_id=comment_id,
                    error_type="rate_limit",
                    backoff_delay=delay
                )
                if cancel_token is not None:
                    await cancel_token.sleep(delay)
                else:
                    await asyncio.sleep(delay)
                continue
            logger.warning(
                "comment_skipped_rate_limit",
                comment_id=comment_id,
                max_retries=max_rate_limit_retries
            )
            raise EnrichmentError(f"Rate limited after {max_rate_limit_retries} retries", comment_id) from e

        except Exception as e:
            raise EnrichmentError(f"{type(e).__name__}: {e}", comment_id) from e


def build_enrich_fn(
    client: Any,
    model: str = DEFAULT_MODEL,
    template: str = DEFAULT_ANALYSIS_PROMPT_TEMPLATE,
    temperature: float = DEFAULT_TEMPERATURE,
    cancel_token: Optional[CancelToken] = None
) -> EnrichFn:
    """Return an ``(comment_text, sentiment_question) -> Analysis`` coroutine function."""
    async def enrich(comment_text: str, sentiment_question: str) -> Analysis:
        return await process_comment_with_retry(
            comment_text,
            sentiment_question,
            client,
            model=model,
            template=template,
            temperature=temperature,
            cancel_token=cancel_token
        )

    return enrich


async def analyze_comments_tree(
    comments: List[CommentNode],
    enrich_fn: EnrichFn,
    concurrency: int = DEFAULT_CONCURRENCY,
    on_progress: Optional[ProgressCallback] = None,
    cancel_token: Optional[CancelToken] = None,
    warnings: Optional[WarningsCollector] = None,
    context: str = ""
) -> None:
    """Annotate every eligible comment of the tree in place.

    ``min(concurrency, len(comments))`` workers claim root comments from a
    shared cursor. A worker walks its root's whole subtree depth-first, parent
    before children, before it claims the next root, so nodes of one lineage
    are never analyzed concurrently or out of order. A node reachable under
    more than one parent is analyzed once, by the first worker to reach it;
    the other walk skips it and its subtree.

    A failed enrichment leaves the node without ``analysis`` and still counts
    as processed. Cancellation is the only condition that ends the run early.

    Args:
        comments: Root comments of the tree (mutated: ``analysis`` is set)
        enrich_fn: ``await enrich_fn(text, context)`` returns an Analysis, or
            None when the comment could not be annotated
        concurrency: Maximum number of roots processed at once (default: 8)
        on_progress: Called as ``on_progress(done, total)`` after each processed target
        cancel_token: Cooperative cancellation signal
        warnings: Collector for per-comment failures
        context: Sentiment question passed to every enrichment call

    Raises:
        ValueError: If concurrency is less than 1
        AnalysisCancelled: If the run was cancelled before every target was processed
    """
    if concurrency < 1:
        raise ValueError(f"concurrency must be >= 1, got {concurrency}")

    if cancel_token is None:
        cancel_token = CancelToken()

    total = len(analysis_targets(comments))
    worker_count = min(concurrency, len(comments))
    done = 0
    annotated = 0
    cursor = 0
    claimed: Set[int] = set()

    logger.info(
        "analysis_run_started",
        total=total,
        roots=len(comments),
        workers=worker_count
    )

    async def process_node(node: CommentNode) -> None:
        nonlocal done, annotated
        if cancel_token.is_cancelled or not node.is_analyzable:
            return

        try:
            analysis = await enrich_fn(node.text, context)
        except (AnalysisCancelled, asyncio.CancelledError):
            cancel_token.cancel()
            raise
        except Exception as e:
            logger.warning(
                "comment_analysis_failed",
                comment_id=node.id,
                error_type=type(e).__name__,
                error_message=str(e)
            )
            if warnings is not None:
                warnings.append(
                    WARNING_TYPE_COMMENT_ANALYSIS_FAILED,
                    f"Analysis failed for comment {node.id}",
                    {"comment_id": node.id, "error_type": type(e).__name__}
                )
            analysis = None

        if analysis is not None:
            node.analysis = analysis
            annotated += 1
        done += 1
        if on_progress is not None:
            on_progress(done, total)

    async def walk(node: CommentNode) -> None:
        # A node listed under two parents belongs to whichever worker reaches it first
        if id(node) in claimed:
            return
        claimed.add(id(node))
        await process_node(node)
        for child in node.children:
            if cancel_token.is_cancelled:
                return
            await walk(child)

    async def worker() -> None:
        nonlocal cursor
        while not cancel_token.is_cancelled and cursor < len(comments):
            index = cursor
            cursor += 1
            await walk(comments[index])

    try:
        results = await asyncio.gather(
            *[worker() for _ in range(worker_count)],
            return_exceptions=True
        )
    except asyncio.CancelledError:
        cancel_token.cancel()
        logger.warning("analysis_run_cancelled", done=done, total=total, annotated=annotated)
        raise

    for result in results:
        if isinstance(result, (AnalysisCancelled, asyncio.CancelledError)):
            continue
        if isinstance(result, BaseException):
            raise result

    if cancel_token.is_cancelled and done < total:
        logger.warning("analysis_run_cancelled", done=done, total=total, annotated=annotated)
        raise AnalysisCancelled(done=done, total=total)

    logger.info("analysis_run_complete", done=done, total=total, annotated=annotated)
