#!/usr/bin/env python3
"""Analyze the sentiment of a Hacker News discussion.

Fetches the story, discovers its full comment tree, annotates every comment
through the configured model and prints the sorted, annotated tree.

Usage:
    python scripts/analyze_thread.py 41780712 [--model MODEL] [--concurrency 8]
        [--sort intensity-desc] [--ai-question | --question TEXT] [--summary] [--yes]

Requires env var: OPENROUTER_API_KEY
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
import time

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from hn_sentiment.config import load_dotenv, load_settings, Settings

load_dotenv(os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), ".env"))

from hn_sentiment.ai_batch import CancelToken, analyze_comments_tree, build_enrich_fn
from hn_sentiment.ai_client import OpenRouterClient
from hn_sentiment.ai_thread import compute_thread_stats, suggest_sentiment_question, summarize_thread
from hn_sentiment.hn import HNClient, TreeDiscoverer, fetch_post, generate_sentiment_question, parse_post_id
from hn_sentiment.models.thread_models import HNPost
from hn_sentiment.prompts import strip_html, truncate
from hn_sentiment.sorting import SORT_DEFAULT, SORT_MODES, analysis_targets, sort_comments_tree
from hn_sentiment.utils.errors import AnalysisCancelled, WarningsCollector
from hn_sentiment.utils.logging_config import get_logger, setup_logging

EXIT_CANCELLED = 130

logger = get_logger(__name__)


def print_tree(comments, depth: int = 0) -> None:
    """Print an annotated tree, one comment per line, indented by depth."""
    for comment in comments:
        indent = "  " * depth
        if comment.analysis is not None:
            label = f"[{comment.analysis.sentiment} {comment.analysis.effective_score}]"
            detail = comment.analysis.summary
        else:
            label = "[-]"
            detail = truncate(strip_html(comment.text), 100) if comment.text else "(no text)"
        print(f"{indent}{label} {comment.author}: {detail}")
        print_tree(comment.children, depth + 1)


def discover(client: HNClient, post: HNPost, warnings: WarningsCollector):
    """Discover the comment tree, reporting a running count."""
    def on_progress(discovered: int) -> None:
        print(f"\r  {discovered} discovered so far", end="", flush=True)

    discoverer = TreeDiscoverer(client.get_item, warnings)
    start_time = time.time()
    comments = discoverer.discover(post.id, on_progress)
    print()
    print(f"Discovery complete in {time.time() - start_time:.1f}s")
    if discoverer.dropped_ids:
        print(f"  Dropped {len(discoverer.dropped_ids)} unresolved or orphaned items")
    return comments


async def run_analysis(
    settings: Settings,
    post: HNPost,
    comments: list,
    args: argparse.Namespace,
    warnings: WarningsCollector
) -> int:
    """Run question selection, enrichment and the optional summary. Returns an exit code."""
    client = OpenRouterClient(api_key=settings.api_key, base_url=settings.inference_base_url)
    cancel_token = CancelToken()

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel_token.cancel)
    except NotImplementedError:
        # Windows event loops don't support signal handlers
        pass

    if args.question:
        question = args.question
    elif args.ai_question:
        print("Asking the model for a sentiment question...")
        question = await suggest_sentiment_question(
            client, post, comments, model=settings.model, warnings=warnings
        )
    else:
        question = generate_sentiment_question(post.title)
    print(f"Sentiment question: {question}")

    def on_progress(done: int, total: int) -> None:
        print(f"\r  {done}/{total} analyzed", end="", flush=True)

    enrich_fn = build_enrich_fn(
        client,
        model=settings.model,
        temperature=settings.temperature,
        cancel_token=cancel_token
    )

    print(f"\nAnalyzing with {settings.model} (concurrency {settings.concurrency}). Ctrl-C to cancel.")
    start_time = time.time()
    try:
        await analyze_comments_tree(
            comments,
            enrich_fn,
            concurrency=settings.concurrency,
            on_progress=on_progress,
            cancel_token=cancel_token,
            warnings=warnings,
            context=question
        )
    except AnalysisCancelled as e:
        print(f"\nAnalysis cancelled after {e.done}/{e.total} comments.")
        return EXIT_CANCELLED
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except NotImplementedError:
            pass

    print(f"\nAnalysis complete in {time.time() - start_time:.1f}s")

    stats = compute_thread_stats(comments)
    print(f"\nPost: {post.title}")
    print(f"  Analyzed: {stats.analyzed_count} of {stats.analyzable_count} comments")
    print(f"  Sentiment: {stats.promoters} promoters, {stats.neutrals} neutral, {stats.detractors} detractors")
    print(f"  NPS-style score: {stats.nps_score}")
    if stats.top_keywords:
        print(f"  Top keywords: {', '.join(stats.top_keywords)}")

    print()
    print_tree(sort_comments_tree(comments, args.sort))

    if args.summary:
        summary = await summarize_thread(client, question, comments, model=settings.model, warnings=warnings)
        if summary:
            print(f"\nSummary:\n{summary}")
        else:
            print("\nSummary unavailable.")

    print(f"\nTokens used: {client.total_tokens}")
    if len(warnings):
        logger.info("run_warnings", post_id=post.id, count=len(warnings), warnings=warnings.to_json())
        print(f"Warnings: {len(warnings)} (see log for details)")
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Analyze the sentiment of a Hacker News discussion"
    )
    parser.add_argument("post", help="Story id or news.ycombinator.com item URL")
    parser.add_argument("--model", default=None, help="Model identifier (default: $HN_SENTIMENT_MODEL or anthropic/claude-haiku-4.5)")
    parser.add_argument("--concurrency", type=int, default=None, help="Maximum root threads analyzed at once (default: 8)")
    parser.add_argument("--sort", choices=SORT_MODES, default=SORT_DEFAULT, help="Display order of the annotated tree")
    question_group = parser.add_mutually_exclusive_group()
    question_group.add_argument("--ai-question", action="store_true", help="Let the model suggest the sentiment question")
    question_group.add_argument("--question", default=None, help="Sentiment question to evaluate comments against")
    parser.add_argument("--summary", action="store_true", help="Generate an AI summary of the thread")
    parser.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")
    args = parser.parse_args()

    try:
        settings = load_settings()
    except ValueError as e:
        print(f"Error: {e}")
        print("Set it in your .env file or export it in your shell.")
        sys.exit(1)

    if args.model:
        settings.model = args.model
    if args.concurrency is not None:
        if args.concurrency < 1:
            print("Error: --concurrency must be at least 1")
            sys.exit(1)
        settings.concurrency = args.concurrency

    setup_logging(log_dir=settings.log_dir, console_level=logging.WARNING, console_stream=sys.stderr)

    post_id = parse_post_id(args.post)
    if post_id is None:
        print(f"Error: Could not find a story id in {args.post!r}")
        sys.exit(1)

    hn_client = HNClient(base_url=settings.hn_base_url)
    post = fetch_post(hn_client, post_id)
    if post is None:
        print(f"Error: Story {post_id} not found")
        sys.exit(1)

    print(f"{post.title} ({post.descendants} comments reported)")
    warnings = WarningsCollector()

    try:
        comments = discover(hn_client, post, warnings)
    except KeyboardInterrupt:
        print("\nDiscovery cancelled.")
        sys.exit(EXIT_CANCELLED)

    targets = analysis_targets(comments)
    print(f"  {len(targets)} comments to analyze ({len(comments)} top-level threads)")

    if not targets:
        print("\nNothing to analyze.")
        return

    if not args.yes:
        response = input("\nProceed with analysis? [y/N] ").strip().lower()
        if response not in ("y", "yes"):
            print("Aborted.")
            return

    sys.exit(asyncio.run(run_analysis(settings, post, comments, args, warnings)))


if __name__ == "__main__":
    main()
