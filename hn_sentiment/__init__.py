"""Hacker News thread sentiment analysis: comment-tree discovery and concurrent enrichment."""

__version__ = "0.1.0"
