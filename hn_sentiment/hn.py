"""Hacker News Integration Module

This module provides the item-store client and the comment-tree discovery that
turns one story's ``kids`` list into a fully nested discussion tree.

Discovery walks the thread breadth-first because a comment's children are only
known once the comment itself has been fetched. The walk decides what gets
fetched; the tree it returns is rebuilt afterwards from each item's own ``kids``
list so sibling order always matches the item store's display order.
"""

import re
from typing import Callable, Dict, List, Optional, Set

import requests
import structlog

from hn_sentiment.config import DEFAULT_HN_BASE_URL
from hn_sentiment.models.thread_models import CommentNode, DELETED_AUTHOR, HNPost, Item
from hn_sentiment.utils.errors import (
    HNAPIError,
    WarningsCollector,
    WARNING_TYPE_ITEM_FETCH_FAILED,
    WARNING_TYPE_ORPHANED_ITEMS_DROPPED,
    retry_with_backoff,
)

logger = structlog.get_logger()

DiscoveryProgressCallback = Callable[[int], None]


class HNClient:
    """Read-only client for the Hacker News item store.

    Non-success responses and ``null`` payloads are reported as a missing item
    (None). Transport errors are retried with exponential backoff and then
    surface as HNAPIError.

    Example:
        >>> client = HNClient()
        >>> item = client.get_item(8863)
        >>> item.title
        'My YC app: Dropbox - Throw away your USB drive'
    """

    def __init__(
        self,
        base_url: str = DEFAULT_HN_BASE_URL,
        timeout: float = 10.0,
        max_retries: int = 2,
        base_delay: float = 0.5
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.max_retries = max_retries
        self.base_delay = base_delay

    def _request(self, path: str) -> requests.Response:
        """GET a path under the base URL, retrying transport errors.

        Raises:
            HNAPIError: If the request still fails after all retries
        """
        url = f"{self.base_url}/{path}"

        def do_get() -> requests.Response:
            return requests.get(
                url,
                headers={'Accept': 'application/json'},
                timeout=self.timeout
            )

        try:
            return retry_with_backoff(
                do_get,
                max_retries=self.max_retries,
                base_delay=self.base_delay,
                retryable_exceptions=(requests.RequestException,)
            )
        except requests.RequestException as e:
            raise HNAPIError(f"Item store unavailable for {path}: {e}") from e

    def get_item(self, item_id: int) -> Optional[Item]:
        """Fetch one item by id.

        Returns:
            Item, or None when the item store has no record or answers with a
            non-success status

        Raises:
            HNAPIError: On transport failure after retries, or an unreadable payload
        """
        response = self._request(f"item/{item_id}.json")

        if not response.ok:
            logger.warning(
                "item_fetch_non_success",
                item_id=item_id,
                status_code=response.status_code
            )
            return None

        try:
            data = response.json()
        except ValueError as e:
            raise HNAPIError(f"Invalid JSON for item {item_id}: {e}") from e

        if not data:
            return None

        try:
            return Item.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise HNAPIError(f"Unreadable item payload for {item_id}: {e}") from e


class ItemFetchCache:
    """Memoizes item lookups for the lifetime of one discovery run.

    Both hits and misses are stored, so a known-missing id is never fetched
    twice. A failed fetch counts as a miss.
    """

    def __init__(self, fetch_item: Callable[[int], Optional[Item]], warnings: Optional[WarningsCollector] = None):
        self._fetch_item = fetch_item
        self._warnings = warnings
        self._items: Dict[int, Optional[Item]] = {}

    def __contains__(self, item_id: int) -> bool:
        return item_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    def get(self, item_id: int) -> Optional[Item]:
        """Return the cached item, fetching it on first request."""
        if item_id in self._items:
            return self._items[item_id]

        try:
            item = self._fetch_item(item_id)
        except HNAPIError as e:
            logger.warning(
                "item_fetch_failed",
                item_id=item_id,
                error=str(e),
                error_type=type(e).__name__
            )
            if self._warnings is not None:
                self._warnings.append(
                    WARNING_TYPE_ITEM_FETCH_FAILED,
                    f"Failed to fetch item {item_id}",
                    {"item_id": item_id, "error_type": type(e).__name__}
                )
            item = None

        self._items[item_id] = item
        return item

    def peek(self, item_id: int) -> Optional[Item]:
        """Return the stored item without fetching."""
        return self._items.get(item_id)


def _build_node(item: Item, root_id: int) -> CommentNode:
    return CommentNode(
        id=item.id,
        parent_id=None if item.parent == root_id else item.parent,
        author=item.by or DELETED_AUTHOR,
        time=item.time,
        text=item.text or "",
        deleted=item.deleted,
        dead=item.dead,
    )


class TreeDiscoverer:
    """Discovers and rebuilds the comment tree under one story.

    A fresh ItemFetchCache is created for every ``discover`` call.

    Attributes:
        dropped_ids: After a run, ids that were discovered but never became part
            of the returned tree (unresolved, or orphaned by an unresolved parent)
    """

    def __init__(
        self,
        fetch_item: Callable[[int], Optional[Item]],
        warnings: Optional[WarningsCollector] = None
    ):
        self._fetch_item = fetch_item
        self._warnings = warnings
        self.dropped_ids: List[int] = []

    def discover(
        self,
        root_id: int,
        on_progress: Optional[DiscoveryProgressCallback] = None
    ) -> List[CommentNode]:
        """Walk every comment under ``root_id`` and return the ordered root comments.

        Args:
            root_id: Id of the story (or comment) whose replies are collected
            on_progress: Called after each successful fetch with the number of
                ids discovered so far. The total is unknown until the walk ends.

        Returns:
            List[CommentNode]: Root comments in the story's ``kids`` order, each
                with its full subtree. Empty if the root is missing or has no kids.
        """
        self.dropped_ids = []
        cache = ItemFetchCache(self._fetch_item, self._warnings)

        root = cache.get(root_id)
        if root is None or not root.kids:
            logger.info("comments_discovered", root_id=root_id, discovered=0, roots=0)
            return []

        discovered: List[int] = []
        seen: Set[int] = set()
        queue: List[int] = list(root.kids)
        head = 0

        while head < len(queue):
            item_id = queue[head]
            head += 1
            if item_id in seen:
                continue
            seen.add(item_id)
            discovered.append(item_id)

            item = cache.get(item_id)
            if item is None:
                continue
            if item.kids:
                queue.extend(item.kids)
            if on_progress is not None:
                on_progress(len(discovered))

        roots = self._reconstruct(root, discovered, cache)
        return roots

    def _reconstruct(self, root: Item, discovered: List[int], cache: ItemFetchCache) -> List[CommentNode]:
        nodes: Dict[int, CommentNode] = {}
        for item_id in discovered:
            item = cache.peek(item_id)
            if item is None:
                continue
            nodes[item_id] = _build_node(item, root.id)

        for item_id, node in nodes.items():
            item = cache.peek(item_id)
            if not item.kids:
                continue
            node.children = [nodes[kid] for kid in item.kids if kid in nodes]

        roots = [nodes[kid] for kid in root.kids if kid in nodes]

        reachable: Set[int] = set()
        stack = list(roots)
        while stack:
            node = stack.pop()
            if node.id in reachable:
                continue
            reachable.add(node.id)
            stack.extend(node.children)

        self.dropped_ids = [item_id for item_id in discovered if item_id not in reachable]

        if self.dropped_ids:
            logger.info(
                "orphaned_items_dropped",
                root_id=root.id,
                dropped_count=len(self.dropped_ids)
            )
            if self._warnings is not None:
                self._warnings.append(
                    WARNING_TYPE_ORPHANED_ITEMS_DROPPED,
                    f"{len(self.dropped_ids)} discovered items are not part of the tree",
                    {"root_id": root.id, "dropped_ids": list(self.dropped_ids)}
                )

        logger.info(
            "comments_discovered",
            root_id=root.id,
            discovered=len(discovered),
            resolved=len(nodes),
            roots=len(roots)
        )
        return roots


def fetch_comments(
    client: HNClient,
    post_id: int,
    on_progress: Optional[DiscoveryProgressCallback] = None,
    warnings: Optional[WarningsCollector] = None
) -> List[CommentNode]:
    """Discover the full comment tree under a story.

    Convenience wrapper around TreeDiscoverer for one-off runs.
    """
    return TreeDiscoverer(client.get_item, warnings).discover(post_id, on_progress)


def fetch_post(client: HNClient, post_id: int) -> Optional[HNPost]:
    """Fetch a story. Returns None if it is missing or is not a story."""
    try:
        item = client.get_item(post_id)
    except HNAPIError as e:
        logger.warning("post_fetch_failed", post_id=post_id, error=str(e))
        return None

    if item is None or item.type != 'story':
        return None

    return HNPost(
        id=item.id,
        title=item.title or '',
        url=item.url,
        text=item.text,
        author=item.by or DELETED_AUTHOR,
        time=item.time,
        score=item.score or 0,
        descendants=item.descendants or 0,
    )


def parse_post_id(value: str) -> Optional[int]:
    """Extract a story id from a bare number or an item URL.

    Example:
        >>> parse_post_id("https://news.ycombinator.com/item?id=41780712")
        41780712
        >>> parse_post_id("abc") is None
        True
    """
    trimmed = value.strip()
    if re.fullmatch(r'\d+', trimmed):
        return int(trimmed)
    match = re.search(r'[?&]id=(\d+)', trimmed)
    if match:
        return int(match.group(1))
    return None


def generate_sentiment_question(title: str) -> str:
    """Derive a default agree/disagree statement from a story title.

    Launch prefixes are stripped. Questions are kept as they are; any other
    title is framed as a positive claim.
    """
    question = re.sub(r'^(Show HN|Ask HN|Tell HN|Launch HN):\s*', '', title, flags=re.IGNORECASE).strip()
    if not question.endswith('?'):
        question = f'"{question}" is a good/positive thing'
    return question
