"""Batched consumption of "changed since" feeds."""

from datetime import datetime
from enum import Enum
from typing import Callable

import structlog

from akeneo_migrator.errors import ChangeStreamError
from akeneo_migrator.models.node import Node
from akeneo_migrator.repository.base import SourceRepository

log = structlog.stdlib.get_logger()

Visitor = Callable[[list[Node]], None]


class ChangeFeed(str, Enum):
    """Populations exposed by distinct source queries."""

    GROUPS = "groups"
    LEAVES = "leaves"


class ChangeStreamProcessor:
    """Pages through a change feed and hands each batch to a visitor.

    At most one batch of ``batch_size`` nodes is handed to the visitor at a
    time and nothing is kept once the visitor returns, so memory use does not
    grow with the size of the feed.
    """

    def __init__(self, source: SourceRepository):
        self._source = source

    def stream_since(
        self,
        feed: ChangeFeed,
        since: datetime,
        batch_size: int,
        visit: Visitor,
    ) -> int:
        """
        Visit every node of ``feed`` modified at or after ``since``.

        Args:
            feed: Which population to stream
            since: Change boundary
            batch_size: Maximum number of nodes per visited batch
            visit: Called synchronously with each batch

        Returns:
            Number of nodes visited

        Raises:
            ValueError: If batch_size is lower than 1
            ChangeStreamError: If the source cannot deliver the next page
            Exception: Whatever ``visit`` raises, unchanged
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")

        stream = (
            self._source.stream_changed_groups
            if feed is ChangeFeed.GROUPS
            else self._source.stream_changed_leaves
        )

        visited = 0
        batches = 0
        visitor_failed = False

        def on_page(page: list[Node]) -> None:
            nonlocal visited, batches, visitor_failed
            # Sources may ignore the requested page size
            for start in range(0, len(page), batch_size):
                batch = page[start : start + batch_size]
                try:
                    visit(batch)
                except BaseException:
                    visitor_failed = True
                    raise
                visited += len(batch)
                batches += 1

        log.info("change_stream_started", feed=feed.value, since=since, batch_size=batch_size)

        try:
            stream(since, batch_size, on_page)
        except Exception as e:
            if visitor_failed:
                raise
            log.error("change_stream_failed", feed=feed.value, batches=batches, error=str(e))
            raise ChangeStreamError(f"error streaming updated {feed.value}: {e}") from e

        log.info("change_stream_completed", feed=feed.value, batches=batches, nodes=visited)
        return visited
