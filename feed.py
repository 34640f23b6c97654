from __future__ import annotations

import asyncio
from enum import Enum
import logging
import random
from typing import Sequence

from article_details import ArticleDetailFetcher
from article_pool import build_pool, collect_subcategories, sample_subcategories, select_batch
from category_cache import CategoryMemberResolver
from config import BATCH_SIZE, SUBCAT_SAMPLE_SIZE
from wikipedia import ArticleRecord, WikiClient

logger = logging.getLogger(__name__)


class FeedState(Enum):
    IDLE = "idle"
    PRODUCING = "producing"


class FeedController:
    """Displayed articles plus at most one prefetched batch.

    A production cycle resolves the categories, samples subcategories, builds
    the page id pool, draws an unseen batch and hydrates it. Only one cycle
    runs at a time; it owns the resolver cache and the shown set while it does.
    """

    def __init__(
        self,
        client: WikiClient,
        categories: Sequence[str],
        *,
        batch_size: int = BATCH_SIZE,
        sample_size: int = SUBCAT_SAMPLE_SIZE,
        resolver: CategoryMemberResolver | None = None,
        details: ArticleDetailFetcher | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.categories = list(categories)
        self.batch_size = batch_size
        self.sample_size = sample_size
        self.resolver = resolver or CategoryMemberResolver(client)
        self.details = details or ArticleDetailFetcher(client)
        self.rng = rng
        self.articles: list[ArticleRecord] = []
        self.buffer: list[ArticleRecord] = []
        self.shown: set[int] = set()
        self.state = FeedState.IDLE
        self.for_buffer = False
        self._prefetch: asyncio.Task | None = None

    @property
    def loading(self) -> bool:
        return self.state is FeedState.PRODUCING

    @property
    def prefetching(self) -> bool:
        """A cycle is running and its result will go to the buffer."""
        return self.loading and self.for_buffer

    async def start(self) -> list[ArticleRecord]:
        """Produce the first displayed batch if nothing has been produced yet."""
        if not self.categories or self.articles or self.buffer:
            return []
        return await self._produce(for_buffer=False)

    async def advance(self) -> list[ArticleRecord]:
        """Append the next batch to ``articles`` and return it.

        Uses the prefetched buffer when there is one; otherwise produces a
        batch in the foreground. Either way a new prefetch is started.
        A prefetch that is still running is awaited first.
        """
        if not self.buffer and self._prefetch is not None and not self._prefetch.done():
            await self._prefetch
        if self.buffer:
            batch, self.buffer = self.buffer, []
            self.articles.extend(batch)
            self._start_prefetch()
            return batch
        return await self._produce(for_buffer=False)

    async def wait_idle(self) -> None:
        """Wait for a running prefetch, if any."""
        if self._prefetch is not None:
            await self._prefetch

    def _start_prefetch(self) -> None:
        self._prefetch = asyncio.create_task(self._produce(for_buffer=True))

    async def _produce(self, for_buffer: bool) -> list[ArticleRecord]:
        if self.state is FeedState.PRODUCING:
            logger.debug("Production cycle already running, skipping")
            return []
        if not self.categories:
            return []

        self.state = FeedState.PRODUCING
        self.for_buffer = for_buffer
        try:
            records = await self._run_cycle()
        except Exception:
            logger.exception("Production cycle failed")
            records = []
        finally:
            self.state = FeedState.IDLE

        if not records:
            logger.info("Cycle produced no articles (buffer=%s)", for_buffer)
            return []

        if for_buffer:
            self.buffer = records
        else:
            self.articles.extend(records)
            self._start_prefetch()
        return records

    async def _run_cycle(self) -> list[ArticleRecord]:
        roots = self.categories
        resolver = self.resolver
        await asyncio.gather(
            *(resolver.resolve_page_ids(root) for root in roots),
            *(resolver.resolve_subcategories(root) for root in roots),
        )

        subcats = collect_subcategories(resolver.cache, roots)
        sampled = sample_subcategories(subcats, self.sample_size, self.rng)
        logger.info("Sampled %d of %d subcategories: %s", len(sampled), len(subcats), sampled)
        await asyncio.gather(*(resolver.resolve_page_ids(name) for name in sampled))

        pool = build_pool(resolver.cache, roots, sampled)
        if not pool:
            logger.info("No page ids available for %s", roots)
            return []

        batch = select_batch(pool, self.shown, self.batch_size, self.rng)
        if batch.reset:
            self.shown.clear()

        result = await self.details.fetch_batch(batch.page_ids)
        if result.ok:
            self.shown.update(batch.page_ids)
        logger.info("Selected %d ids from a pool of %d, got %d articles (buffer=%s)",
                    len(batch.page_ids), len(pool), len(result.records), self.for_buffer)
        return result.records
