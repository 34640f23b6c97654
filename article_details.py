from __future__ import annotations

import asyncio
from collections import OrderedDict
from dataclasses import dataclass, field
import logging
from typing import Sequence

import requests

from config import THUMBNAIL_CACHE_SIZE
from wikipedia import ArticleRecord, WikiApiError, WikiClient, parse_article

logger = logging.getLogger(__name__)


class ThumbnailCache:
    """Bounded LRU of downloaded thumbnail bytes, keyed by source URL."""

    def __init__(self, client: WikiClient, max_entries: int = THUMBNAIL_CACHE_SIZE) -> None:
        self.client = client
        self.max_entries = max_entries
        self._images: OrderedDict[str, bytes] = OrderedDict()

    def __len__(self) -> int:
        return len(self._images)

    def get(self, url: str) -> bytes | None:
        data = self._images.get(url)
        if data is not None:
            self._images.move_to_end(url)
        return data

    def _put(self, url: str, data: bytes) -> None:
        self._images[url] = data
        self._images.move_to_end(url)
        while len(self._images) > self.max_entries:
            self._images.popitem(last=False)

    async def preload(self, urls: Sequence[str]) -> int:
        """Download every URL concurrently and wait for all to settle; returns successes."""
        pending = [url for url in dict.fromkeys(urls) if url not in self._images]
        results = await asyncio.gather(
            *(asyncio.to_thread(self.client.fetch_image, url) for url in pending),
            return_exceptions=True,
        )
        loaded = 0
        for url, result in zip(pending, results):
            if isinstance(result, BaseException):
                logger.debug("Preload failed for %s: %s", url, result)
                continue
            self._put(url, result)
            loaded += 1
        return loaded


@dataclass
class DetailBatch:
    records: list[ArticleRecord] = field(default_factory=list)
    ok: bool = True  # the detail request itself succeeded


class ArticleDetailFetcher:
    def __init__(self, client: WikiClient, thumbnails: ThumbnailCache | None = None) -> None:
        self.client = client
        self.thumbnails = thumbnails or ThumbnailCache(client)

    async def fetch_details(self, page_ids: Sequence[int]) -> list[ArticleRecord]:
        return (await self.fetch_batch(page_ids)).records

    async def fetch_batch(self, page_ids: Sequence[int]) -> DetailBatch:
        """Hydrate ``page_ids`` with one request and warm their thumbnails.

        Request failures are logged and reported as an empty batch with
        ``ok=False``; they never propagate.
        """
        if not page_ids:
            return DetailBatch()

        try:
            pages = await asyncio.to_thread(self.client.fetch_page_details, page_ids)
        except (requests.RequestException, WikiApiError, ValueError) as e:
            logger.warning("Error fetching article details: %s", e)
            return DetailBatch(ok=False)
        except Exception:
            logger.exception("Unexpected error fetching article details")
            return DetailBatch(ok=False)
        if not isinstance(pages, dict):
            logger.warning("Unexpected article details payload: %r", type(pages).__name__)
            return DetailBatch(ok=False)

        order = {page_id: i for i, page_id in enumerate(page_ids)}
        records = [
            record
            for record in (parse_article(page, self.client.variant) for page in pages.values())
            if record is not None
        ]
        records.sort(key=lambda record: order.get(record.page_id, len(order)))
        dropped = len(pages) - len(records)
        if dropped:
            logger.debug("Dropped %d incomplete pages", dropped)

        await self.thumbnails.preload([record.thumbnail.source for record in records])
        return DetailBatch(records=records)
