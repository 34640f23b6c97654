from __future__ import annotations

import asyncio
from enum import Enum
import logging

import requests

from wikipedia import MemberKind, WikiApiError, WikiClient

logger = logging.getLogger(__name__)


class FetchStatus(Enum):
    UNATTEMPTED = "unattempted"
    PENDING = "pending"
    DONE = "done"
    ERROR = "error"


class ResolverCache:
    """Category members and fetch status, keyed by (category, kind).

    A failed resolution stores an explicit None so it can be told apart from a
    key that was never attempted.
    """

    def __init__(self) -> None:
        self._members: dict[tuple[str, MemberKind], list | None] = {}
        self._status: dict[tuple[str, MemberKind], FetchStatus] = {}

    def __contains__(self, key: tuple[str, MemberKind]) -> bool:
        return key in self._members

    def status(self, category: str, kind: MemberKind) -> FetchStatus:
        return self._status.get((category, kind), FetchStatus.UNATTEMPTED)

    def get(self, category: str, kind: MemberKind) -> list | None:
        return self._members.get((category, kind))

    def mark_pending(self, category: str, kind: MemberKind) -> None:
        self._status[(category, kind)] = FetchStatus.PENDING

    def store(self, category: str, kind: MemberKind, members: list) -> None:
        self._members[(category, kind)] = members
        self._status[(category, kind)] = FetchStatus.DONE

    def mark_error(self, category: str, kind: MemberKind) -> None:
        self._members[(category, kind)] = None
        self._status[(category, kind)] = FetchStatus.ERROR


class CategoryMemberResolver:
    def __init__(self, client: WikiClient, cache: ResolverCache | None = None) -> None:
        self.client = client
        self.cache = cache or ResolverCache()

    async def resolve_page_ids(self, category: str) -> list[int] | None:
        return await self._resolve(category, MemberKind.PAGE)

    async def resolve_subcategories(self, category: str) -> list[str] | None:
        return await self._resolve(category, MemberKind.SUBCAT)

    async def _resolve(self, category: str, kind: MemberKind) -> list | None:
        status = self.cache.status(category, kind)
        if status is FetchStatus.DONE:
            logger.debug("Cache hit for %s (%s)", category, kind.value)
            return self.cache.get(category, kind)
        if status is FetchStatus.PENDING:
            logger.debug("Fetch already pending for %s (%s)", category, kind.value)
            return None

        self.cache.mark_pending(category, kind)
        logger.info("Fetching %ss for %s", kind.value, category)
        try:
            members = await asyncio.to_thread(self.client.list_category_members, category, kind)
            self.cache.store(category, kind, members)
            logger.info("Fetched %d %ss for %s", len(members), kind.value, category)
            return members
        except (requests.RequestException, WikiApiError, ValueError) as e:
            logger.warning("Failed to fetch %ss for %s: %s", kind.value, category, e)
            self.cache.mark_error(category, kind)
            return None
        except Exception:
            logger.exception("Unexpected error fetching %ss for %s", kind.value, category)
            self.cache.mark_error(category, kind)
            return None
        finally:
            if self.cache.status(category, kind) is FetchStatus.PENDING:
                self.cache.mark_error(category, kind)
