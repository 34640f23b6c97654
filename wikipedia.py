from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
import re
from typing import Any, Iterable

import requests

from config import (
    CATEGORY_NAMESPACE,
    CATEGORY_PAGE_LIMIT,
    EXTRACT_SENTENCES,
    REQUEST_TIMEOUT,
    SEARCH_LIMIT,
    THUMB_SIZE,
    USER_AGENT,
)
from languages import Language

logger = logging.getLogger(__name__)

CATEGORY_PREFIX = "Category:"


class MemberKind(str, Enum):
    PAGE = "page"
    SUBCAT = "subcat"


class WikiApiError(Exception):
    """Error object reported in a MediaWiki response body."""

    def __init__(self, code: str, info: str) -> None:
        super().__init__(f"{info} [{code}]")
        self.code = code
        self.info = info


@dataclass
class Thumbnail:
    source: str
    width: int
    height: int


@dataclass
class ArticleRecord:
    page_id: int
    title: str
    display_title: str
    extract: str
    thumbnail: Thumbnail
    url: str


def _clean_text(text: str) -> str:
    text = re.sub(r"\[\d+\]", "", text)
    text = re.sub(r"\s+", " ", text).strip()
    return text


def normalize_category(title: str) -> str:
    title = title.strip()
    if title.lower().startswith(CATEGORY_PREFIX.lower()):
        return CATEGORY_PREFIX + title[len(CATEGORY_PREFIX):].strip()
    return CATEGORY_PREFIX + title


def parse_article(page: dict[str, Any], variant: str) -> ArticleRecord | None:
    """Build a record from one ``query.pages`` entry, or None if it is unusable.

    Pages without an id, title, extract, canonical URL or thumbnail source are
    dropped: the feed has no placeholder for any of them. So are pages whose
    fields have the wrong shape.
    """
    try:
        page_id = page.get("pageid")
        title = page.get("title")
        extract = _clean_text(page.get("extract") or "")
        url = page.get("canonicalurl")
        thumb = page.get("thumbnail") or {}
        if not page_id or not title or not extract or not url or not thumb.get("source"):
            return None

        variants = page.get("varianttitles") or {}
        return ArticleRecord(
            page_id=int(page_id),
            title=title,
            display_title=variants.get(variant) or title,
            extract=extract,
            thumbnail=Thumbnail(
                source=thumb["source"],
                width=int(thumb.get("width") or 0),
                height=int(thumb.get("height") or 0),
            ),
            url=url,
        )
    except (AttributeError, TypeError, ValueError) as e:
        logger.debug("Skipping malformed page: %s", e)
        return None


class WikiClient:
    """Read-only MediaWiki client covering category listing, search and page details."""

    def __init__(self, language: Language, session: requests.Session | None = None) -> None:
        self.language = language
        self._session = session or requests.Session()

    @property
    def variant(self) -> str:
        return self.language.id

    def _get(self, url: str, params: dict[str, Any] | None = None) -> requests.Response:
        response = self._session.get(
            url,
            params=params,
            timeout=REQUEST_TIMEOUT,
            headers={"User-Agent": USER_AGENT},
        )
        response.raise_for_status()
        return response

    def _query(self, params: dict[str, Any]) -> dict[str, Any]:
        data = self._get(self.language.api, params).json()
        error = data.get("error")
        if error:
            raise WikiApiError(error.get("code", "unknown"), error.get("info", "API error"))
        return data

    def list_category_members(self, category: str, kind: MemberKind) -> list[int] | list[str]:
        """Return every member of ``category`` of the given kind, following continuation."""
        params: dict[str, Any] = {
            "action": "query",
            "format": "json",
            "list": "categorymembers",
            "cmtype": kind.value,
            "cmtitle": category,
            "cmlimit": str(CATEGORY_PAGE_LIMIT),
            "cmprop": "ids" if kind is MemberKind.PAGE else "title",
        }
        members: list = []
        while True:
            data = self._query(params)
            for member in data.get("query", {}).get("categorymembers", []):
                members.append(member["pageid"] if kind is MemberKind.PAGE else member["title"])
            continue_block = data.get("continue")
            if not continue_block:
                return members
            params = {**params, **continue_block}

    def search_categories(self, term: str) -> list[str]:
        if not term.strip():
            return []
        data = self._query(
            {
                "action": "query",
                "format": "json",
                "list": "search",
                "srsearch": term,
                "srnamespace": str(CATEGORY_NAMESPACE),
                "srlimit": str(SEARCH_LIMIT),
            }
        )
        return [item["title"] for item in data.get("query", {}).get("search", [])]

    def fetch_page_details(self, page_ids: Iterable[int]) -> dict[str, dict[str, Any]]:
        data = self._query(
            {
                "action": "query",
                "format": "json",
                "pageids": "|".join(str(page_id) for page_id in page_ids),
                "prop": "extracts|info|pageimages",
                "inprop": "url|varianttitles",
                "exintro": "1",
                # TextExtracts caps intro extracts at 20 per request; pages past the
                # cap come back without an extract and fail validation.
                "exlimit": "max",
                "exsentences": str(EXTRACT_SENTENCES),
                "explaintext": "1",
                "piprop": "thumbnail",
                "pithumbsize": str(THUMB_SIZE),
                "variant": self.variant,
            }
        )
        return data.get("query", {}).get("pages", {})

    def fetch_image(self, url: str) -> bytes:
        return self._get(url).content

    def close(self) -> None:
        self._session.close()
