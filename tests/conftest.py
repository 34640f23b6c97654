from __future__ import annotations

import threading
from typing import Any, Callable

import pytest
import requests

from languages import get_language
from wikipedia import WikiClient


class FakeResponse:
    def __init__(self, payload: Any = None, status_code: int = 200, content: bytes = b"") -> None:
        self._payload = payload
        self.status_code = status_code
        self.content = content

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


class FakeSession:
    """Stands in for requests.Session; ``handler(url, params)`` returns a FakeResponse or raises."""

    def __init__(self, handler: Callable[[str, dict], FakeResponse]) -> None:
        self.handler = handler
        self.calls: list[tuple[str, dict]] = []
        self._lock = threading.Lock()
        self.closed = False

    def get(self, url: str, params: dict | None = None, **kwargs: Any) -> FakeResponse:
        with self._lock:
            self.calls.append((url, dict(params or {})))
        return self.handler(url, dict(params or {}))

    def api_calls(self, **match: str) -> list[dict]:
        return [
            params
            for _, params in self.calls
            if all(params.get(key) == value for key, value in match.items())
        ]

    def close(self) -> None:
        self.closed = True


def make_page(page_id: int, thumbnail: bool = True, **overrides: Any) -> dict:
    page = {
        "pageid": page_id,
        "ns": 0,
        "title": f"Article {page_id}",
        "extract": f"Summary of article {page_id}.",
        "canonicalurl": f"https://en.wikipedia.org/wiki/Article_{page_id}",
        "varianttitles": {"en": f"Article {page_id}"},
    }
    if thumbnail:
        page["thumbnail"] = {
            "source": f"https://upload.wikimedia.org/thumb/{page_id}.jpg",
            "width": 800,
            "height": 600,
        }
    page.update(overrides)
    return page


class FakeWiki:
    """Serves category listings, page details and images from in-memory tables."""

    def __init__(
        self,
        pages: dict[str, list[int]] | None = None,
        subcats: dict[str, list[str]] | None = None,
        details: dict[int, dict] | None = None,
    ) -> None:
        self.pages = pages or {}
        self.subcats = subcats or {}
        self.details = details
        self.failing_categories: set[str] = set()
        self.malformed_categories: set[str] = set()
        self.fail_details = False
        self.fail_images = False

    def __call__(self, url: str, params: dict) -> FakeResponse:
        if not url.endswith("api.php"):
            if self.fail_images:
                raise requests.ConnectionError("image host down")
            return FakeResponse(content=b"image-bytes")

        if params.get("list") == "categorymembers":
            title = params["cmtitle"]
            if title in self.failing_categories:
                return FakeResponse({"error": {"code": "internal", "info": "boom"}})
            if title in self.malformed_categories:
                return FakeResponse({"query": {"categorymembers": [{"ns": 0, "title": "No id"}]}})
            if params["cmtype"] == "page":
                members = [{"pageid": pid, "ns": 0, "title": f"Article {pid}"} for pid in self.pages.get(title, [])]
            else:
                members = [{"pageid": 0, "ns": 14, "title": name} for name in self.subcats.get(title, [])]
            return FakeResponse({"batchcomplete": "", "query": {"categorymembers": members}})

        if "pageids" in params:
            if self.fail_details:
                raise requests.ConnectionError("network down")
            ids = [int(pid) for pid in params["pageids"].split("|")]
            pages = {}
            for pid in ids:
                if self.details is not None and pid in self.details:
                    pages[str(pid)] = self.details[pid]
                elif self.details is None:
                    pages[str(pid)] = make_page(pid)
            return FakeResponse({"batchcomplete": "", "query": {"pages": pages}})

        raise AssertionError(f"unexpected request {params}")


@pytest.fixture
def language():
    return get_language("en")


@pytest.fixture
def make_client(language):
    def _make(handler: Callable[[str, dict], FakeResponse]) -> tuple[WikiClient, FakeSession]:
        session = FakeSession(handler)
        return WikiClient(language, session=session), session

    return _make
