"""Tunable settings for the article feed."""

from __future__ import annotations

import os


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    return int(raw) if raw else default


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    return float(raw) if raw else default


# --- Feed ---
BATCH_SIZE = _int_env("WIKIFEED_BATCH_SIZE", 40)
SUBCAT_SAMPLE_SIZE = _int_env("WIKIFEED_SUBCAT_SAMPLE_SIZE", 5)
# Start prefetching once the reader is this many cards from the end
ADVANCE_THRESHOLD = 2

# --- MediaWiki API ---
CATEGORY_PAGE_LIMIT = 500  # max cmlimit for regular clients
SEARCH_LIMIT = 15
CATEGORY_NAMESPACE = 14
THUMB_SIZE = _int_env("WIKIFEED_THUMB_SIZE", 800)
EXTRACT_SENTENCES = 5
REQUEST_TIMEOUT = _float_env("WIKIFEED_REQUEST_TIMEOUT", 8.0)
USER_AGENT = "wiki-feed/0.1 (python requests)"

# --- Thumbnails ---
THUMBNAIL_CACHE_SIZE = 200

# --- UI ---
SEARCH_DEBOUNCE_S = 0.35
DEFAULT_LANGUAGE = os.environ.get("WIKIFEED_LANGUAGE", "en")
