from __future__ import annotations

from dataclasses import dataclass
import logging
import random
from typing import Iterable, Sequence

from category_cache import ResolverCache
from config import BATCH_SIZE, SUBCAT_SAMPLE_SIZE
from wikipedia import MemberKind

logger = logging.getLogger(__name__)


@dataclass
class Batch:
    page_ids: list[int]
    reset: bool = False  # pool was exhausted; caller must clear its shown set


def _shuffled(items: Iterable, rng: random.Random | None) -> list:
    # random.shuffle is Fisher-Yates, so every permutation is equally likely
    items = list(items)
    (rng or random).shuffle(items)
    return items


def collect_subcategories(cache: ResolverCache, roots: Sequence[str]) -> list[str]:
    """Subcategory titles of every resolved root, first occurrence wins."""
    names: dict[str, None] = {}
    for root in roots:
        for name in cache.get(root, MemberKind.SUBCAT) or []:
            names.setdefault(name, None)
    return list(names)


def sample_subcategories(
    names: Sequence[str],
    sample_size: int = SUBCAT_SAMPLE_SIZE,
    rng: random.Random | None = None,
) -> list[str]:
    return _shuffled(names, rng)[:sample_size]


def build_pool(cache: ResolverCache, roots: Sequence[str], subcategories: Sequence[str]) -> set[int]:
    """Union of the cached page ids of roots and sampled subcategories.

    Categories that failed or are still pending contribute nothing.
    """
    pool: set[int] = set()
    for category in [*roots, *subcategories]:
        pool.update(cache.get(category, MemberKind.PAGE) or [])
    return pool


def select_batch(
    pool: set[int],
    shown: set[int],
    batch_size: int = BATCH_SIZE,
    rng: random.Random | None = None,
) -> Batch:
    """Draw up to ``batch_size`` unseen ids from ``pool`` in random order.

    Neither argument is mutated. When every id in a non-empty pool has been
    shown the whole pool becomes eligible again and ``Batch.reset`` is set.
    """
    candidates = pool - shown
    reset = False
    if not candidates and pool:
        logger.info("All %d page ids shown, starting over", len(pool))
        candidates = set(pool)
        reset = True
    # sorted first so a seeded rng gives a reproducible order
    return Batch(page_ids=_shuffled(sorted(candidates), rng)[:batch_size], reset=reset)
