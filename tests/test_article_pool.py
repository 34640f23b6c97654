import random
from collections import Counter

from article_pool import build_pool, collect_subcategories, sample_subcategories, select_batch
from category_cache import ResolverCache
from wikipedia import MemberKind


def _cache(pages=None, subcats=None, failed=()):
    cache = ResolverCache()
    for title, ids in (pages or {}).items():
        cache.store(title, MemberKind.PAGE, ids)
    for title, names in (subcats or {}).items():
        cache.store(title, MemberKind.SUBCAT, names)
    for title in failed:
        cache.mark_error(title, MemberKind.PAGE)
    return cache


def test_sample_subcategories_is_bounded():
    names = [f"Category:{i}" for i in range(100)]

    sample = sample_subcategories(names, sample_size=5, rng=random.Random(1))

    assert len(sample) == 5
    assert len(set(sample)) == 5
    assert set(sample) <= set(names)


def test_sample_subcategories_smaller_than_sample_size():
    assert sorted(sample_subcategories(["a", "b"], sample_size=5)) == ["a", "b"]
    assert sample_subcategories([], sample_size=5) == []


def test_sample_subcategories_does_not_mutate_input():
    names = ["a", "b", "c", "d"]
    sample_subcategories(names, sample_size=2, rng=random.Random(3))
    assert names == ["a", "b", "c", "d"]


def test_sample_first_element_is_roughly_uniform():
    rng = random.Random(42)
    counts = Counter(sample_subcategories(["a", "b", "c"], 1, rng)[0] for _ in range(3000))
    assert set(counts) == {"a", "b", "c"}
    assert all(800 < n < 1200 for n in counts.values())


def test_collect_subcategories_dedups_across_roots():
    cache = _cache(subcats={"Category:A": ["Category:X", "Category:Y"], "Category:B": ["Category:Y", "Category:Z"]})
    cache.mark_error("Category:C", MemberKind.SUBCAT)

    names = collect_subcategories(cache, ["Category:A", "Category:B", "Category:C", "Category:D"])

    assert names == ["Category:X", "Category:Y", "Category:Z"]


def test_build_pool_dedups_and_skips_failures():
    cache = _cache(
        pages={"Category:Physics": [1, 2, 3], "Category:Quantum mechanics": [3, 4]},
        failed=["Category:Optics"],
    )

    pool = build_pool(cache, ["Category:Physics"], ["Category:Quantum mechanics", "Category:Optics", "Category:Unknown"])

    assert pool == {1, 2, 3, 4}


def test_build_pool_empty_when_nothing_resolved():
    assert build_pool(ResolverCache(), ["Category:Physics"], []) == set()


def test_select_batch_excludes_shown_ids():
    pool = set(range(1, 11))
    shown = {1, 2, 3, 4, 5}

    batch = select_batch(pool, shown, batch_size=10, rng=random.Random(0))

    assert sorted(batch.page_ids) == [6, 7, 8, 9, 10]
    assert not batch.reset


def test_select_batch_is_bounded():
    pool = set(range(100))

    assert len(select_batch(pool, set(), batch_size=40).page_ids) == 40
    assert len(select_batch(pool, set(range(90)), batch_size=40).page_ids) == 10
    assert select_batch(set(), set(), batch_size=40).page_ids == []


def test_select_batch_does_not_mutate_arguments():
    pool = {1, 2, 3}
    shown = {1, 2, 3}

    select_batch(pool, shown, batch_size=2)

    assert pool == {1, 2, 3}
    assert shown == {1, 2, 3}


def test_select_batch_resets_when_pool_exhausted():
    pool = {1, 2, 3, 4}
    shown = set()
    seen = []
    while len(seen) < len(pool):
        batch = select_batch(pool, shown, batch_size=3, rng=random.Random(len(seen)))
        assert not batch.reset
        seen.extend(batch.page_ids)
        shown.update(batch.page_ids)
    assert sorted(seen) == [1, 2, 3, 4]

    batch = select_batch(pool, shown, batch_size=3)

    assert batch.reset
    assert len(batch.page_ids) == 3
    assert set(batch.page_ids) <= pool


def test_select_batch_with_seed_is_reproducible():
    pool = set(range(50))
    first = select_batch(pool, set(), 10, random.Random(7)).page_ids
    second = select_batch(pool, set(), 10, random.Random(7)).page_ids
    assert first == second


def test_physics_scenario():
    cache = _cache(
        pages={"Category:Physics": [1, 2, 3], "Category:Quantum mechanics": [3, 4]},
        subcats={"Category:Physics": ["Category:Quantum mechanics"]},
    )
    roots = ["Category:Physics"]
    sampled = sample_subcategories(collect_subcategories(cache, roots), sample_size=1)
    assert sampled == ["Category:Quantum mechanics"]

    pool = build_pool(cache, roots, sampled)
    assert pool == {1, 2, 3, 4}

    batch = select_batch(pool, set(), batch_size=3)
    assert len(batch.page_ids) == 3
    assert len(set(batch.page_ids)) == 3
    assert set(batch.page_ids) <= pool
