"""Tests for bizdir.explorer — cached listing, ETags, invalidation."""

from unittest.mock import AsyncMock

from bizdir.cache.ttl_cache import create_cache
from bizdir.explorer import ExplorerService, compute_etag, matches_if_none_match
from bizdir.models.explorer import ExplorerQuery
from tests.factories import make_business_input, make_category_input


class TestMatchesIfNoneMatch:
    def test_missing_header(self):
        assert matches_if_none_match(None, 'W/"abc"') is False
        assert matches_if_none_match("", 'W/"abc"') is False

    def test_wildcard(self):
        assert matches_if_none_match(" * ", 'W/"abc"') is True

    def test_list(self):
        assert matches_if_none_match('W/"x", W/"abc"', 'W/"abc"') is True
        assert matches_if_none_match('W/"x"', 'W/"abc"') is False


class TestComputeEtag:
    def test_weak_etag_format(self):
        etag = compute_etag(ExplorerQuery(), 0, 1, "", "")
        assert etag.startswith('W/"')
        assert etag.endswith('"')
        assert "=" not in etag

    def test_stable_for_same_input(self):
        q = ExplorerQuery(search="cafe")
        assert compute_etag(q, 3, 1, "a", "c") == compute_etag(q, 3, 1, "a", "c")

    def test_changes_with_results(self):
        q = ExplorerQuery()
        assert compute_etag(q, 3, 1, "a", "c") != compute_etag(q, 4, 1, "a", "d")


class TestExplorerService:
    async def test_search_builds_page(self, db, explorer):
        category = await db.create_category(
            make_category_input(name={"en": "Cafes", "ar": "مقاهي"})
        )
        business = await db.create_business(make_business_input(category_id=category.id))
        page = await explorer.search(ExplorerQuery(locale="ar"))
        assert page.total == 1
        assert page.total_pages == 1
        assert page.businesses[0].id == business.id
        assert page.category_names == {business.id: "مقاهي"}

    async def test_empty_result_has_one_page(self, explorer):
        page = await explorer.search(ExplorerQuery())
        assert page.businesses == []
        assert page.total == 0
        assert page.total_pages == 1

    async def test_total_pages_rounds_up(self, db, explorer):
        for i in range(7):
            await db.create_business(make_business_input(slug=f"shop-{i}"))
        page = await explorer.search(ExplorerQuery(per_page=6))
        assert page.total == 7
        assert page.total_pages == 2

    async def test_second_search_served_from_cache(self, db):
        cache = create_cache(60_000, 10)
        service = ExplorerService(db, cache)
        await db.create_business(make_business_input())

        first = await service.search(ExplorerQuery())
        db.list_explorer_businesses = AsyncMock(side_effect=AssertionError("db hit"))
        second = await service.search(ExplorerQuery())

        assert second == first
        assert second is not first
        assert cache.metrics.hits == 1
        assert cache.metrics.misses == 1

    async def test_cache_is_stale_until_invalidated(self, db, explorer):
        await db.create_business(make_business_input(slug="first"))
        before = await explorer.search(ExplorerQuery())
        await db.create_business(make_business_input(slug="second"))

        assert (await explorer.search(ExplorerQuery())).total == before.total == 1
        explorer.invalidate()
        assert (await explorer.search(ExplorerQuery())).total == 2

    async def test_distinct_queries_cached_separately(self, db, explorer):
        await db.create_business(make_business_input(city="Riyadh"))
        await explorer.search(ExplorerQuery(city="Riyadh"))
        await explorer.search(ExplorerQuery(city="Jeddah"))
        assert explorer.cache.size == 2

    async def test_cache_bounded(self, db):
        service = ExplorerService(db, create_cache(60_000, 2))
        for page in (1, 2, 3):
            await service.search(ExplorerQuery(page=page))
        assert service.cache.size == 2
        assert service.cache.get(ExplorerQuery(page=1).cache_key()) is None

    async def test_separator_in_filter_does_not_share_cache_entry(self, db, explorer):
        await db.create_business(make_business_input(
            name={"en": "Cafe|Old", "ar": "مقهى"}, city="Riyadh",
        ))
        first = await explorer.search(ExplorerQuery(search="cafe|old", city="riyadh"))
        second = await explorer.search(ExplorerQuery(search="cafe", city="old|riyadh"))
        assert first.total == 1
        assert second.total == 0
        assert explorer.cache.size == 2

    async def test_mutating_result_leaves_cache_intact(self, db, explorer):
        await db.create_business(make_business_input())
        page = await explorer.search(ExplorerQuery())
        page.businesses.clear()
        page.total = 99

        again = await explorer.search(ExplorerQuery())
        assert again.total == 1
        assert len(again.businesses) == 1
