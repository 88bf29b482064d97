"""Public business listing, memoized in a bounded TTL cache."""

import base64
import hashlib
import logging
import math

from bizdir.cache.ttl_cache import TtlCache
from bizdir.models.explorer import ExplorerPage, ExplorerQuery
from bizdir.storage.database import DatabaseManager

logger = logging.getLogger(__name__)


def compute_etag(query: ExplorerQuery, total: int, total_pages: int, first_id: str, last_id: str) -> str:
    """Weak ETag over everything that shapes a listing page."""
    raw = "|".join([
        query.cache_key(),
        str(total),
        str(total_pages),
        first_id,
        last_id,
    ])
    digest = hashlib.sha1(raw.encode()).digest()
    token = base64.urlsafe_b64encode(digest).rstrip(b"=").decode()
    return f'W/"{token}"'


def matches_if_none_match(if_none_match: str | None, etag: str) -> bool:
    """Return True if an ``If-None-Match`` header value covers *etag*."""
    if not if_none_match:
        return False
    if if_none_match.strip() == "*":
        return True
    return etag in [v.strip() for v in if_none_match.split(",")]


class ExplorerService:
    """Serves explorer pages from *cache* when fresh, else from *db*.

    Callers get a copy of each page, never the cached instance.

    Args:
        db: Directory store.
        cache: Page cache owned by the caller (built at server startup).
    """

    def __init__(self, db: DatabaseManager, cache: TtlCache[ExplorerPage]) -> None:
        self.db = db
        self.cache = cache

    async def search(self, query: ExplorerQuery) -> ExplorerPage:
        key = query.cache_key()
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Explorer cache hit: %s", key)
            return cached.model_copy(deep=True)

        businesses, total = await self.db.list_explorer_businesses(query)

        category_names: dict[str, str] = {}
        categories = {c.id: c for c in await self.db.list_categories()}
        for business in businesses:
            category = categories.get(business.category_id or "")
            if category is not None:
                category_names[business.id] = category.name.get(query.locale)

        total_pages = max(1, math.ceil(total / query.per_page))
        first_id = businesses[0].id if businesses else ""
        last_id = businesses[-1].id if businesses else ""
        page = ExplorerPage(
            businesses=businesses,
            category_names=category_names,
            page=query.page,
            per_page=query.per_page,
            total=total,
            total_pages=total_pages,
            etag=compute_etag(query, total, total_pages, first_id, last_id),
        )
        self.cache.set(key, page)
        return page.model_copy(deep=True)

    def invalidate(self) -> None:
        """Drop every cached page. Call after any directory write."""
        self.cache.clear()
        logger.debug("Explorer cache cleared")
