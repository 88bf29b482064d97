import json
import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path
from uuid import uuid4

import aiosqlite

from bizdir.models.directory import (
    Business,
    BusinessInput,
    Category,
    CategoryInput,
    is_valid_slug,
    normalize_slug,
)
from bizdir.models.enums import ExplorerSort, Locale
from bizdir.models.explorer import ExplorerQuery
from bizdir.storage.errors import CategoryInUseError, NotFoundError, SlugTakenError

logger = logging.getLogger(__name__)

BUSINESSES = "businesses"
BUSINESS_SLUGS = "business_slugs"
CATEGORIES = "categories"
CATEGORY_SLUGS = "category_slugs"

STORES = frozenset({BUSINESSES, BUSINESS_SLUGS, CATEGORIES, CATEGORY_SLUGS})


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _new_id() -> str:
    return uuid4().hex


def _merge_patch(
    current: dict, patch: dict, allowed: set[str], clear: Iterable[str] = ()
) -> dict:
    """Overlay the non-None values of *patch* onto *current*.

    Fields named in *clear* are reset to None; None in *patch* means "keep".
    """
    cleared = set(clear)
    unknown = (set(patch) | cleared) - allowed
    if unknown:
        raise ValueError(f"Unknown fields: {', '.join(sorted(unknown))}")
    merged = dict(current)
    merged.update({k: v for k, v in patch.items() if v is not None})
    merged.update(dict.fromkeys(cleared))
    return merged


class DatabaseManager:
    """Async SQLite-backed key-value store with typed directory methods.

    Records live in named stores (one logical table per store) as JSON
    documents. Slug lookups go through a separate slug -> id store that the
    write methods keep in step with the records.
    """

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = str(db_path)
        self.connection: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        """Open connection, enable WAL mode, execute schema."""
        self.connection = await aiosqlite.connect(self.db_path)
        self.connection.row_factory = aiosqlite.Row
        schema_path = Path(__file__).parent / "schema.sql"
        schema_sql = schema_path.read_text()
        await self.connection.executescript(schema_sql)
        await self.connection.execute("PRAGMA journal_mode=WAL")
        await self.connection.commit()
        logger.info(f"Database initialized at {self.db_path}")

    async def close(self) -> None:
        """Close the database connection."""
        if self.connection:
            await self.connection.close()
            self.connection = None

    async def __aenter__(self) -> "DatabaseManager":
        await self.initialize()
        return self

    async def __aexit__(
        self, exc_type: type | None, exc_val: Exception | None, exc_tb: object
    ) -> None:
        await self.close()

    async def execute(self, sql: str, params: tuple = ()) -> aiosqlite.Cursor:
        """Execute a single SQL statement and commit."""
        assert self.connection is not None
        cursor = await self.connection.execute(sql, params)
        await self.connection.commit()
        return cursor

    async def fetch_one(self, sql: str, params: tuple = ()) -> dict | None:
        """Execute a query and return a single row as a dict, or None."""
        assert self.connection is not None
        cursor = await self.connection.execute(sql, params)
        row = await cursor.fetchone()
        if row is None:
            return None
        return dict(row)

    async def fetch_all(self, sql: str, params: tuple = ()) -> list[dict]:
        """Execute a query and return all rows as list of dicts."""
        assert self.connection is not None
        cursor = await self.connection.execute(sql, params)
        rows = await cursor.fetchall()
        return [dict(r) for r in rows]

    # ── Key-value stores ──────────────────────────────────────────────────

    @staticmethod
    def _check_store(store: str) -> None:
        if store not in STORES:
            raise ValueError(f"Unknown store '{store}'")

    async def kv_get(self, store: str, key: str) -> dict | str | None:
        self._check_store(store)
        row = await self.fetch_one(
            "SELECT value FROM kv WHERE store = ? AND key = ?", (store, key)
        )
        if row is None:
            return None
        return json.loads(row["value"])

    async def kv_put(self, store: str, key: str, value: dict | str) -> None:
        self._check_store(store)
        await self.execute(
            "INSERT INTO kv (store, key, value) VALUES (?, ?, ?) "
            "ON CONFLICT(store, key) DO UPDATE SET value = excluded.value",
            (store, key, json.dumps(value, ensure_ascii=False)),
        )

    async def kv_remove(self, store: str, key: str) -> bool:
        """Delete *key* from *store*. Returns True if it existed."""
        self._check_store(store)
        cursor = await self.execute(
            "DELETE FROM kv WHERE store = ? AND key = ?", (store, key)
        )
        return cursor.rowcount > 0

    async def kv_range(self, store: str) -> list[tuple[str, dict | str]]:
        """Return every (key, value) pair of *store*, ordered by key."""
        self._check_store(store)
        rows = await self.fetch_all(
            "SELECT key, value FROM kv WHERE store = ? ORDER BY key", (store,)
        )
        return [(r["key"], json.loads(r["value"])) for r in rows]

    # ── Categories ────────────────────────────────────────────────────────

    async def get_category(self, category_id: str) -> Category | None:
        data = await self.kv_get(CATEGORIES, category_id)
        if data is None:
            return None
        return Category.model_validate(data)

    async def get_category_by_slug(self, slug: str) -> Category | None:
        if not is_valid_slug(slug):
            return None
        category_id = await self.kv_get(CATEGORY_SLUGS, normalize_slug(slug))
        if not category_id:
            return None
        return await self.get_category(str(category_id))

    async def list_categories(
        self, locale: Locale | None = None, q: str | None = None
    ) -> list[Category]:
        needle = q.strip().lower() if q and q.strip() else None
        results: list[Category] = []
        for _, value in await self.kv_range(CATEGORIES):
            category = Category.model_validate(value)
            if needle:
                name = (
                    category.name.get(locale)
                    if locale
                    else f"{category.name.en} {category.name.ar}"
                )
                haystack = f"{name} {category.slug}".lower()
                if needle not in haystack:
                    continue
            results.append(category)
        results.sort(key=lambda c: c.updated_at, reverse=True)
        return results

    async def create_category(self, data: CategoryInput) -> Category:
        if await self.kv_get(CATEGORY_SLUGS, data.slug):
            raise SlugTakenError(f"Category slug '{data.slug}' is taken")

        now = _now()
        category = Category(
            id=_new_id(),
            slug=data.slug,
            name=data.name,
            icon_id=data.icon_id,
            parent_id=data.parent_id,
            created_at=now,
            updated_at=now,
        )
        await self.kv_put(CATEGORIES, category.id, category.model_dump(mode="json"))
        await self.kv_put(CATEGORY_SLUGS, category.slug, category.id)
        logger.info("Created category %s (%s)", category.slug, category.id)
        return category

    async def update_category(
        self, category_id: str, patch: dict, clear: Iterable[str] = ()
    ) -> Category:
        current = await self.get_category(category_id)
        if current is None:
            raise NotFoundError(f"Category '{category_id}' not found")

        merged = _merge_patch(
            current.model_dump(), patch, set(CategoryInput.model_fields), clear
        )
        validated = CategoryInput.model_validate(
            {k: merged[k] for k in CategoryInput.model_fields}
        )
        if validated.slug != current.slug:
            existing = await self.kv_get(CATEGORY_SLUGS, validated.slug)
            if existing and existing != category_id:
                raise SlugTakenError(f"Category slug '{validated.slug}' is taken")

        updated = Category.model_validate(
            {**current.model_dump(), **validated.model_dump(), "updated_at": _now()}
        )
        await self.kv_put(CATEGORIES, category_id, updated.model_dump(mode="json"))
        if updated.slug != current.slug:
            await self.kv_remove(CATEGORY_SLUGS, current.slug)
            await self.kv_put(CATEGORY_SLUGS, updated.slug, category_id)
        logger.info("Updated category %s", category_id)
        return updated

    async def delete_category(self, category_id: str) -> None:
        current = await self.get_category(category_id)
        if current is None:
            return

        for _, value in await self.kv_range(BUSINESSES):
            if isinstance(value, dict) and value.get("category_id") == category_id:
                raise CategoryInUseError(
                    f"Category '{current.slug}' is used by at least one business"
                )

        await self.kv_remove(CATEGORIES, category_id)
        await self.kv_remove(CATEGORY_SLUGS, current.slug)
        logger.info("Deleted category %s", category_id)

    async def update_category_image(
        self, category_id: str, image: str | None
    ) -> Category:
        current = await self.get_category(category_id)
        if current is None:
            raise NotFoundError(f"Category '{category_id}' not found")

        updated = Category.model_validate(
            {**current.model_dump(), "image": image or None, "updated_at": _now()}
        )
        await self.kv_put(CATEGORIES, category_id, updated.model_dump(mode="json"))
        return updated

    # ── Businesses ────────────────────────────────────────────────────────

    async def get_business(self, business_id: str) -> Business | None:
        data = await self.kv_get(BUSINESSES, business_id)
        if data is None:
            return None
        return Business.model_validate(data)

    async def get_business_by_slug(self, slug: str) -> Business | None:
        if not is_valid_slug(slug):
            return None
        business_id = await self.kv_get(BUSINESS_SLUGS, normalize_slug(slug))
        if not business_id:
            return None
        return await self.get_business(str(business_id))

    async def _all_businesses(self) -> list[Business]:
        return [Business.model_validate(v) for _, v in await self.kv_range(BUSINESSES)]

    async def list_businesses(
        self, q: str | None = None, locale: Locale | None = None
    ) -> list[Business]:
        needle = q.strip().lower() if q and q.strip() else None
        results: list[Business] = []
        for business in await self._all_businesses():
            if needle:
                name = (
                    business.name.get(locale)
                    if locale
                    else f"{business.name.en} {business.name.ar}"
                )
                parts = [name, business.category, business.city, " ".join(business.tags)]
                haystack = " ".join(p for p in parts if p).lower()
                if needle not in haystack:
                    continue
            results.append(business)
        results.sort(key=lambda b: b.updated_at, reverse=True)
        return results

    async def create_business(self, data: BusinessInput) -> Business:
        if await self.kv_get(BUSINESS_SLUGS, data.slug):
            raise SlugTakenError(f"Business slug '{data.slug}' is taken")

        now = _now()
        fields = data.model_dump()
        fields["tags"] = fields["tags"] or []
        business = Business(id=_new_id(), created_at=now, updated_at=now, **fields)
        await self.kv_put(BUSINESSES, business.id, business.model_dump(mode="json"))
        await self.kv_put(BUSINESS_SLUGS, business.slug, business.id)
        logger.info("Created business %s (%s)", business.slug, business.id)
        return business

    async def update_business(
        self, business_id: str, patch: dict, clear: Iterable[str] = ()
    ) -> Business:
        current = await self.get_business(business_id)
        if current is None:
            raise NotFoundError(f"Business '{business_id}' not found")

        merged = _merge_patch(
            current.model_dump(), patch, set(BusinessInput.model_fields), clear
        )
        validated = BusinessInput.model_validate(
            {k: merged[k] for k in BusinessInput.model_fields}
        )
        if validated.slug != current.slug:
            existing = await self.kv_get(BUSINESS_SLUGS, validated.slug)
            if existing and existing != business_id:
                raise SlugTakenError(f"Business slug '{validated.slug}' is taken")

        fields = validated.model_dump()
        fields["tags"] = fields["tags"] or []
        updated = Business.model_validate(
            {**current.model_dump(), **fields, "updated_at": _now()}
        )
        await self.kv_put(BUSINESSES, business_id, updated.model_dump(mode="json"))
        if updated.slug != current.slug:
            await self.kv_remove(BUSINESS_SLUGS, current.slug)
            await self.kv_put(BUSINESS_SLUGS, updated.slug, business_id)
        logger.info("Updated business %s", business_id)
        return updated

    async def delete_business(self, business_id: str) -> None:
        current = await self.get_business(business_id)
        if current is None:
            return
        await self.kv_remove(BUSINESSES, business_id)
        await self.kv_remove(BUSINESS_SLUGS, current.slug)
        logger.info("Deleted business %s", business_id)

    # ── Explorer listing ──────────────────────────────────────────────────

    async def list_explorer_businesses(
        self, query: ExplorerQuery
    ) -> tuple[list[Business], int]:
        """Return one page of approved businesses matching *query*, plus the total."""
        matches = [
            b for b in await self._all_businesses()
            if b.is_approved and _matches_filters(b, query)
        ]
        _sort_explorer(matches, query)
        page = matches[query.offset:query.offset + query.per_page]
        return page, len(matches)


def _search_haystack(business: Business) -> str:
    parts = [business.name.en, business.name.ar]
    if business.description:
        parts += [business.description.en, business.description.ar]
    parts += [business.category or "", business.city or "", " ".join(business.tags)]
    return " ".join(p for p in parts if p).lower()


def _matches_filters(business: Business, query: ExplorerQuery) -> bool:
    if query.search and query.search.lower() not in _search_haystack(business):
        return False
    if query.city and (business.city or "").lower() != query.city.lower():
        return False
    if query.tags:
        wanted = {t.strip().lower() for t in query.tags.split(",") if t.strip()}
        have = {t.lower() for t in business.tags}
        if wanted and not wanted & have:
            return False
    if query.category_id and business.category_id != query.category_id:
        return False
    return True


def _relevance(business: Business, needle: str) -> int:
    if needle in f"{business.name.en} {business.name.ar}".lower():
        return 2
    if any(needle in t.lower() for t in business.tags):
        return 1
    return 0


def _sort_explorer(businesses: list[Business], query: ExplorerQuery) -> None:
    """Sort in place. Later sorts are stable, so earlier keys break ties."""
    sort_by = query.sort_by
    businesses.sort(key=lambda b: b.updated_at, reverse=True)

    if sort_by is ExplorerSort.RELEVANCE:
        if query.search:
            needle = query.search.lower()
            businesses.sort(key=lambda b: _relevance(b, needle), reverse=True)
    elif sort_by in (ExplorerSort.NAME_ASC, ExplorerSort.NAME_DESC):
        businesses.sort(
            key=lambda b: b.name.get(query.locale).casefold(),
            reverse=sort_by is ExplorerSort.NAME_DESC,
        )
    elif sort_by is ExplorerSort.CITY_ASC:
        businesses.sort(key=lambda b: (b.city is None, (b.city or "").casefold()))
    elif sort_by in (ExplorerSort.CREATED_DESC, ExplorerSort.CREATED_ASC):
        businesses.sort(
            key=lambda b: b.created_at,
            reverse=sort_by is ExplorerSort.CREATED_DESC,
        )
    elif sort_by is ExplorerSort.VERIFIED_FIRST:
        businesses.sort(key=lambda b: not b.is_verified)
    elif sort_by is ExplorerSort.SPECIAL_FIRST:
        businesses.sort(key=lambda b: not b.is_special)
    elif sort_by is ExplorerSort.FEATURED_FIRST:
        businesses.sort(key=lambda b: not b.homepage_featured)
    # UPDATED_DESC is the base ordering
