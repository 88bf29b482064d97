import logging

from fastmcp import FastMCP
from pydantic import ValidationError

from bizdir.explorer import matches_if_none_match
from bizdir.models.directory import Business
from bizdir.models.enums import Locale
from bizdir.models.explorer import ExplorerQuery
from bizdir.server import get_db, get_explorer
from bizdir.tools.error_messages import get_user_message

logger = logging.getLogger(__name__)


def resolve_locale(locale: str | None) -> Locale:
    """Return *locale* if it is Arabic or English, else the configured default."""
    value = (locale or "").strip().lower()
    if not value:
        from bizdir.config import get_settings

        value = get_settings().default_locale.strip().lower()
    return Locale.AR if value == Locale.AR else Locale.EN


def format_business_line(
    business: Business, locale: Locale, category_name: str | None = None
) -> str:
    parts = [f"- {business.name.get(locale)} [{business.slug}]"]
    if business.city:
        parts.append(f"({business.city})")
    if category_name:
        parts.append(f"· {category_name}")
    badges = []
    if business.is_verified:
        badges.append("verified")
    if business.is_special:
        badges.append("special")
    if business.homepage_featured:
        badges.append("featured")
    if badges:
        parts.append(f"[{', '.join(badges)}]")
    return " ".join(parts)


def register_explorer_tools(mcp: FastMCP) -> None:
    """Register public directory browsing tools on the MCP server."""

    @mcp.tool
    async def search_businesses(
        query: str = "",
        city: str = "",
        tags: str = "",
        category_id: str = "",
        sort_by: str = "relevance",
        page: int = 1,
        per_page: int = 12,
        locale: str = "",
        if_none_match: str = "",
    ) -> str:
        """Browse approved businesses in the directory.

        Args:
            query: Free text matched against names, descriptions, city and tags.
            city: Only businesses in this city.
            tags: Comma-separated tags; any match qualifies.
            category_id: Only businesses in this category.
            sort_by: relevance, name-asc, name-desc, city-asc, created-desc,
                created-asc, updated-desc, verified-first, special-first,
                or featured-first.
            page: 1-based page number.
            per_page: Results per page (6-36).
            locale: "en" or "ar" for names.
            if_none_match: ETag from an earlier reply. If the page is
                unchanged the reply says so instead of repeating it.

        Returns:
            One page of matching businesses, tagged with its ETag.
        """
        try:
            explorer_query = ExplorerQuery(
                search=query,
                city=city,
                tags=tags,
                category_id=category_id,
                sort_by=sort_by,
                page=page,
                per_page=per_page,
                locale=resolve_locale(locale),
            )
        except ValidationError as exc:
            return get_user_message(exc, {"record": "search"})

        result = await get_explorer().search(explorer_query)
        if matches_if_none_match(if_none_match, result.etag):
            return f"Not modified (etag {result.etag})."
        if not result.businesses:
            return f"No businesses match your search. (etag {result.etag})"

        lines = [
            f"Page {result.page} of {result.total_pages} "
            f"({result.total} businesses, etag {result.etag}):"
        ]
        for business in result.businesses:
            lines.append(
                format_business_line(
                    business,
                    explorer_query.locale,
                    result.category_names.get(business.id),
                )
            )
        return "\n".join(lines)

    @mcp.tool
    async def get_business(slug_or_id: str, locale: str = "") -> str:
        """Show the details of one business.

        Args:
            slug_or_id: The business slug (e.g. "blue-door-cafe") or its id.
            locale: "en" or "ar".

        Returns:
            The business profile.
        """
        db = get_db()
        resolved = resolve_locale(locale)
        business = await db.get_business_by_slug(slug_or_id) or await db.get_business(
            slug_or_id
        )
        if business is None:
            return f"No business found for '{slug_or_id}'."

        lines = [business.name.get(resolved)]
        if business.description:
            lines.append(business.description.get(resolved))
        if business.category_id:
            category = await db.get_category(business.category_id)
            if category:
                lines.append(f"Category: {category.name.get(resolved)}")
        elif business.category:
            lines.append(f"Category: {business.category}")
        for label, value in (
            ("City", business.city),
            ("Address", business.address),
            ("Phone", business.phone),
            ("Website", business.website),
            ("Email", business.email),
        ):
            if value:
                lines.append(f"{label}: {value}")
        if business.tags:
            lines.append(f"Tags: {', '.join(business.tags)}")
        if not business.is_approved:
            lines.append("Status: pending approval")
        return "\n".join(lines)

    @mcp.tool
    async def list_categories(query: str = "", locale: str = "") -> str:
        """List directory categories, newest first.

        Args:
            query: Optional text matched against category names and slugs.
            locale: "en" or "ar" for names.

        Returns:
            One line per category with its id.
        """
        resolved = resolve_locale(locale)
        # Match both languages so Arabic queries work under an English locale
        categories = await get_db().list_categories(q=query or None)
        if not categories:
            return "No categories found."
        return "\n".join(
            f"- {c.name.get(resolved)} [{c.slug}] (id: {c.id})" for c in categories
        )

    @mcp.tool
    async def cache_stats() -> str:
        """Report the explorer listing cache usage.

        Returns:
            Size, capacity, TTL, and hit rate of the cache.
        """
        cache = get_explorer().cache
        return (
            f"Explorer cache: {cache.size}/{cache.max_entries} entries, "
            f"TTL {cache.ttl_ms / 1000:g}s, "
            f"hit rate {cache.metrics.hit_rate:.0%} "
            f"({cache.metrics.hits} hits, {cache.metrics.misses} misses)"
        )
