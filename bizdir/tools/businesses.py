import logging

from fastmcp import FastMCP

from bizdir.models.directory import Business, BusinessInput
from bizdir.server import get_db, get_explorer
from bizdir.storage.database import DatabaseManager
from bizdir.storage.errors import DirectoryError
from bizdir.tools.error_messages import get_user_message
from bizdir.tools.explorer import format_business_line, resolve_locale
from bizdir.tools.patch import CLEAR, split_patch

logger = logging.getLogger(__name__)

_CONTEXT = {"record": "business"}


async def find_business(db: DatabaseManager, ref: str) -> Business | None:
    """Look a business up by id, falling back to slug."""
    if not ref:
        return None
    return await db.get_business(ref) or await db.get_business_by_slug(ref)


def _split_tags(tags: str) -> list[str] | None:
    if not tags.strip() or tags.strip() == CLEAR:
        return None
    return [t.strip() for t in tags.split(",") if t.strip()]


def register_business_tools(mcp: FastMCP) -> None:
    """Register business administration tools on the MCP server."""

    @mcp.tool
    async def manage_business(
        action: str,
        slug: str = "",
        name_en: str = "",
        name_ar: str = "",
        business_id: str = "",
        city: str = "",
        category_id: str = "",
        tags: str = "",
        approved: bool | None = None,
        verified: bool | None = None,
        special: bool | None = None,
        featured: bool | None = None,
    ) -> str:
        """Create, update, or delete a business listing.

        Only approved businesses show up in search_businesses.

        Args:
            action: "create", "update", or "delete".
            slug: URL slug, e.g. "blue-door-cafe" (create, or new slug on update).
            name_en: English name.
            name_ar: Arabic name.
            business_id: Id or slug of the business (update/delete).
            city: City the business operates in.
            category_id: Id of the business's category.
            tags: Comma-separated tags, e.g. "wifi, parking".
                On update, "-" for city, category_id, or tags removes the
                current value.
            approved: List publicly.
            verified: Show the verified badge.
            special: Mark as special/VIP.
            featured: Feature on the homepage.

        Returns:
            Confirmation of the action taken.
        """
        db = get_db()
        try:
            if action == "create":
                data = BusinessInput(
                    slug=slug,
                    name={"en": name_en, "ar": name_ar},
                    city=city or None,
                    category_id=category_id or None,
                    tags=_split_tags(tags),
                    is_approved=bool(approved),
                    is_verified=bool(verified),
                    is_special=bool(special),
                    homepage_featured=bool(featured),
                )
                if data.category_id and await db.get_category(data.category_id) is None:
                    return f"No category found for '{data.category_id}'."
                business = await db.create_business(data)
                get_explorer().invalidate()
                return f"Created business '{business.name.en}' (id: {business.id})."

            if action not in ("update", "delete"):
                return f"Unknown action '{action}'. Use 'create', 'update', or 'delete'."

            current = await find_business(db, business_id)
            if current is None:
                return f"No business found for '{business_id}'."

            if action == "delete":
                await db.delete_business(current.id)
                get_explorer().invalidate()
                return f"Deleted business '{current.name.en}'."

            patch, clear = split_patch({"city": city, "category_id": category_id})
            new_category = patch.get("category_id")
            if new_category and await db.get_category(new_category) is None:
                return f"No category found for '{new_category}'."
            if tags.strip() == CLEAR:
                clear.append("tags")
            patch.update({
                "slug": slug or None,
                "tags": _split_tags(tags),
                "is_approved": approved,
                "is_verified": verified,
                "is_special": special,
                "homepage_featured": featured,
            })
            if name_en or name_ar:
                patch["name"] = {
                    "en": name_en or current.name.en,
                    "ar": name_ar or current.name.ar,
                }
            updated = await db.update_business(current.id, patch, clear)
            get_explorer().invalidate()
            return f"Updated business '{updated.name.en}' [{updated.slug}]."
        except (DirectoryError, ValueError) as exc:
            logger.info("manage_business %s failed: %s", action, exc)
            return get_user_message(exc, _CONTEXT)

    @mcp.tool
    async def list_all_businesses(query: str = "", locale: str = "") -> str:
        """List every business, including ones still pending approval.

        Unlike search_businesses this reads the directory directly, so
        changes show up immediately.

        Args:
            query: Optional text matched against names, category, city and tags.
            locale: "en" or "ar" for names. When given, only names in that
                language are searched.

        Returns:
            One line per business, most recently updated first.
        """
        resolved = resolve_locale(locale)
        businesses = await get_db().list_businesses(
            q=query or None, locale=resolved if locale.strip() else None
        )
        if not businesses:
            return "No businesses found."
        lines = []
        for business in businesses:
            line = format_business_line(business, resolved)
            if not business.is_approved:
                line += " (pending approval)"
            lines.append(f"{line} (id: {business.id})")
        return "\n".join(lines)
