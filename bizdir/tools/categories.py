import logging

from fastmcp import FastMCP

from bizdir.models.directory import Category, CategoryInput
from bizdir.server import get_db, get_explorer
from bizdir.storage.database import DatabaseManager
from bizdir.storage.errors import DirectoryError
from bizdir.tools.error_messages import get_user_message
from bizdir.tools.patch import split_patch

logger = logging.getLogger(__name__)

_CONTEXT = {"record": "category"}


async def find_category(db: DatabaseManager, ref: str) -> Category | None:
    """Look a category up by id, falling back to slug."""
    if not ref:
        return None
    return await db.get_category(ref) or await db.get_category_by_slug(ref)


def register_category_tools(mcp: FastMCP) -> None:
    """Register category administration tools on the MCP server."""

    @mcp.tool
    async def manage_category(
        action: str,
        slug: str = "",
        name_en: str = "",
        name_ar: str = "",
        category_id: str = "",
        icon_id: str = "",
        parent_id: str = "",
        image: str = "",
    ) -> str:
        """Create, update, delete, or set the image of a directory category.

        Args:
            action: "create", "update", "delete", or "set_image".
            slug: URL slug, e.g. "coffee-shops" (create, or new slug on update).
            name_en: English name.
            name_ar: Arabic name.
            category_id: Id or slug of the category (update/delete/set_image).
            icon_id: Optional icon identifier. On update, "-" removes it.
            parent_id: Optional parent category id. On update, "-" removes it.
            image: Image URL for set_image; empty clears it.

        Returns:
            Confirmation of the action taken.
        """
        db = get_db()
        try:
            if action == "create":
                data = CategoryInput(
                    slug=slug,
                    name={"en": name_en, "ar": name_ar},
                    icon_id=icon_id or None,
                    parent_id=parent_id or None,
                )
                category = await db.create_category(data)
                get_explorer().invalidate()
                return f"Created category '{category.name.en}' (id: {category.id})."

            if action not in ("update", "delete", "set_image"):
                return (
                    f"Unknown action '{action}'. "
                    "Use 'create', 'update', 'delete', or 'set_image'."
                )

            current = await find_category(db, category_id)
            if current is None:
                return f"No category found for '{category_id}'."

            if action == "delete":
                await db.delete_category(current.id)
                get_explorer().invalidate()
                return f"Deleted category '{current.name.en}'."

            if action == "set_image":
                await db.update_category_image(current.id, image or None)
                get_explorer().invalidate()
                if image:
                    return f"Updated image for '{current.name.en}'."
                return f"Cleared image for '{current.name.en}'."

            patch, clear = split_patch({"icon_id": icon_id, "parent_id": parent_id})
            if slug:
                patch["slug"] = slug
            if name_en or name_ar:
                patch["name"] = {
                    "en": name_en or current.name.en,
                    "ar": name_ar or current.name.ar,
                }
            updated = await db.update_category(current.id, patch, clear)
            get_explorer().invalidate()
            return f"Updated category '{updated.name.en}' [{updated.slug}]."
        except (DirectoryError, ValueError) as exc:
            logger.info("manage_category %s failed: %s", action, exc)
            return get_user_message(exc, _CONTEXT)
