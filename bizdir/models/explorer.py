from urllib.parse import urlencode

from pydantic import BaseModel, field_validator

from bizdir.models.directory import Business
from bizdir.models.enums import ExplorerSort, Locale

MIN_PER_PAGE = 6
MAX_PER_PAGE = 36
DEFAULT_PER_PAGE = 12


def _to_int(value: object) -> int:
    try:
        return int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"expected a whole number, got {value!r}") from exc


class ExplorerQuery(BaseModel):
    """Filters, sort and paging for the public business listing.

    Out-of-range paging values are clamped and unknown sort names fall back
    to relevance instead of failing, so any user input yields a page.
    """

    search: str | None = None
    city: str | None = None
    tags: str | None = None
    category_id: str | None = None
    sort_by: ExplorerSort = ExplorerSort.RELEVANCE
    page: int = 1
    per_page: int = DEFAULT_PER_PAGE
    locale: Locale = Locale.EN

    @field_validator("search", "city", "tags", "category_id", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("sort_by", mode="before")
    @classmethod
    def _known_sort(cls, value: object) -> object:
        if value in set(ExplorerSort):
            return value
        return ExplorerSort.RELEVANCE

    @field_validator("page", mode="before")
    @classmethod
    def _clamp_page(cls, value: object) -> int:
        return max(1, _to_int(value))

    @field_validator("per_page", mode="before")
    @classmethod
    def _clamp_per_page(cls, value: object) -> int:
        return min(MAX_PER_PAGE, max(MIN_PER_PAGE, _to_int(value)))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    def cache_key(self) -> str:
        # Percent-encoded, so no filter value can spill into another field.
        return urlencode([
            ("locale", self.locale.value),
            ("page", self.page),
            ("per_page", self.per_page),
            ("sort", self.sort_by.value),
            ("q", self.search or ""),
            ("city", self.city or ""),
            ("tags", self.tags or ""),
            ("category", self.category_id or ""),
        ])


class ExplorerPage(BaseModel):
    businesses: list[Business]
    # business id -> localized category name
    category_names: dict[str, str] = {}
    page: int
    per_page: int
    total: int
    total_pages: int
    etag: str
