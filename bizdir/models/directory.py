"""Directory records (categories, businesses) and their write inputs."""

import re

from pydantic import BaseModel, ConfigDict, field_validator

from bizdir.models.enums import Locale

SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_slug(value: str) -> str:
    """Trim and lower-case *value*; raise ValueError if it is not a valid slug."""
    slug = value.strip().lower()
    if not SLUG_RE.match(slug):
        raise ValueError("Invalid slug")
    return slug


def is_valid_slug(value: str) -> bool:
    try:
        normalize_slug(value)
    except ValueError:
        return False
    return True


class LocalizedString(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    en: str
    ar: str

    @field_validator("en", "ar")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    def get(self, locale: Locale | str) -> str:
        return self.ar if Locale(locale) is Locale.AR else self.en


class Category(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    slug: str
    name: LocalizedString
    image: str | None = None
    icon_id: str | None = None
    parent_id: str | None = None
    created_at: str
    updated_at: str


class CategoryInput(BaseModel):
    slug: str
    name: LocalizedString
    icon_id: str | None = None
    parent_id: str | None = None

    @field_validator("slug")
    @classmethod
    def _slug(cls, value: str) -> str:
        return normalize_slug(value)

    @field_validator("icon_id", "parent_id")
    @classmethod
    def _optional_text(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value


class Business(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    slug: str
    name: LocalizedString
    description: LocalizedString | None = None
    is_approved: bool = False
    is_verified: bool = False
    is_special: bool = False
    homepage_featured: bool = False
    # Legacy free-text category, kept for search; prefer category_id
    category: str | None = None
    category_id: str | None = None
    city: str | None = None
    address: str | None = None
    phone: str | None = None
    website: str | None = None
    email: str | None = None
    tags: list[str] = []
    created_at: str
    updated_at: str


class BusinessInput(BaseModel):
    slug: str
    name: LocalizedString
    description: LocalizedString | None = None
    category: str | None = None
    category_id: str | None = None
    city: str | None = None
    address: str | None = None
    phone: str | None = None
    website: str | None = None
    email: str | None = None
    tags: list[str] | None = None
    is_approved: bool = False
    is_verified: bool = False
    is_special: bool = False
    homepage_featured: bool = False

    @field_validator("slug")
    @classmethod
    def _slug(cls, value: str) -> str:
        return normalize_slug(value)

    @field_validator("category", "category_id", "city", "address", "phone", "website")
    @classmethod
    def _optional_text(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("email")
    @classmethod
    def _email(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        if not _EMAIL_RE.match(value):
            raise ValueError("Invalid email")
        return value

    @field_validator("tags")
    @classmethod
    def _tags(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        tags = [t.strip() for t in value]
        if any(not t for t in tags):
            raise ValueError("tags must not be empty")
        return tags
