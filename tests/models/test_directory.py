import pytest
from pydantic import ValidationError

from bizdir.models.directory import (
    BusinessInput,
    CategoryInput,
    LocalizedString,
    is_valid_slug,
    normalize_slug,
)
from bizdir.models.enums import Locale
from tests.factories import make_business_input, make_category_input


class TestSlug:
    def test_normalizes_case_and_whitespace(self):
        assert normalize_slug("  Coffee-Shops ") == "coffee-shops"

    @pytest.mark.parametrize("slug", ["a", "abc-123", "a-b-c"])
    def test_valid_slugs(self, slug):
        assert is_valid_slug(slug) is True

    @pytest.mark.parametrize("slug", ["", "-abc", "abc-", "a--b", "a b", "café"])
    def test_invalid_slugs(self, slug):
        assert is_valid_slug(slug) is False
        with pytest.raises(ValueError):
            normalize_slug(slug)


class TestLocalizedString:
    def test_strips_values(self):
        s = LocalizedString(en="  Cafes ", ar=" مقاهي ")
        assert s.en == "Cafes"
        assert s.ar == "مقاهي"

    def test_rejects_blank(self):
        with pytest.raises(ValidationError):
            LocalizedString(en="   ", ar="مقاهي")

    def test_get_by_locale(self):
        s = LocalizedString(en="Cafes", ar="مقاهي")
        assert s.get(Locale.EN) == "Cafes"
        assert s.get("ar") == "مقاهي"


class TestCategoryInput:
    def test_slug_normalized(self):
        data = make_category_input(slug="Coffee-Shops")
        assert data.slug == "coffee-shops"

    def test_invalid_slug_rejected(self):
        with pytest.raises(ValidationError):
            make_category_input(slug="not a slug")

    def test_blank_icon_rejected(self):
        with pytest.raises(ValidationError):
            make_category_input(icon_id="  ")

    def test_optional_fields_default_none(self):
        data = CategoryInput(slug="cafes", name={"en": "Cafes", "ar": "مقاهي"})
        assert data.icon_id is None
        assert data.parent_id is None


class TestBusinessInput:
    def test_defaults(self):
        data = BusinessInput(slug="shop", name={"en": "Shop", "ar": "متجر"})
        assert data.is_approved is False
        assert data.tags is None
        assert data.email is None

    def test_email_validated(self):
        assert make_business_input(email="owner@example.com").email == "owner@example.com"
        with pytest.raises(ValidationError):
            make_business_input(email="not-an-email")

    def test_tags_trimmed(self):
        assert make_business_input(tags=[" wifi ", "parking"]).tags == ["wifi", "parking"]

    def test_empty_tag_rejected(self):
        with pytest.raises(ValidationError):
            make_business_input(tags=["wifi", " "])

    def test_blank_city_rejected(self):
        with pytest.raises(ValidationError):
            make_business_input(city="  ")
