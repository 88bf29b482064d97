from enum import StrEnum


class Locale(StrEnum):
    EN = "en"
    AR = "ar"


class ExplorerSort(StrEnum):
    RELEVANCE = "relevance"
    NAME_ASC = "name-asc"
    NAME_DESC = "name-desc"
    CITY_ASC = "city-asc"
    CREATED_DESC = "created-desc"
    CREATED_ASC = "created-asc"
    UPDATED_DESC = "updated-desc"
    VERIFIED_FIRST = "verified-first"
    SPECIAL_FIRST = "special-first"
    FEATURED_FIRST = "featured-first"
