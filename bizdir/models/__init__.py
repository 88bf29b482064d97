from bizdir.models.directory import (
    Business,
    BusinessInput,
    Category,
    CategoryInput,
    LocalizedString,
)
from bizdir.models.enums import ExplorerSort, Locale
from bizdir.models.explorer import ExplorerPage, ExplorerQuery

__all__ = [
    "Business",
    "BusinessInput",
    "Category",
    "CategoryInput",
    "ExplorerPage",
    "ExplorerQuery",
    "ExplorerSort",
    "Locale",
    "LocalizedString",
]
