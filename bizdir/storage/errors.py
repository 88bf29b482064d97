class DirectoryError(Exception):
    """Base class for directory store errors."""


class NotFoundError(DirectoryError):
    """The referenced category or business does not exist."""


class SlugTakenError(DirectoryError):
    """Another record already uses the requested slug."""


class CategoryInUseError(DirectoryError):
    """A category cannot be deleted while businesses reference it."""
