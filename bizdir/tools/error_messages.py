"""User-friendly error messages for directory tool failures."""

import logging

from pydantic import ValidationError

from bizdir.storage.errors import CategoryInUseError, NotFoundError, SlugTakenError

logger = logging.getLogger(__name__)


def _describe_validation(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        field = ".".join(str(p) for p in err["loc"]) or "input"
        parts.append(f"{field}: {err['msg']}")
    return "; ".join(parts)


def get_user_message(error: Exception, context: dict | None = None) -> str:
    """Map an exception to a user-friendly message.

    Args:
        error: The exception to translate.
        context: Optional dict with extra info (e.g. {"record": "category"}).

    Returns:
        A human-readable error message.
    """
    record = (context or {}).get("record", "record")

    if isinstance(error, NotFoundError):
        return f"That {record} does not exist."
    if isinstance(error, SlugTakenError):
        return f"Another {record} already uses that slug. Pick a different one."
    if isinstance(error, CategoryInUseError):
        return (
            "This category is still assigned to businesses. "
            "Move those businesses to another category first."
        )
    if isinstance(error, ValidationError):
        return f"Invalid {record} details: {_describe_validation(error)}"
    if isinstance(error, ValueError):
        return f"Invalid request: {error}"
    logger.error("Unexpected tool error: %r", error)
    return "Something went wrong. Please try again."
