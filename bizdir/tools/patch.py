"""Turn admin tool arguments into a storage patch."""

# Passing this for an optional field removes its current value.
CLEAR = "-"


def split_patch(values: dict[str, str]) -> tuple[dict, list[str]]:
    """Split tool arguments into ``(patch, clear)`` for an update.

    Blank values leave the field as it is, ``CLEAR`` empties it, and
    anything else is set.
    """
    patch: dict = {}
    clear: list[str] = []
    for field, value in values.items():
        value = value.strip()
        if value == CLEAR:
            clear.append(field)
        elif value:
            patch[field] = value
    return patch, clear
