"""Pure helpers shared by the list endpoints."""

from typing import Any, Callable, Iterable

NO_COMPANY = "No Company"


def is_status_filter(status: str | None) -> bool:
    """A status filter applies unless absent or the literal "all"."""
    return bool(status) and status.lower() != "all"


def search_term(search: str | None) -> str | None:
    if search is None or not search.strip():
        return None
    return f"%{search.strip()}%"


def group_by(
    items: Iterable[Any],
    key: Callable[[Any], str | None],
    default: str = NO_COMPANY,
) -> dict[str, list[Any]]:
    """Bucket items by key, preserving input order within each bucket."""
    grouped: dict[str, list[Any]] = {}
    for item in items:
        name = key(item)
        if name is None or not str(name).strip():
            name = default
        grouped.setdefault(name, []).append(item)
    return grouped
