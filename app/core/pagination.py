"""Pagination helpers."""


def paginate(limit: int | None, offset: int, max_limit: int = 200) -> tuple[int | None, int]:
    """Clamp limit/offset; return (limit, offset). A None limit means no limit."""
    if limit is not None:
        limit = max(1, min(limit, max_limit))
    offset = max(0, offset)
    return limit, offset
