"""Page slicing shared by the list endpoints."""

import math
from typing import Any, Callable, Sequence


def paginate(items: Sequence, page: int, per_page: int, serialize: Callable[[Any], Any]) -> dict:
    """Slice an already filtered and ordered list into one page."""
    total = len(items)
    pages = math.ceil(total / per_page) if total > 0 else 1
    skip = (page - 1) * per_page

    return {
        "items": [serialize(item) for item in items[skip:skip + per_page]],
        "total": total,
        "page": page,
        "per_page": per_page,
        "pages": pages,
    }
