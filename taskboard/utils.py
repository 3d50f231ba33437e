import math
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

T = TypeVar("T")


def paginate(items: Sequence[T], page: Optional[int], limit: Optional[int]) -> List[T]:
    """Return one page of ``items``; both ``page`` and ``limit`` must be set to slice."""
    if page is None or limit is None:
        return list(items)
    start = (page - 1) * limit
    return list(items[start : start + limit])


def pagination_headers(total: int, page: int, limit: int) -> Dict[str, str]:
    return {
        "X-Total-Count": str(total),
        "X-Page": str(page),
        "X-Per-Page": str(limit),
        "X-Total-Pages": str(math.ceil(total / limit)),
    }


def sort_nulls_aside(items: Sequence[T], key: Callable[[T], Any], descending: bool = False) -> List[T]:
    """Stable sort by ``key`` with None values last ascending, first descending."""
    present = [item for item in items if key(item) is not None]
    missing = [item for item in items if key(item) is None]
    present.sort(key=key, reverse=descending)
    return missing + present if descending else present + missing


def parse_due_date(value: Optional[str]) -> Optional[date]:
    """Parse the date part of an ISO date or datetime string, None if unparseable."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def contains(haystack: Optional[str], needle: str) -> bool:
    return haystack is not None and needle.lower() in haystack.lower()


def split_credentials(decoded: str) -> Tuple[str, str]:
    """Split ``username:password``; the password may itself contain colons."""
    username, sep, password = decoded.partition(":")
    if not sep:
        raise ValueError("credentials have no ':' separator")
    return username, password
