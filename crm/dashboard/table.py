# crm/dashboard/table.py
"""
Sorting, Pagination and Search for record tables

Comparison rule (kept exactly as the tables have always behaved):
- both values are real numbers -> numeric difference
- otherwise -> both coerced to str and compared by a collation key:
  accents and case are ignored first, then lowercase sorts before
  uppercase ("apple" < "banana" < "Banana"), independent of the
  process locale

So a column that mixes numbers and formatted strings sorts as strings,
e.g. "10" < "9". Datetimes are compared as timestamps (numbers).

Sorting is stable in both directions: 'desc' negates the comparison
instead of reversing the list, so ties keep their input order.
"""

import math
import unicodedata
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from functools import cmp_to_key
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from .constants import SORT_ASC, SORT_DESC


@dataclass
class SortState:
    """Active sort column and direction of a table."""
    field: Optional[str] = None
    direction: str = SORT_ASC


@dataclass
class Page:
    """One page window over a sorted list."""
    items: List[Any] = field(default_factory=list)
    page: int = 1
    page_size: int = 10
    total: int = 0
    total_pages: int = 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def start_index(self) -> int:
        """1-based index of the first item shown (0 when empty)."""
        return (self.page - 1) * self.page_size + 1 if self.items else 0

    @property
    def end_index(self) -> int:
        return self.start_index + len(self.items) - 1 if self.items else 0


# =============================================================================
# COMPARISON
# =============================================================================

def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    return isinstance(value, (int, float, Decimal))


def sort_value(record: Any, field_name: str) -> Any:
    """Read a field off a dataclass or dict; datetimes become timestamps."""
    if isinstance(record, dict):
        value = record.get(field_name)
    else:
        value = getattr(record, field_name, None)

    if isinstance(value, datetime):
        return value.timestamp()
    return value


def collation_key(text: str) -> Tuple[str, str, str]:
    """Base letters, then accents, then case (lowercase first)."""
    folded = text.casefold()
    base = "".join(c for c in unicodedata.normalize("NFKD", folded) if not unicodedata.combining(c))
    return base, folded, text.swapcase()


def compare_values(a: Any, b: Any) -> float:
    """Negative / zero / positive like a classic comparator."""
    if _is_number(a) and _is_number(b):
        a_num, b_num = float(a), float(b)
        # NaN never orders; treat as equal to keep the sort stable
        if math.isnan(a_num) or math.isnan(b_num):
            return 0
        return a_num - b_num

    a_key = collation_key("" if a is None else str(a))
    b_key = collation_key("" if b is None else str(b))
    return (a_key > b_key) - (a_key < b_key)


def sort_records(records: Iterable[Any], field_name: Optional[str], direction: str = SORT_ASC) -> List[Any]:
    """Stable sort by one field; no field -> input order."""
    records = list(records)
    if not field_name:
        return records

    sign = -1 if direction == SORT_DESC else 1

    def _cmp(x, y):
        diff = compare_values(sort_value(x, field_name), sort_value(y, field_name))
        if diff < 0:
            return -sign
        if diff > 0:
            return sign
        return 0

    return sorted(records, key=cmp_to_key(_cmp))


def toggle_sort(state: SortState, field_name: str) -> SortState:
    """Clicking the active column flips direction; a new column starts asc."""
    if state.field == field_name:
        new_direction = SORT_DESC if state.direction == SORT_ASC else SORT_ASC
        return SortState(field=field_name, direction=new_direction)
    return SortState(field=field_name, direction=SORT_ASC)


# =============================================================================
# PAGINATION
# =============================================================================

def total_pages_for(total: int, page_size: int) -> int:
    if page_size <= 0:
        return 1
    return max(1, math.ceil(total / page_size))


def clamp_page(page: int, total_pages: int) -> int:
    try:
        page = int(page)
    except (TypeError, ValueError):
        page = 1
    return min(max(page, 1), max(1, total_pages))


def paginate(records: Sequence[Any], page: int, page_size: int) -> Page:
    """Slice records into the (clamped) page window."""
    records = list(records)
    page_size = max(1, int(page_size or 1))
    total = len(records)
    pages = total_pages_for(total, page_size)
    current = clamp_page(page, pages)
    start = (current - 1) * page_size
    return Page(
        items=records[start:start + page_size],
        page=current,
        page_size=page_size,
        total=total,
        total_pages=pages,
    )


def sort_and_page(
    records: Iterable[Any],
    field_name: Optional[str],
    direction: str,
    page: int,
    page_size: int,
) -> Page:
    return paginate(sort_records(records, field_name, direction), page, page_size)


# =============================================================================
# SEARCH
# =============================================================================

def search_records(records: Iterable[Any], term: str, fields: Sequence[str]) -> List[Any]:
    """Case-insensitive substring match over the given fields."""
    records = list(records)
    term = (term or '').strip().lower()
    if not term:
        return records

    matched = []
    for record in records:
        for name in fields:
            value = record.get(name) if isinstance(record, dict) else getattr(record, name, None)
            if value is not None and term in str(value).lower():
                matched.append(record)
                break
    return matched


__all__ = [
    'SortState',
    'Page',
    'sort_value',
    'collation_key',
    'compare_values',
    'sort_records',
    'toggle_sort',
    'total_pages_for',
    'clamp_page',
    'paginate',
    'sort_and_page',
    'search_records',
]
