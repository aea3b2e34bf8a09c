"""Server-side listing for DataTables-style endpoints.

Query keys ``start``, ``length``, ``sortBy`` and ``sortDir`` drive pagination
and ordering; any other non-empty key is a case-insensitive substring filter
on the field of the same name.
"""

from __future__ import annotations

from functools import cmp_to_key
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from hrm_core.config import DEFAULT_PAGE_LENGTH, PAGINATION_KEYS
from hrm_core.schemas import PaginatedEnvelope

Record = Dict[str, Any]


def _parse_int(value: Optional[str], default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def filters_from(params: Mapping[str, str]) -> Dict[str, str]:
    return {
        key: value
        for key, value in params.items()
        if key not in PAGINATION_KEYS and value is not None and value != ""
    }


def apply_filters(rows: List[Record], filters: Mapping[str, str]) -> List[Record]:
    for key, value in filters.items():
        needle = value.lower()
        rows = [
            row
            for row in rows
            if row.get(key) is not None and needle in _as_text(row[key]).lower()
        ]
    return rows


def compare_values(left: Any, right: Any, descending: bool = False) -> int:
    """Two-key comparison; missing values sort last in either direction."""
    if type(left) is type(right) and left == right:
        return 0
    if left is None:
        return 1
    if right is None:
        return -1
    if _is_number(left) and _is_number(right):
        result = (left > right) - (left < right)
    else:
        left_text, right_text = _as_text(left), _as_text(right)
        left_key = (left_text.casefold(), left_text)
        right_key = (right_text.casefold(), right_text)
        result = (left_key > right_key) - (left_key < right_key)
    return -result if descending else result


def sort_rows(rows: List[Record], sort_by: str, descending: bool) -> List[Record]:
    return sorted(
        rows,
        key=cmp_to_key(
            lambda a, b: compare_values(a.get(sort_by), b.get(sort_by), descending)
        ),
    )


def page_bounds(params: Mapping[str, str]) -> Tuple[int, int]:
    return (
        _parse_int(params.get("start"), 0),
        _parse_int(params.get("length"), DEFAULT_PAGE_LENGTH),
    )


def page_params(params: Mapping[str, str]) -> Dict[str, str]:
    """Only the pagination keys, for endpoints with their own named filters."""
    return {key: params[key] for key in PAGINATION_KEYS if key in params}


def first_param(params: Mapping[str, str], *names: str) -> Optional[str]:
    """Value of the first alias present and non-empty."""
    for name in names:
        value = params.get(name)
        if value:
            return value
    return None


def select_page(
    rows: List[Record], params: Mapping[str, str]
) -> Tuple[List[Record], int]:
    """Filter, sort and slice ``rows``; returns the page and the filtered count."""
    start, length = page_bounds(params)
    sort_by = params.get("sortBy")
    descending = params.get("sortDir") == "desc"

    filtered = apply_filters(list(rows), filters_from(params))
    if sort_by:
        filtered = sort_rows(filtered, sort_by, descending)
    return filtered[start:start + length], len(filtered)


def paginate(
    rows: List[Record],
    params: Mapping[str, str],
    *,
    total: int,
    message: str,
    decorate: Optional[Callable[[Record], Record]] = None,
) -> PaginatedEnvelope:
    page, records_filtered = select_page(rows, params)
    if decorate is not None:
        page = [decorate(row) for row in page]
    return PaginatedEnvelope(
        status="success",
        message=message,
        data=page,
        recordsTotal=total,
        recordsFiltered=records_filtered,
    )
