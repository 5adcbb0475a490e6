"""
Filtering, sorting and summary counts over port reports.

These mirror the dashboard's table controls so that API clients can ask
for the same views server-side.
"""

from typing import Dict, List, Literal, Optional, Sequence, Any
from ponitor.models import PortReport

CategoryFilter = Literal["all", "web", "database", "development", "system"]
StatusFilter = Literal["all", "occupied", "free", "unknown"]
SortField = Literal["port", "name", "category", "status"]
SortOrder = Literal["asc", "desc"]

CATEGORIES = ("web", "database", "development", "system")

# Sort rank for the status column; unknown rows stay grouped between the others
_STATE_RANK = {"free": 0, "unknown": 1, "occupied": 2}

_SORT_KEYS = {
    "port": lambda r: r.port,
    "name": lambda r: r.name.lower(),
    "category": lambda r: r.category,
    "status": lambda r: _STATE_RANK[r.state],
}


def filter_reports(
    reports: Sequence[PortReport],
    category: CategoryFilter = "all",
    status: StatusFilter = "all"
) -> List[PortReport]:
    """Keep reports matching the category and state filters."""
    result = list(reports)
    if category != "all":
        result = [r for r in result if r.category == category]
    if status != "all":
        result = [r for r in result if r.state == status]
    return result


def sort_reports(
    reports: Sequence[PortReport],
    sort_by: Optional[SortField] = None,
    order: SortOrder = "asc"
) -> List[PortReport]:
    """
    Stable sort by one column. Without `sort_by` the input order (catalog
    order) is returned unchanged.
    """
    if sort_by is None:
        return list(reports)
    return sorted(reports, key=_SORT_KEYS[sort_by], reverse=(order == "desc"))


def summarize_reports(reports: Sequence[PortReport]) -> Dict[str, Any]:
    """
    Compute header counts for a set of reports.

    Returns:
        Dictionary with total, occupied, free and unknown counts, plus the
        number of occupied ports per category
    """
    by_category = {c: 0 for c in CATEGORIES}
    for r in reports:
        if r.occupied:
            by_category[r.category] += 1

    return {
        "total": len(reports),
        "occupied": sum(1 for r in reports if r.state == "occupied"),
        "free": sum(1 for r in reports if r.state == "free"),
        "unknown": sum(1 for r in reports if r.state == "unknown"),
        "by_category": by_category,
    }
