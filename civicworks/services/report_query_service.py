"""
Report Query Service - filtered, sorted and paginated report listing.

Equality filters (category, status, priority, is_emergency, owner) are
pushed down to the store. Text search, the bounding box, sorting and
pagination run in-process: Firestore has no substring search and allows a
range filter on one field only.
"""

import math
from typing import Dict, List, Optional
import logging

from civicworks.core.exceptions import NotFoundError, ValidationError
from civicworks.core.settings import settings
from civicworks.models.report import Priority
from civicworks.stores.base import ReportStore
from civicworks.utils.geo import bounding_box, in_bounding_box
from civicworks.utils.time import parse_timestamp

logger = logging.getLogger(__name__)

SORT_FIELDS = ("created_at", "view_count", "likes", "priority")
PRIORITY_RANK = {Priority.LOW.value: 0, Priority.MEDIUM.value: 1, Priority.HIGH.value: 2, Priority.CRITICAL.value: 3}


def _created_timestamp(report: Dict) -> float:
    created = parse_timestamp(report.get("created_at"))
    return created.timestamp() if created else 0.0


def _sort_key(sort_by: str):
    if sort_by == "likes":
        return lambda r: len(r.get("likes", []))
    if sort_by == "view_count":
        return lambda r: r.get("view_count", 0)
    if sort_by == "priority":
        return lambda r: PRIORITY_RANK.get(r.get("priority"), 1)
    return _created_timestamp


def _matches_search(report: Dict, needle: str) -> bool:
    haystack = f"{report.get('category') or ''} {report.get('description') or ''}".lower()
    return needle in haystack


class ReportQueryService:
    """Read side for reports."""

    def __init__(self, reports: ReportStore):
        self.reports = reports

    def get_report(self, report_id: str) -> Dict:
        report = self.reports.get(report_id)
        if report is None:
            raise NotFoundError("Report", report_id)
        return report

    def list_my_reports(self, user_id: str) -> List[Dict]:
        return self.reports.find({"owner": user_id})

    def list_reports(
        self,
        search: Optional[str] = None,
        category: Optional[str] = None,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        is_emergency: Optional[bool] = None,
        lat: Optional[float] = None,
        lng: Optional[float] = None,
        radius_km: Optional[float] = None,
        owner: Optional[str] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        page: int = 1,
        limit: int = settings.DEFAULT_PAGE_SIZE
    ) -> Dict:
        """
        List reports.

        Returns:
            Dict with reports (current page), total, page and pages
        """
        if sort_by not in SORT_FIELDS:
            raise ValidationError(f"sort_by must be one of {list(SORT_FIELDS)}", field="sort_by")
        if sort_order not in ("asc", "desc"):
            raise ValidationError("sort_order must be 'asc' or 'desc'", field="sort_order")
        if page < 1:
            raise ValidationError("page must be >= 1", field="page")
        if limit < 1 or limit > settings.MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {settings.MAX_PAGE_SIZE}", field="limit")
        if (lat is None) != (lng is None):
            raise ValidationError("lat and lng must be provided together", field="lat")

        reports = self.reports.find({
            "category": category,
            "status": status,
            "priority": priority,
            "is_emergency": is_emergency,
            "owner": owner,
        })

        if search and search.strip():
            needle = search.strip().lower()
            reports = [r for r in reports if _matches_search(r, needle)]

        if lat is not None:
            radius = radius_km if radius_km is not None else settings.DEFAULT_SEARCH_RADIUS_KM
            if radius <= 0:
                raise ValidationError("radius must be positive", field="radius")
            box = bounding_box(lat, lng, radius)
            reports = [
                r for r in reports
                if r.get("lat") is not None and r.get("lng") is not None
                and in_bounding_box(r["lat"], r["lng"], box)
            ]

        # Stable sort keeps the store's newest-first order among ties
        reports.sort(key=_sort_key(sort_by), reverse=(sort_order == "desc"))

        total = len(reports)
        start = (page - 1) * limit
        return {
            "reports": reports[start:start + limit],
            "total": total,
            "page": page,
            "pages": math.ceil(total / limit),
        }
