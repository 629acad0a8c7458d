"""
summary_engine.py — Department summary cards.

Picks the latest snapshot of each KPI category and tags it with a status.
No scoring happens here beyond thresholding.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional

from opsboard.config import KPI_CATEGORIES, STATUS_EXCELLENT_MIN, STATUS_GOOD_MIN
from opsboard.models.records import KPIStatus, MonthlySnapshot


def kpi_status(value: Optional[float]) -> KPIStatus:
    """>= 90 excellent, >= 75 good, otherwise needs-attention; None is no-data."""
    if value is None:
        return KPIStatus.NO_DATA
    if value >= STATUS_EXCELLENT_MIN:
        return KPIStatus.EXCELLENT
    if value >= STATUS_GOOD_MIN:
        return KPIStatus.GOOD
    return KPIStatus.NEEDS_ATTENTION


def latest_snapshot(snapshots: Iterable[MonthlySnapshot]) -> Optional[MonthlySnapshot]:
    latest = None
    for snap in snapshots:
        if latest is None or snap.month_key > latest.month_key:
            latest = snap
    return latest


class SummaryEngine:

    def compose(self, snapshots_by_category: Mapping[str, Iterable[MonthlySnapshot]]) -> Dict[str, Any]:
        """
        Build one card per KPI category.

        ``snapshots_by_category`` maps category value → snapshots in any order.
        Categories with nothing stored still get a ``no-data`` card.
        """
        cards: List[Dict[str, Any]] = []
        for category in KPI_CATEGORIES:
            snap = latest_snapshot(snapshots_by_category.get(category, []))
            value = snap.kpi_value if snap is not None else None
            cards.append({
                "kpi_category": category,
                "kpi_value": value,
                "month_key": snap.month_key.isoformat() if snap is not None else None,
                "monthly_target": snap.monthly_target if snap is not None else None,
                "status": kpi_status(value).value,
                "metrics": self._card_metrics(category, snap) if snap is not None else {},
            })

        tally = {s.value: 0 for s in KPIStatus}
        for card in cards:
            tally[card["status"]] += 1

        return {"kpis": cards, "status_counts": tally}

    @staticmethod
    def _card_metrics(category: str, snap: MonthlySnapshot) -> Dict[str, Any]:
        """Secondary figures shown under the headline value."""
        if category == "attendance":
            return {
                "present_employees": snap.stats.get("present_employees", 0),
                "total_employees": len(snap.employees),
                "punctuality_rate": snap.stats.get("punctuality_rate"),
            }
        if category == "efficiency":
            return {
                "completed_tasks": snap.stats.get("completed_tasks", 0),
                "total_tasks": snap.stats.get("total_tasks", 0),
                "operators": len(snap.employees),
            }
        if category == "safety":
            return {
                "total_incidents": len(snap.incidents),
                "critical_incidents": sum(1 for i in snap.incidents if i.get("severity") == "critical"),
            }
        if category == "formulation":
            return {
                "total_formulas": len(snap.formulas),
                "active_formulas": snap.stats.get("active_formulas", 0),
            }
        return {}
