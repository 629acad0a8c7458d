"""
insights_engine.py — Per-employee performance insights for the detail view.

Combines an employee's attendance and production over a window into short
tagged findings (warnings and commendations).
"""

from typing import Any, Dict, List, Optional

from opsboard.config import INSIGHT_CONFIG
from opsboard.models.records import AttendanceEmployee
from opsboard.services.attendance_engine import AttendanceEngine
from opsboard.services.production_engine import ProductionEngine


class InsightsEngine:

    def __init__(
        self,
        attendance_engine: Optional[AttendanceEngine] = None,
        production_engine: Optional[ProductionEngine] = None,
    ) -> None:
        self.attendance = attendance_engine or AttendanceEngine()
        self.production = production_engine or ProductionEngine()

    def employee_insights(self, employee: Any) -> Dict[str, Any]:
        emp = employee if isinstance(employee, AttendanceEmployee) else AttendanceEmployee.model_validate(employee)
        att = self.attendance.aggregate(emp.attendance_records)
        prod = self.production.aggregate(emp.production_tasks)

        insights: List[Dict[str, Any]] = []

        late_days = att["late_days"]
        if late_days > INSIGHT_CONFIG["frequent_lateness_days"]:
            insights.append({
                "type": "warning",
                "code": "frequent_lateness",
                "late_days": late_days,
                "avg_late_minutes": att["avg_late_minutes"],
            })
        elif late_days == 0 and att["worked_days"] > 0:
            insights.append({"type": "success", "code": "excellent_punctuality"})

        # Average per entry, unrounded, as the thresholds are strict
        avg_kg = (
            prod["total_production"] / prod["production_days"]
            if prod["production_days"] else 0.0
        )
        if avg_kg > INSIGHT_CONFIG["high_productivity_kg"]:
            insights.append({"type": "success", "code": "high_productivity", "avg_kg": round(avg_kg)})
        elif 0 < avg_kg < INSIGHT_CONFIG["low_productivity_kg"]:
            insights.append({"type": "info", "code": "improvement_potential", "avg_kg": round(avg_kg)})

        if att["worked_days"] > 0:
            avg_hours = att["total_presence_minutes"] / att["worked_days"] / 60
            if avg_hours >= INSIGHT_CONFIG["full_day_hours"]:
                insights.append({"type": "success", "code": "full_hours", "avg_hours": round(avg_hours, 1)})

        return {
            "employee_id": emp.id,
            "employee_name": emp.name,
            "attendance": att,
            "production": prod,
            "insights": insights,
        }
