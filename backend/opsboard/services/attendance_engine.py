"""
attendance_engine.py — Monthly attendance and punctuality aggregation.

Covers:
  - Worked / late / leave-day counts over a month of daily records
  - Attendance KPI (worked days over recorded days)
  - Punctuality rate (on-time share of worked days)
  - Per-employee breakdown using the same rules

A day with a motif, or with no presence, is never a late day even if a
retard was typed in: lateness only exists for employees who actually
clocked in, so late days never exceed worked days.
"""

from typing import Any, Dict, Iterable, List

from opsboard.config import ATTENDANCE_NO_DATA_SCORE, PUNCTUALITY_NO_DATA_SCORE
from opsboard.models.records import AttendanceEmployee, AttendanceRecord, coerce_all
from opsboard.services.duration import parse_duration, round_half_up


class AttendanceEngine:
    """
    Stateless attendance aggregator. Every call recomputes from the full
    record list; nothing is cached between calls.
    """

    # -----------------------------------------------------------------------
    # 1. Record-level aggregation
    # -----------------------------------------------------------------------

    def aggregate(self, records: Iterable[Any]) -> Dict[str, Any]:
        """
        Aggregate one month of ``AttendanceRecord`` (or equivalent dicts).

        Returns counts, total/average lateness, leave buckets, the attendance
        KPI and the punctuality rate.
        """
        recs: List[AttendanceRecord] = coerce_all(AttendanceRecord, records)

        worked_days = 0
        late_days = 0
        total_late_minutes = 0
        total_presence_minutes = 0
        leave = {"conge": 0, "maladie": 0, "absence": 0}

        for rec in recs:
            if self._is_worked(rec):
                worked_days += 1
                total_presence_minutes += parse_duration(rec.presence)

            if rec.motif is None:
                # A retard on a day with no presence was never clocked in
                late_min = parse_duration(rec.retard) if self._is_worked(rec) else 0
                if late_min > 0:
                    late_days += 1
                    total_late_minutes += late_min
            else:
                leave[rec.motif.leave_bucket] += 1

        total_records = len(recs)
        return {
            "total_records": total_records,
            "worked_days": worked_days,
            "late_days": late_days,
            "total_late_minutes": total_late_minutes,
            "avg_late_minutes": round_half_up(total_late_minutes / late_days) if late_days else 0,
            "total_presence_minutes": total_presence_minutes,
            "conge_days": leave["conge"],
            "maladie_days": leave["maladie"],
            "absence_days": leave["absence"],
            "attendance_rate": self.attendance_rate(worked_days, total_records),
            "punctuality_rate": self.punctuality_rate(worked_days, late_days),
        }

    @staticmethod
    def _is_worked(rec: AttendanceRecord) -> bool:
        if rec.motif is not None and rec.motif.excludes_work:
            return False
        return parse_duration(rec.presence) > 0

    @staticmethod
    def attendance_rate(worked_days: int, total_records: int) -> int:
        """round(worked / total × 100); a month without records scores 100."""
        if total_records == 0:
            return ATTENDANCE_NO_DATA_SCORE
        return round_half_up(worked_days / total_records * 100)

    @staticmethod
    def punctuality_rate(present_days: int, late_days: int) -> int:
        """round((present − late) / present × 100); 100 with no present days."""
        if present_days == 0:
            return PUNCTUALITY_NO_DATA_SCORE
        return round_half_up((present_days - late_days) / present_days * 100)

    # -----------------------------------------------------------------------
    # 2. Employee-level aggregation
    # -----------------------------------------------------------------------

    def aggregate_employee(self, employee: Any) -> Dict[str, Any]:
        emp = employee if isinstance(employee, AttendanceEmployee) else AttendanceEmployee.model_validate(employee)
        return {
            "employee_id": emp.id,
            "employee_name": emp.name,
            **self.aggregate(emp.attendance_records),
        }

    def aggregate_team(self, employees: Iterable[Any]) -> Dict[str, Any]:
        """
        Team-wide figures over every employee's records, plus the
        per-employee breakdown. The team KPI is computed over the pooled
        records, not as a mean of employee rates.
        """
        emps: List[AttendanceEmployee] = coerce_all(AttendanceEmployee, employees)
        pooled: List[AttendanceRecord] = []
        for emp in emps:
            pooled.extend(emp.attendance_records)

        team = self.aggregate(pooled)
        team["employee_count"] = len(emps)
        team["present_employees"] = sum(
            1 for emp in emps
            if any(self._is_worked(r) for r in emp.attendance_records)
        )
        team["employees"] = [self.aggregate_employee(emp) for emp in emps]
        return team
