"""
kpi_service.py — Read → merge → recompute → upsert for each KPI category.

The engines are pure; this is the only layer that talks to the repository.
Every save recomputes the month from the full merged snapshot, so a stored
``kpi_value`` is always consistent with the stored employees/incidents/formulas.

Single writer assumed: there is no locking between the read and the upsert,
and concurrent saves to the same (team, category, month) lose updates
(last writer wins).
"""

import logging
import time
from typing import Any, Dict, Iterable, List, Optional

from opsboard.config import DEFAULT_MONTHLY_TARGETS, KPI_CATEGORIES
from opsboard.models.records import (
    AttendanceEmployee,
    EfficiencyEmployee,
    Formula,
    KPICategory,
    MonthlySnapshot,
    SafetyEmployee,
    coerce_all,
)
from opsboard.services.aggregate_repository import AggregateRepository, as_category
from opsboard.services.attendance_engine import AttendanceEngine
from opsboard.services.efficiency_engine import EfficiencyEngine
from opsboard.services.errors import KPIValidationError
from opsboard.services.formulation_engine import FormulationEngine
from opsboard.services.insights_engine import InsightsEngine
from opsboard.services.periods import (
    DateLike,
    in_month,
    iso_week_number,
    month_bounds,
    month_key,
    records_in_window,
    to_date,
    week_bounds,
    week_key,
)
from opsboard.services.production_engine import ProductionEngine
from opsboard.services.safety_engine import SafetyEngine
from opsboard.services.summary_engine import SummaryEngine

logger = logging.getLogger("opsboard-kpi.service")


def _ensure_in_month(dates: Iterable[Any], key, what: str) -> None:
    for d in dates:
        if not in_month(d, key):
            raise KPIValidationError(
                f"{what} dated {d.isoformat()} does not belong to {key.strftime('%Y-%m')}"
            )


class KPIService:

    def __init__(
        self,
        repository: AggregateRepository,
        *,
        attendance_engine: Optional[AttendanceEngine] = None,
        production_engine: Optional[ProductionEngine] = None,
        efficiency_engine: Optional[EfficiencyEngine] = None,
        safety_engine: Optional[SafetyEngine] = None,
        formulation_engine: Optional[FormulationEngine] = None,
    ) -> None:
        self.repository = repository
        self.attendance = attendance_engine or AttendanceEngine()
        self.production = production_engine or ProductionEngine()
        self.efficiency = efficiency_engine or EfficiencyEngine()
        self.safety = safety_engine or SafetyEngine()
        self.formulation = formulation_engine or FormulationEngine()
        self.summary = SummaryEngine()
        self.insights = InsightsEngine(self.attendance, self.production)

    # -----------------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------------

    async def get_month(self, team_id: str, category, month: DateLike) -> Optional[MonthlySnapshot]:
        return await self.repository.read_by_month(team_id, category, month)

    async def department_summary(self, team_id: str) -> Dict[str, Any]:
        snapshots = {
            category: await self.repository.list_by_category(team_id, category)
            for category in KPI_CATEGORIES
        }
        summary = self.summary.compose(snapshots)
        summary["team_id"] = team_id
        return summary

    async def employee_insights(
        self,
        team_id: str,
        employee_id: int,
        month: DateLike,
        *,
        week: Optional[DateLike] = None,
        start: Optional[DateLike] = None,
        end: Optional[DateLike] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Insights for one employee of the month's attendance snapshot.

        ``week`` (any day of it) selects the Monday-to-Sunday window of the
        weekly report; ``start``/``end`` give an explicit window instead.
        Either is clipped to the month. Returns ``None`` when the month or
        the employee is unknown.
        """
        if week is not None and (start is not None or end is not None):
            raise KPIValidationError("Pass either week or start/end, not both")

        snap = await self.repository.read_by_month(team_id, KPICategory.ATTENDANCE, month)
        if snap is None:
            return None
        employee = next((e for e in snap.employees if e.get("id") == employee_id), None)
        if employee is None:
            return None

        emp = AttendanceEmployee.model_validate(employee)
        first, last = month_bounds(snap.month_key)
        if week is not None:
            start, end = week_bounds(week)
        lo = max(to_date(start), first) if start is not None else first
        hi = min(to_date(end), last) if end is not None else last
        emp = emp.model_copy(update={
            "attendance_records": records_in_window(emp.attendance_records, lo, hi),
            "production_tasks": records_in_window(emp.production_tasks, lo, hi),
        })

        result = self.insights.employee_insights(emp)
        result["window"] = {
            "start": lo.isoformat(),
            "end": hi.isoformat(),
            "iso_week": iso_week_number(week_key(week)) if week is not None else None,
        }
        return result

    # -----------------------------------------------------------------------
    # Shared write path
    # -----------------------------------------------------------------------

    async def _load(self, team_id: str, category: KPICategory, month: DateLike) -> MonthlySnapshot:
        existing = await self.repository.read_by_month(team_id, category, month)
        if existing is not None:
            return existing
        return MonthlySnapshot(
            team_id=team_id,
            kpi_category=category,
            month_key=month_key(month),
            monthly_target=DEFAULT_MONTHLY_TARGETS[category.value],
        )

    async def _save(self, snap: MonthlySnapshot, started: float) -> MonthlySnapshot:
        stored = await self.repository.upsert(snap)
        logger.info(
            "KPI recomputed: %s = %s",
            snap.kpi_category.value, snap.kpi_value,
            extra={
                "team_id": snap.team_id,
                "kpi_category": snap.kpi_category.value,
                "month_key": snap.month_key.isoformat(),
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )
        return stored

    @staticmethod
    def _apply_common(snap: MonthlySnapshot, monthly_target: Optional[float], notes: Optional[str]) -> None:
        if monthly_target is not None:
            if monthly_target < 0:
                raise KPIValidationError(f"monthly_target cannot be negative; received {monthly_target}")
            snap.monthly_target = float(monthly_target)
        if notes is not None:
            snap.notes = notes

    # -----------------------------------------------------------------------
    # 1. Attendance (+ production)
    # -----------------------------------------------------------------------

    def _score_attendance(self, snap: MonthlySnapshot, employees: List[AttendanceEmployee]) -> None:
        team = self.attendance.aggregate_team(employees)
        production = self.production.aggregate_team(employees)
        breakdown = team.pop("employees")
        production_breakdown = production.pop("employees")

        snap.employees = [e.model_dump(mode="json") for e in employees]
        snap.kpi_value = team["attendance_rate"]
        snap.stats = {
            **team,
            "total_production": production["total_production"],
            "production_days": production["production_days"],
            "avg_production": production["avg_production"],
            "efficiency_proxy": production["efficiency_proxy"],
            "daily_totals": production["daily_totals"],
            "employee_breakdown": breakdown,
            "production_breakdown": production_breakdown,
        }

    async def record_attendance(
        self,
        team_id: str,
        month: DateLike,
        employees: Iterable[Any],
        *,
        monthly_target: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> MonthlySnapshot:
        """
        Merge attendance and production entries into the month.

        Employees merge by id. A record for an (employee, date) already
        stored replaces it; production tasks are appended.
        """
        started = time.perf_counter()
        incoming: List[AttendanceEmployee] = coerce_all(AttendanceEmployee, employees)
        key = month_key(month)
        for emp in incoming:
            _ensure_in_month([r.date for r in emp.attendance_records], key, "Attendance record")
            _ensure_in_month([t.date for t in emp.production_tasks], key, "Production task")

        snap = await self._load(team_id, KPICategory.ATTENDANCE, key)
        self._apply_common(snap, monthly_target, notes)

        merged: Dict[int, AttendanceEmployee] = {
            e.id: e for e in coerce_all(AttendanceEmployee, snap.employees)
        }
        for emp in incoming:
            current = merged.get(emp.id)
            if current is None:
                merged[emp.id] = emp
                continue
            by_date = {r.date: r for r in current.attendance_records}
            for rec in emp.attendance_records:
                by_date[rec.date] = rec
            merged[emp.id] = AttendanceEmployee(
                id=emp.id,
                name=emp.name or current.name,
                attendance_records=sorted(by_date.values(), key=lambda r: r.date),
                production_tasks=current.production_tasks + emp.production_tasks,
            )

        self._score_attendance(snap, list(merged.values()))
        return await self._save(snap, started)

    # -----------------------------------------------------------------------
    # 2. Efficiency
    # -----------------------------------------------------------------------

    def _score_efficiency(self, snap: MonthlySnapshot, employees: List[EfficiencyEmployee]) -> None:
        team = self.efficiency.aggregate_team(employees)
        rates = team.pop("employees")
        snap.employees = [e.model_dump(mode="json") for e in employees]
        snap.kpi_value = team["team_kpi"]
        snap.stats = {**team, "employee_rates": rates}

    async def record_efficiency(
        self,
        team_id: str,
        month: DateLike,
        employees: Iterable[Any],
        *,
        monthly_target: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> MonthlySnapshot:
        """Each incoming employee's task list replaces the stored one."""
        started = time.perf_counter()
        incoming: List[EfficiencyEmployee] = coerce_all(EfficiencyEmployee, employees)
        snap = await self._load(team_id, KPICategory.EFFICIENCY, month)
        self._apply_common(snap, monthly_target, notes)

        merged: Dict[int, EfficiencyEmployee] = {
            e.id: e for e in coerce_all(EfficiencyEmployee, snap.employees)
        }
        for emp in incoming:
            merged[emp.id] = emp

        self._score_efficiency(snap, list(merged.values()))
        return await self._save(snap, started)

    # -----------------------------------------------------------------------
    # 3. Safety
    # -----------------------------------------------------------------------

    def _score_safety(self, snap: MonthlySnapshot, employees: List[SafetyEmployee]) -> None:
        team = self.safety.aggregate_team(employees, snap.monthly_target)
        scores = team.pop("employees")
        snap.employees = [e.model_dump(mode="json") for e in employees]
        snap.incidents = [
            i.model_dump(mode="json") for e in employees for i in e.incidents
        ]
        snap.kpi_value = team["safety_score"]
        snap.stats = {**team, "employee_scores": scores}

    async def record_safety(
        self,
        team_id: str,
        month: DateLike,
        employees: Iterable[Any],
        *,
        monthly_target: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> MonthlySnapshot:
        """Incidents are appended to the employee they belong to."""
        started = time.perf_counter()
        incoming: List[SafetyEmployee] = coerce_all(SafetyEmployee, employees)
        key = month_key(month)
        for emp in incoming:
            _ensure_in_month([i.date for i in emp.incidents], key, "Incident")

        snap = await self._load(team_id, KPICategory.SAFETY, key)
        self._apply_common(snap, monthly_target, notes)

        merged: Dict[int, SafetyEmployee] = {
            e.id: e for e in coerce_all(SafetyEmployee, snap.employees)
        }
        for emp in incoming:
            current = merged.get(emp.id)
            if current is None:
                merged[emp.id] = emp
                continue
            merged[emp.id] = SafetyEmployee(
                id=emp.id,
                name=emp.name or current.name,
                incidents=current.incidents + emp.incidents,
                notes=emp.notes or current.notes,
            )

        self._score_safety(snap, list(merged.values()))
        return await self._save(snap, started)

    # -----------------------------------------------------------------------
    # 4. Formulation
    # -----------------------------------------------------------------------

    def _score_formulation(self, snap: MonthlySnapshot, formulas: List[Formula]) -> None:
        result = self.formulation.aggregate(formulas)
        scored = result.pop("formulas")
        snap.formulas = [f.model_dump(mode="json") for f in formulas]
        snap.kpi_value = result["global_kpi"]
        snap.stats = {**result, "formula_scores": scored}

    async def record_formulation(
        self,
        team_id: str,
        month: DateLike,
        formulas: Iterable[Any],
        *,
        monthly_target: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> MonthlySnapshot:
        """Formulas replace stored ones with the same name; new names are added."""
        started = time.perf_counter()
        incoming: List[Formula] = coerce_all(Formula, formulas)
        snap = await self._load(team_id, KPICategory.FORMULATION, month)
        self._apply_common(snap, monthly_target, notes)

        merged: Dict[str, Formula] = {f.name: f for f in coerce_all(Formula, snap.formulas)}
        for formula in incoming:
            merged[formula.name] = formula

        self._score_formulation(snap, list(merged.values()))
        return await self._save(snap, started)

    # -----------------------------------------------------------------------
    # 5. Roster removal
    # -----------------------------------------------------------------------

    async def remove_employee(self, team_id: str, category, month: DateLike, employee_id: int) -> Optional[MonthlySnapshot]:
        """
        Drop an employee and everything they own from one month, then rescore.

        Returns ``None`` when the month has no snapshot. Formulation
        snapshots carry no employees and are rejected.
        """
        cat = as_category(category)
        if cat is KPICategory.FORMULATION:
            raise KPIValidationError("Formulation snapshots have no employees")

        started = time.perf_counter()
        snap = await self.repository.read_by_month(team_id, cat, month)
        if snap is None:
            return None

        remaining = [e for e in snap.employees if e.get("id") != employee_id]
        if cat is KPICategory.ATTENDANCE:
            self._score_attendance(snap, coerce_all(AttendanceEmployee, remaining))
        elif cat is KPICategory.EFFICIENCY:
            self._score_efficiency(snap, coerce_all(EfficiencyEmployee, remaining))
        else:
            self._score_safety(snap, coerce_all(SafetyEmployee, remaining))
        return await self._save(snap, started)
