"""
Team KPI routes.

The dashboard forms save one category at a time for one month; each save is
merged into the stored snapshot and the KPI is recomputed server-side.
"""
import logging
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from opsboard.api.deps import get_kpi_service
from opsboard.models.records import (
    AttendanceEmployee,
    EfficiencyEmployee,
    Formula,
    KPICategory,
    MonthlySnapshot,
    SafetyEmployee,
)
from opsboard.services.kpi_service import KPIService

router = APIRouter(prefix="/api/v1/teams", tags=["Team KPIs"])
logger = logging.getLogger("opsboard-api")


class _MonthlySave(BaseModel):
    month: date = Field(..., description="Any date in the month being saved")
    monthly_target: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None


class AttendanceSaveRequest(_MonthlySave):
    employees: List[AttendanceEmployee]


class EfficiencySaveRequest(_MonthlySave):
    employees: List[EfficiencyEmployee]


class SafetySaveRequest(_MonthlySave):
    employees: List[SafetyEmployee]


class FormulationSaveRequest(_MonthlySave):
    formulas: List[Formula]


@router.get("/{team_id}/kpi/{category}", response_model=MonthlySnapshot)
async def get_month(
    team_id: str,
    category: KPICategory,
    month: date = Query(..., description="Any date in the month"),
    service: KPIService = Depends(get_kpi_service),
):
    snap = await service.get_month(team_id, category, month)
    if snap is None:
        raise HTTPException(status_code=404, detail=f"No {category.value} data for {month.strftime('%Y-%m')}")
    return snap


@router.put("/{team_id}/kpi/attendance", response_model=MonthlySnapshot)
async def save_attendance(
    team_id: str,
    req: AttendanceSaveRequest,
    service: KPIService = Depends(get_kpi_service),
):
    return await service.record_attendance(
        team_id, req.month, req.employees,
        monthly_target=req.monthly_target, notes=req.notes,
    )


@router.put("/{team_id}/kpi/efficiency", response_model=MonthlySnapshot)
async def save_efficiency(
    team_id: str,
    req: EfficiencySaveRequest,
    service: KPIService = Depends(get_kpi_service),
):
    return await service.record_efficiency(
        team_id, req.month, req.employees,
        monthly_target=req.monthly_target, notes=req.notes,
    )


@router.put("/{team_id}/kpi/safety", response_model=MonthlySnapshot)
async def save_safety(
    team_id: str,
    req: SafetySaveRequest,
    service: KPIService = Depends(get_kpi_service),
):
    return await service.record_safety(
        team_id, req.month, req.employees,
        monthly_target=req.monthly_target, notes=req.notes,
    )


@router.put("/{team_id}/kpi/formulation", response_model=MonthlySnapshot)
async def save_formulation(
    team_id: str,
    req: FormulationSaveRequest,
    service: KPIService = Depends(get_kpi_service),
):
    return await service.record_formulation(
        team_id, req.month, req.formulas,
        monthly_target=req.monthly_target, notes=req.notes,
    )


@router.delete("/{team_id}/kpi/{category}/employees/{employee_id}", response_model=MonthlySnapshot)
async def remove_employee(
    team_id: str,
    category: KPICategory,
    employee_id: int,
    month: date = Query(...),
    service: KPIService = Depends(get_kpi_service),
):
    """Remove an employee and their records from one month, then rescore it."""
    snap = await service.remove_employee(team_id, category, month, employee_id)
    if snap is None:
        raise HTTPException(status_code=404, detail=f"No {category.value} data for {month.strftime('%Y-%m')}")
    logger.info(
        f"Employee {employee_id} removed from {category.value} {month.strftime('%Y-%m')}",
        extra={"team_id": team_id, "kpi_category": category.value},
    )
    return snap


@router.get("/{team_id}/summary")
async def department_summary(
    team_id: str,
    service: KPIService = Depends(get_kpi_service),
):
    """Latest value and status per KPI category."""
    return await service.department_summary(team_id)


@router.get("/{team_id}/employees/{employee_id}/insights")
async def employee_insights(
    team_id: str,
    employee_id: int,
    month: date = Query(...),
    week: Optional[date] = Query(None, description="Any day of the week to report on"),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    service: KPIService = Depends(get_kpi_service),
):
    result = await service.employee_insights(
        team_id, employee_id, month, week=week, start=start, end=end,
    )
    if result is None:
        raise HTTPException(status_code=404, detail=f"Employee {employee_id} has no attendance in {month.strftime('%Y-%m')}")
    return result
