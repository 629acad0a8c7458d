"""
Record schema for the KPI engine — pydantic v2 models and enums.

Free-text values coming from the dashboard forms (motifs, severities,
schedules) are parsed into enums here, once, so the engines never have to
string-match. Everything the engines receive has already passed through
these models.
"""
import datetime as dt
import unicodedata
from enum import Enum
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from opsboard.config import (
    DEFAULT_FORMULA_TARGET,
    DEFAULT_MAX_ESSAIS,
    MOTIF_PRESENCE_PLACEHOLDER,
)
from opsboard.services.duration import elapsed_minutes, format_duration, is_valid_hhmm


# ── Enums ─────────────────────────────────────────────────────────────────────

class Schedule(str, Enum):
    DAYTIME = "Daytime"
    SAM = "SAM"
    NIGHT = "Night"


class Motif(str, Enum):
    CONGE = "Congé"
    MALADIE = "Maladie"
    MALADIE_P = "Maladie P"
    AUTORISATION = "Autorisation"
    ABSENCE = "Absence"
    OTHER = "Autre"

    @property
    def excludes_work(self) -> bool:
        """Leave, sickness and absence days are never worked days."""
        return self in (Motif.CONGE, Motif.MALADIE, Motif.MALADIE_P, Motif.ABSENCE)

    @property
    def leave_bucket(self) -> str:
        if self is Motif.CONGE:
            return "conge"
        if self in (Motif.MALADIE, Motif.MALADIE_P):
            return "maladie"
        return "absence"


class Severity(str, Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    MAJOR = "major"
    CRITICAL = "critical"


class IncidentType(str, Enum):
    SLIP_FALL = "slip_fall"
    CUT_INJURY = "cut_injury"
    CHEMICAL_EXPOSURE = "chemical_exposure"
    EQUIPMENT_MALFUNCTION = "equipment_malfunction"
    NEAR_MISS = "near_miss"
    FIRE = "fire"
    VEHICLE = "vehicle"
    VIOLENCE = "violence"
    OTHER = "other"


class TrialResult(str, Enum):
    PASSED = "passed"
    FAILED = "failed"


class KPICategory(str, Enum):
    ATTENDANCE = "attendance"
    EFFICIENCY = "efficiency"
    SAFETY = "safety"
    FORMULATION = "formulation"


class KPIStatus(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    NEEDS_ATTENTION = "needs-attention"
    NO_DATA = "no-data"


def _fold(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).strip().lower()


def parse_motif(raw: Any) -> Optional[Motif]:
    """
    Map a free-text motif onto ``Motif``.

    Blank and "none" mean no motif. Unrecognised reasons land in ``Motif.OTHER``
    so they are still counted as absences.
    """
    if raw is None or isinstance(raw, Motif):
        return raw
    text = str(raw).strip()
    key = _fold(text)
    if not key or key in ("none", "null", "aucun"):
        return None
    if "conge" in key:
        return Motif.CONGE
    if key.startswith("maladie"):
        return Motif.MALADIE if key == "maladie" else Motif.MALADIE_P
    if key.startswith("autorisation"):
        return Motif.AUTORISATION
    if key.startswith("absence") or key == "absent":
        return Motif.ABSENCE
    return Motif.OTHER


def _hhmm_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if not is_valid_hhmm(text):
        raise ValueError(f"expected HH:MM, got {value!r}")
    return text


# ── Daily records ─────────────────────────────────────────────────────────────

class AttendanceRecord(BaseModel):
    """One employee, one calendar day."""
    date: dt.date
    schedule: Schedule = Schedule.DAYTIME
    actual_entry: Optional[str] = None
    actual_exit: Optional[str] = None
    motif: Optional[Motif] = None
    retard: Optional[str] = None
    presence: Optional[str] = None

    @field_validator("motif", mode="before")
    @classmethod
    def _parse_motif(cls, v):
        return parse_motif(v)

    @field_validator("actual_entry", "actual_exit", "retard", "presence", mode="before")
    @classmethod
    def _check_hhmm(cls, v):
        return _hhmm_or_none(v)

    @model_validator(mode="after")
    def _apply_motif_rules(self):
        # A day with a motif has no clock times and no lateness
        if self.motif is not None:
            self.actual_entry = None
            self.actual_exit = None
            self.retard = None
            self.presence = MOTIF_PRESENCE_PLACEHOLDER
        elif self.presence is None:
            if self.actual_entry and self.actual_exit:
                minutes = elapsed_minutes(
                    self.actual_entry,
                    self.actual_exit,
                    overnight=self.schedule is Schedule.NIGHT,
                )
                self.presence = format_duration(minutes)
            else:
                self.presence = "00:00"
        return self


class ProductionTask(BaseModel):
    date: dt.date
    quantity_kg: float = Field(..., ge=0)
    description: str = ""

    @model_validator(mode="before")
    @classmethod
    def _legacy_quantity(cls, data):
        # Older snapshots stored the amount under "quantity"
        if isinstance(data, dict) and "quantity_kg" not in data and "quantity" in data:
            data = {**data, "quantity_kg": data["quantity"]}
        return data


class EfficiencyTask(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    description: str = ""
    completed: bool = False
    priority: Literal["low", "medium", "high"] = "medium"
    estimated_minutes: int = Field(0, ge=0, alias="estimatedMinutes")


class SafetyIncident(BaseModel):
    employee: str = ""
    type: IncidentType = IncidentType.OTHER
    severity: Severity
    description: str = ""
    time: Optional[str] = None
    date: dt.date

    @field_validator("severity", mode="before")
    @classmethod
    def _lower_severity(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("time", mode="before")
    @classmethod
    def _check_time(cls, v):
        return _hhmm_or_none(v)


# ── Formulation ───────────────────────────────────────────────────────────────

class Trial(BaseModel):
    result: TrialResult
    date: Optional[dt.date] = None
    notes: str = ""


class Formula(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1)
    ingredients: List[str]
    max_essais: int = Field(DEFAULT_MAX_ESSAIS, ge=1, alias="maxEssais")
    target: float = Field(DEFAULT_FORMULA_TARGET, ge=0, le=100)
    essais: List[Trial] = Field(default_factory=list)
    created_at: Optional[dt.date] = None

    @field_validator("ingredients")
    @classmethod
    def _ingredients_unique(cls, v: List[str]) -> List[str]:
        names = [str(i).strip() for i in v]
        if not names or any(not n for n in names):
            raise ValueError("a formula needs at least one named ingredient")
        folded = [n.casefold() for n in names]
        if len(set(folded)) != len(folded):
            raise ValueError("duplicate ingredient in formula")
        return names


# ── Per-employee month rows ───────────────────────────────────────────────────

class Employee(BaseModel):
    id: int
    name: str = ""


class AttendanceEmployee(Employee):
    attendance_records: List[AttendanceRecord] = Field(default_factory=list)
    production_tasks: List[ProductionTask] = Field(default_factory=list)

    @field_validator("attendance_records")
    @classmethod
    def _one_record_per_day(cls, v: List[AttendanceRecord]) -> List[AttendanceRecord]:
        seen = set()
        for rec in v:
            if rec.date in seen:
                raise ValueError(f"more than one attendance record for {rec.date.isoformat()}")
            seen.add(rec.date)
        return v


class EfficiencyEmployee(Employee):
    tasks: List[EfficiencyTask] = Field(default_factory=list)
    notes: str = ""


class SafetyEmployee(Employee):
    incidents: List[SafetyIncident] = Field(default_factory=list)
    notes: str = ""

    @model_validator(mode="after")
    def _tag_incidents(self):
        for incident in self.incidents:
            if not incident.employee:
                incident.employee = self.name or str(self.id)
        return self


# ── Persisted aggregate ───────────────────────────────────────────────────────

class MonthlySnapshot(BaseModel):
    """Full snapshot of one (team, category, month). Saves replace it wholesale."""
    # Engines assign kpi_value/stats in place; keep the 0..100 bound enforced
    model_config = ConfigDict(validate_assignment=True)

    team_id: str = Field(..., min_length=1)
    kpi_category: KPICategory
    month_key: dt.date
    kpi_value: Optional[int] = Field(None, ge=0, le=100)
    monthly_target: float = 0
    employees: List[dict] = Field(default_factory=list)
    incidents: List[dict] = Field(default_factory=list)
    formulas: List[dict] = Field(default_factory=list)
    stats: dict = Field(default_factory=dict)
    notes: str = ""
    updated_at: Optional[dt.datetime] = None

    @field_validator("month_key", mode="after")
    @classmethod
    def _first_of_month(cls, v: dt.date) -> dt.date:
        return v.replace(day=1)


def coerce_all(model, items) -> list:
    """Validate dicts into ``model`` instances; instances pass through untouched."""
    return [item if isinstance(item, model) else model.model_validate(item) for item in (items or [])]
