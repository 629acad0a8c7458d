"""
KPI engine configuration — single source of truth for scoring weights,
status thresholds, default targets and environment-driven settings.

Import from here in all engines and services rather than hardcoding values.
"""
from __future__ import annotations

import os


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number; received {raw!r}")


# ── KPI categories ─────────────────────────────────────────────────────────────
# Order matters: it is the card order on the department summary.
KPI_CATEGORIES: list[str] = [
    "attendance",
    "efficiency",
    "safety",
    "formulation",
]

# Default monthly targets per category (from the dashboard KPI definitions).
# Safety target is a maximum tolerable incident count, the others are percents.
DEFAULT_MONTHLY_TARGETS: dict[str, float] = {
    "attendance":  95,
    "efficiency":  87,
    "safety":      2,
    "formulation": 85,
}


# ── Status thresholds (department summary cards) ───────────────────────────────

STATUS_EXCELLENT_MIN: float = 90.0
STATUS_GOOD_MIN: float = 75.0


# ── Attendance ─────────────────────────────────────────────────────────────────

# Presence recorded on a day carrying a motif (leave days are nominal full days)
MOTIF_PRESENCE_PLACEHOLDER: str = "08:00"

# Sentinel when a month has no attendance records / no worked days
ATTENDANCE_NO_DATA_SCORE: int = 100
PUNCTUALITY_NO_DATA_SCORE: int = 100


# ── Production ─────────────────────────────────────────────────────────────────

# kg/day treated as "100 % productivity" by the attendance-form efficiency proxy.
# Heuristic, overridable per deployment.
FULL_PRODUCTIVITY_KG_PER_DAY: float = _env_float("OPSBOARD_FULL_PRODUCTIVITY_KG", 1000.0)


# ── Safety ─────────────────────────────────────────────────────────────────────

SEVERITY_WEIGHTS: dict[str, int] = {
    "minor":    5,
    "moderate": 10,
    "major":    20,
    "critical": 40,
}

SAFETY_NO_INCIDENT_SCORE: int = 100


# ── Formulation ────────────────────────────────────────────────────────────────

FORMULA_SUCCESS_WEIGHT: float = 0.7
FORMULA_COMPLETION_WEIGHT: float = 0.3
DEFAULT_MAX_ESSAIS: int = 5
DEFAULT_FORMULA_TARGET: float = 80.0
# Below the formula's own target but at least this success rate → "warning"
FORMULA_WARNING_SUCCESS_MIN: float = 50.0


# ── Employee insights ──────────────────────────────────────────────────────────

INSIGHT_CONFIG: dict[str, float] = {
    # More late days than this in the window → frequent lateness warning
    "frequent_lateness_days": 5,
    # Average kg per production entry
    "high_productivity_kg": 1000.0,
    "low_productivity_kg": 500.0,
    # Average presence per worked day, in hours
    "full_day_hours": 8.0,
}
