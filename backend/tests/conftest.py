"""
conftest.py — Shared pytest fixtures for the Ops Board KPI test suite.

Engine tests are pure unit tests. Repository tests run against an in-memory
SQLite database through aiosqlite; service and route tests use the
in-memory repository.

Import-path bootstrapping:
    The ``backend/`` directory is inserted into sys.path so that all
    ``opsboard.*`` imports resolve correctly regardless of where pytest is invoked.
"""

import sys
import os
import pytest

# ---------------------------------------------------------------------------
# Ensure ``backend/`` is on the import path before any opsboard imports occur.
# ---------------------------------------------------------------------------
_BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)


# ---------------------------------------------------------------------------
# Engine fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def attendance_engine():
    from opsboard.services.attendance_engine import AttendanceEngine
    return AttendanceEngine()


@pytest.fixture(scope="session")
def production_engine():
    """ProductionEngine with 1000 kg/day as full productivity."""
    from opsboard.services.production_engine import ProductionEngine
    return ProductionEngine(full_productivity_kg=1000.0)


@pytest.fixture(scope="session")
def efficiency_engine():
    from opsboard.services.efficiency_engine import EfficiencyEngine
    return EfficiencyEngine()


@pytest.fixture(scope="session")
def safety_engine():
    """SafetyEngine with default weights: minor 5, moderate 10, major 20, critical 40."""
    from opsboard.services.safety_engine import SafetyEngine
    return SafetyEngine()


@pytest.fixture(scope="session")
def formulation_engine():
    from opsboard.services.formulation_engine import FormulationEngine
    return FormulationEngine()


@pytest.fixture(scope="session")
def summary_engine():
    from opsboard.services.summary_engine import SummaryEngine
    return SummaryEngine()


@pytest.fixture(scope="session")
def insights_engine():
    from opsboard.services.insights_engine import InsightsEngine
    from opsboard.services.production_engine import ProductionEngine
    return InsightsEngine(production_engine=ProductionEngine(full_productivity_kg=1000.0))


# ---------------------------------------------------------------------------
# Repository / service fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def memory_repository():
    from opsboard.services.aggregate_repository import InMemoryAggregateRepository
    return InMemoryAggregateRepository()


@pytest.fixture
def kpi_service(memory_repository):
    from opsboard.services.kpi_service import KPIService
    from opsboard.services.production_engine import ProductionEngine
    return KPIService(
        memory_repository,
        production_engine=ProductionEngine(full_productivity_kg=1000.0),
    )


# ---------------------------------------------------------------------------
# Shared sample data
# ---------------------------------------------------------------------------

@pytest.fixture
def march_attendance():
    """
    Ten March 2025 days for one employee:
      7 plain worked days (one of them 15 min late),
      1 Autorisation day (worked, placeholder presence),
      1 Congé, 1 Maladie.
    worked = 8 of 10 → attendance 80; punctuality = (8 − 1) / 8 → 88.
    """
    days = []
    for day in range(3, 10):
        days.append({
            "date": f"2025-03-{day:02d}",
            "actual_entry": "08:00",
            "actual_exit": "16:00",
            "retard": "00:15" if day == 4 else None,
        })
    days.append({"date": "2025-03-10", "motif": "Autorisation"})
    days.append({"date": "2025-03-11", "motif": "Congé"})
    days.append({"date": "2025-03-12", "motif": "Maladie"})
    return days


@pytest.fixture
def sample_formulas():
    return [
        {
            "name": "Adhesive A-12",
            "ingredients": ["resin", "hardener"],
            "maxEssais": 5,
            "target": 80,
            "essais": [{"result": "passed"}] * 4 + [{"result": "failed"}],
        },
        {
            "name": "Sealant S-3",
            "ingredients": ["silicone"],
            "maxEssais": 5,
            "target": 80,
            "essais": [],
        },
    ]
