"""
test_import_safety.py — Import hygiene and engine purity checks.

Verifies that:
  1. Every opsboard module imports cleanly (no circular imports).
  2. The scoring engines do not depend on the persistence or HTTP layers.
  3. Importing the database module does not create an engine or connect.
  4. The JSON log formatter carries the team/category/month context fields.

No database, network, or external services are required.
"""

import importlib
import json
import logging

import pytest


_MODULES = [
    "opsboard.config",
    "opsboard.services.errors",
    "opsboard.services.duration",
    "opsboard.services.periods",
    "opsboard.models.records",
    "opsboard.models.orm_models",
    "opsboard.services.attendance_engine",
    "opsboard.services.production_engine",
    "opsboard.services.efficiency_engine",
    "opsboard.services.safety_engine",
    "opsboard.services.formulation_engine",
    "opsboard.services.summary_engine",
    "opsboard.services.insights_engine",
    "opsboard.services.aggregate_repository",
    "opsboard.services.kpi_service",
    "opsboard.services.logging_config",
    "opsboard.services.middleware",
    "opsboard.api.deps",
    "opsboard.api.kpi_routes",
]

_PURE_ENGINES = [
    "opsboard.services.attendance_engine",
    "opsboard.services.production_engine",
    "opsboard.services.efficiency_engine",
    "opsboard.services.safety_engine",
    "opsboard.services.formulation_engine",
    "opsboard.services.summary_engine",
    "opsboard.services.insights_engine",
]


class TestModuleImports:

    @pytest.mark.parametrize("module_path", _MODULES)
    def test_module_imports(self, module_path):
        mod = importlib.import_module(module_path)
        assert mod is not None


class TestEnginePurity:

    @pytest.mark.parametrize("module_path", _PURE_ENGINES)
    def test_engine_has_no_storage_or_http_imports(self, module_path):
        """Engines are pure functions of their input records."""
        mod = importlib.import_module(module_path)
        for name in ("sqlalchemy", "fastapi", "AggregateRepository", "get_session_factory"):
            assert name not in vars(mod), f"{module_path} reaches into {name}"

    def test_db_import_does_not_connect(self):
        import opsboard.db as db
        # Engine is created lazily on first get_engine() call
        assert not hasattr(db, "engine")
        assert db._engine is None

    def test_db_exposes_only_the_session_factory_path(self):
        """Stores open sessions through get_session_factory(); there is no per-request session generator."""
        import opsboard.db as db
        assert not hasattr(db, "get_db")
        for name in ("build_engine", "build_session_factory", "get_session_factory", "init_db", "dispose_db"):
            assert callable(getattr(db, name))


class TestJSONFormatter:

    def test_context_fields_serialised(self):
        from opsboard.services.logging_config import JSONFormatter

        record = logging.LogRecord(
            name="opsboard-kpi.service", level=logging.INFO, pathname=__file__, lineno=1,
            msg="KPI recomputed: %s = %s", args=("safety", 55), exc_info=None,
        )
        record.team_id = "team-1"
        record.kpi_category = "safety"
        record.month_key = "2025-06-01"

        entry = json.loads(JSONFormatter().format(record))
        assert entry["message"] == "KPI recomputed: safety = 55"
        assert entry["team_id"] == "team-1"
        assert entry["kpi_category"] == "safety"
        assert entry["month_key"] == "2025-06-01"
        assert "duration_ms" not in entry
