"""Error taxonomy for the KPI engine.

A month with no aggregate is not an error: repositories return ``None``.
"""


class KPIValidationError(ValueError):
    """Malformed engine input (bad duration, unknown severity, negative quantity)."""


class PersistenceError(RuntimeError):
    """The aggregate store failed. Raised at the repository boundary, never retried."""

    def __init__(self, message: str, *, team_id: str = "", kpi_category: str = "", month_key: str = ""):
        super().__init__(message)
        self.team_id = team_id
        self.kpi_category = kpi_category
        self.month_key = month_key
