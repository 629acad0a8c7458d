"""
test_insights_engine.py — Per-employee insight tags.
"""


def _codes(result):
    return [i["code"] for i in result["insights"]]


def _day(day: int, retard=None, entry="08:00", exit_="16:00"):
    return {"date": f"2025-06-{day:02d}", "actual_entry": entry, "actual_exit": exit_, "retard": retard}


class TestEmployeeInsights:

    def test_frequent_lateness(self, insights_engine):
        """6 late days is more than the threshold of 5."""
        employee = {
            "id": 1, "name": "Amine",
            "attendance_records": [_day(d, retard="00:20") for d in range(1, 7)],
        }
        result = insights_engine.employee_insights(employee)
        warning = result["insights"][0]
        assert warning["code"] == "frequent_lateness"
        assert warning["late_days"] == 6
        assert warning["avg_late_minutes"] == 20

    def test_five_late_days_is_not_frequent(self, insights_engine):
        employee = {
            "id": 1, "name": "Amine",
            "attendance_records": [_day(d, retard="00:05") for d in range(1, 6)],
        }
        assert "frequent_lateness" not in _codes(insights_engine.employee_insights(employee))

    def test_punctual_full_days_high_output(self, insights_engine):
        employee = {
            "id": 2, "name": "Sara",
            "attendance_records": [_day(2), _day(3)],
            "production_tasks": [
                {"date": "2025-06-02", "quantity_kg": 1200},
                {"date": "2025-06-03", "quantity_kg": 1100},
            ],
        }
        result = insights_engine.employee_insights(employee)
        assert _codes(result) == ["excellent_punctuality", "high_productivity", "full_hours"]
        assert result["employee_name"] == "Sara"
        assert result["production"]["total_production"] == 2300

    def test_low_output_and_short_days(self, insights_engine):
        employee = {
            "id": 3, "name": "Youssef",
            "attendance_records": [_day(2, exit_="14:00")],
            "production_tasks": [{"date": "2025-06-02", "quantity_kg": 300}],
        }
        codes = _codes(insights_engine.employee_insights(employee))
        assert "improvement_potential" in codes
        assert "full_hours" not in codes

    def test_no_data_no_insights(self, insights_engine):
        result = insights_engine.employee_insights({"id": 4, "name": "Nadia"})
        assert result["insights"] == []
