from datetime import datetime

from complaint_desk.services.analytics_service import (
    average_hours, hours_between, monthly_counts, months_ago, range_start,
)

def test_months_ago_wraps_year():
    assert months_ago(datetime(2024, 2, 15), 3) == datetime(2023, 11, 15)
    assert months_ago(datetime(2024, 1, 10), 12) == datetime(2023, 1, 10)

def test_months_ago_clamps_day_to_month_end():
    assert months_ago(datetime(2024, 3, 31), 1) == datetime(2024, 2, 29)
    assert months_ago(datetime(2023, 5, 31), 1) == datetime(2023, 4, 30)

def test_range_start_defaults_to_six_months():
    now = datetime(2024, 8, 20, 12, 0)
    assert range_start("1month", now) == datetime(2024, 7, 20, 12, 0)
    assert range_start("1year", now) == datetime(2023, 8, 20, 12, 0)
    assert range_start("bogus", now) == datetime(2024, 2, 20, 12, 0)

def test_average_hours():
    rows = [
        ("TECHNICAL", datetime(2024, 1, 1, 0, 0), datetime(2024, 1, 1, 2, 0)),
        ("SERVICE", datetime(2024, 1, 1, 0, 0), datetime(2024, 1, 1, 3, 20)),
    ]
    assert average_hours(rows) == 2.67
    assert average_hours([]) == 0.0
    assert hours_between(datetime(2024, 1, 1), None) == 0.0

def test_monthly_counts_sorted_by_month():
    dates = [datetime(2024, 3, 5), datetime(2024, 1, 9), datetime(2024, 3, 28), None]
    assert monthly_counts(dates) == {"2024-01": 1, "2024-03": 2}
