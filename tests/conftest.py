import matplotlib

matplotlib.use("Agg")

import pytest

from contact_records import records_frame


@pytest.fixture
def make_records():
    """Build a record set from (case, contact, date, contact_type) tuples."""
    def _make(rows):
        return records_frame(rows)
    return _make


@pytest.fixture
def scenario_one():
    return [
        ("CS1", "P1", "2020-10-01", "Household"),
        ("CS1", "P2", "2020-10-01", "Non-Resident"),
    ]


@pytest.fixture
def scenario_two(scenario_one):
    return scenario_one + [("CS1", "P3", "2020-10-02", "Household")]
