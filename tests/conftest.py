import pytest

from lemonlaw.services.laffey_service import RateSchedule, TimeEntry


@pytest.fixture
def schedule():
    """2023-2024 style rate schedule with distinct rates per tier"""
    return RateSchedule(
        tier1to3_rate=413,
        tier4to7_rate=508,
        tier8to10_rate=585,
        tier11to19_rate=661,
        tier20_plus_rate=798,
        paralegal_rate=225,
        period_start="2023-06-01",
        period_end="2024-05-31",
        adjustment_factor=1.0,
    )


@pytest.fixture
def blended_entries():
    return [
        TimeEntry(attorney="A", hours=10, billed_rate=500, years_experience=9),
        TimeEntry(attorney="A", hours=5, billed_rate=600, years_experience=9),
    ]


@pytest.fixture
def export_dir(tmp_path, monkeypatch):
    from lemonlaw.core.config import settings

    path = tmp_path / "exports"
    monkeypatch.setattr(settings, "EXPORT_DIR", str(path))
    return path
