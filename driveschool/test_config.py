import pytest

from driveschool.config import (
    AppConfig, SchedulingConfig, _safe_bool, _safe_int, _validate_config
)


def test_defaults_are_valid():
    _validate_config(AppConfig())


@pytest.mark.parametrize("field,value", [
    ("retention_days", 0),
    ("max_students_per_exam", 0),
    ("view_bucket_limit", -1),
    ("default_category_name", "  "),
])
def test_out_of_range_values_are_rejected(field, value):
    config = AppConfig(scheduling=SchedulingConfig(**{field: value}))
    with pytest.raises(ValueError):
        _validate_config(config)


def test_env_parsing(monkeypatch):
    monkeypatch.setenv("RETENTION_DAYS", "45")
    monkeypatch.setenv("VEHICLE_MANAGEMENT_ENABLED", "Off")
    assert _safe_int("RETENTION_DAYS", "30") == 45
    assert _safe_bool("VEHICLE_MANAGEMENT_ENABLED", "true") is False

    monkeypatch.setenv("RETENTION_DAYS", "thirty")
    with pytest.raises(ValueError, match="RETENTION_DAYS"):
        _safe_int("RETENTION_DAYS", "30")

    monkeypatch.setenv("VEHICLE_MANAGEMENT_ENABLED", "maybe")
    with pytest.raises(ValueError, match="VEHICLE_MANAGEMENT_ENABLED"):
        _safe_bool("VEHICLE_MANAGEMENT_ENABLED", "true")
