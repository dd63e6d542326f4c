"""Retention sweeper."""
from datetime import timedelta

from sqlalchemy.exc import OperationalError

from conftest import NOW, TODAY
from driveschool.models import Lesson
from driveschool.scheduling import retention
from driveschool.scheduling.retention import sweep_expired_lessons, sweep_quietly


def test_purges_only_lessons_past_the_horizon(db, school, add_lesson):
    add_lesson(TODAY - timedelta(days=31), "10:00", "11:00")
    kept_boundary = add_lesson(TODAY - timedelta(days=30), "10:00", "11:00")
    kept = add_lesson(TODAY - timedelta(days=29), "10:00", "11:00")

    assert sweep_expired_lessons(db, NOW) == 1

    remaining = {l.id for l in db.query(Lesson).all()}
    assert remaining == {kept_boundary.id, kept.id}


def test_custom_horizon(db, school, add_lesson):
    add_lesson(TODAY - timedelta(days=8), "10:00", "11:00")
    add_lesson(TODAY - timedelta(days=6), "10:00", "11:00")

    assert sweep_expired_lessons(db, NOW, retention_days=7) == 1
    assert db.query(Lesson).count() == 1


def test_nothing_to_sweep(db, school, add_lesson):
    add_lesson(TODAY, "10:00", "11:00")
    assert sweep_expired_lessons(db, NOW) == 0


def test_quiet_sweep_swallows_database_errors(db, school, monkeypatch, caplog):
    def broken(*args, **kwargs):
        raise OperationalError("DELETE FROM lessons", {}, Exception("database is locked"))

    monkeypatch.setattr(retention, "sweep_expired_lessons", broken)

    assert sweep_quietly(db, NOW) is None
    assert "Failed to clean up old lessons" in caplog.text
