"""
Reference-data ingestion: reads seed files, validates, upserts to DB.
Idempotent: same input = same hash = skips re-insert.

Lessons are never seeded; they only enter through booking admission.
"""
import json
import hashlib
import logging
from pathlib import Path
from typing import Optional

from sqlalchemy.orm import Session

from driveschool.config import settings
from driveschool.models import Category, Instructor, Student, Vehicle, SeedRun
from driveschool.ingestion.schemas import (
    CategorySchema, InstructorSchema, StudentSchema, VehicleSchema
)

logger = logging.getLogger(__name__)

SEED_FILES = ("categories.json", "instructors.json", "students.json", "vehicles.json")


# ── Helpers ───────────────────────────────────────────────────────────────────

def _hash_file(path: Path) -> str:
    return hashlib.md5(path.read_bytes()).hexdigest()

def _seed_hash(seed_dir: Path) -> str:
    """Single hash of all seed files combined."""
    combined = "".join(
        _hash_file(f) for f in sorted(seed_dir.iterdir()) if f.is_file()
    )
    return hashlib.md5(combined.encode()).hexdigest()

def _load_json(seed_dir: Path, filename: str) -> list:
    path = seed_dir / filename
    if not path.exists():
        return []
    return json.loads(path.read_text())

def _apply(existing, data: dict) -> bool:
    changed = {k: v for k, v in data.items() if getattr(existing, k) != v}
    for k, v in changed.items():
        setattr(existing, k, v)
    return bool(changed)


# ── Per-entity upsert functions ───────────────────────────────────────────────

def _upsert_categories(db: Session, seed_dir: Path) -> dict:
    records = [CategorySchema(**r) for r in _load_json(seed_dir, "categories.json")]
    diff = {"upserted": [], "unchanged": []}

    for r in records:
        existing = db.query(Category).filter(Category.name == r.name).first()
        data = r.model_dump()

        if existing:
            if _apply(existing, data):
                diff["upserted"].append(r.name)
            else:
                diff["unchanged"].append(r.name)
        else:
            db.add(Category(**data))
            diff["upserted"].append(r.name)

    db.flush()
    return diff


def _categories_by_name(db: Session, names: list[str]) -> list[Category]:
    found = {c.name: c for c in db.query(Category).filter(Category.name.in_(names)).all()}
    missing = [n for n in names if n not in found]
    if missing:
        raise ValueError(f"Unknown categories: {missing}")
    return [found[n] for n in names]


def _upsert_instructors(db: Session, seed_dir: Path) -> dict:
    records = [InstructorSchema(**r) for r in _load_json(seed_dir, "instructors.json")]
    diff = {"upserted": [], "unchanged": []}

    for r in records:
        existing = db.get(Instructor, r.id)
        data = r.model_dump(exclude={"categories"})
        categories = _categories_by_name(db, r.categories)

        if existing:
            changed = _apply(existing, data)
            if [c.id for c in existing.qualified_categories] != [c.id for c in categories]:
                existing.qualified_categories = categories
                changed = True
            diff["upserted" if changed else "unchanged"].append(r.id)
        else:
            db.add(Instructor(**data, qualified_categories=categories))
            diff["upserted"].append(r.id)

    return diff


def _upsert_students(db: Session, seed_dir: Path) -> dict:
    records = [StudentSchema(**r) for r in _load_json(seed_dir, "students.json")]
    diff = {"upserted": [], "unchanged": []}

    for r in records:
        existing = db.get(Student, r.id)
        data = r.model_dump()

        if existing:
            diff["upserted" if _apply(existing, data) else "unchanged"].append(r.id)
        else:
            db.add(Student(**data))
            diff["upserted"].append(r.id)

    return diff


def _upsert_vehicles(db: Session, seed_dir: Path) -> dict:
    records = [VehicleSchema(**r) for r in _load_json(seed_dir, "vehicles.json")]
    diff = {"upserted": [], "unchanged": []}

    for r in records:
        existing = (
            db.query(Vehicle)
            .filter(Vehicle.registration_number == r.registration_number)
            .first()
        )
        data = r.model_dump(exclude={"category"})
        data["category_id"] = (
            _categories_by_name(db, [r.category])[0].id if r.category else None
        )

        if existing:
            # under_maintenance is owned by admins once a vehicle exists
            data.pop("under_maintenance")
            if _apply(existing, data):
                diff["upserted"].append(r.registration_number)
            else:
                diff["unchanged"].append(r.registration_number)
        else:
            db.add(Vehicle(**data))
            diff["upserted"].append(r.registration_number)

    return diff


# ── Main entry point ──────────────────────────────────────────────────────────

def run_ingestion(db: Session, seed_dir: Optional[Path] = None, force: bool = False) -> dict:
    """
    Run full ingestion. Skips if seed hash unchanged (idempotent).
    Set force=True to re-ingest regardless.
    """
    seed_dir = Path(seed_dir or settings.seed_dir)
    if not seed_dir.is_dir():
        raise FileNotFoundError(f"Seed directory not found: {seed_dir}")

    seed_hash = _seed_hash(seed_dir)

    # Idempotency check
    if not force:
        last_run = (
            db.query(SeedRun)
            .filter(SeedRun.status == "success")
            .order_by(SeedRun.id.desc())
            .first()
        )
        if last_run and last_run.source_hash == seed_hash:
            logger.info("Seed data unchanged (%s), skipping", seed_hash)
            return {
                "status": "skipped",
                "reason": "seed unchanged",
                "hash": seed_hash
            }

    # Run all upserts
    diff_summary = {}
    try:
        diff_summary["categories"] = _upsert_categories(db, seed_dir)
        diff_summary["instructors"] = _upsert_instructors(db, seed_dir)
        diff_summary["students"] = _upsert_students(db, seed_dir)
        diff_summary["vehicles"] = _upsert_vehicles(db, seed_dir)

        db.add(SeedRun(
            source_hash=seed_hash,
            status="success",
            diff_summary=diff_summary
        ))
        db.commit()

    except Exception as e:
        db.rollback()
        logger.exception("Seed ingestion failed")
        db.add(SeedRun(
            source_hash=seed_hash,
            status="failed",
            diff_summary={"error": str(e)}
        ))
        db.commit()
        raise

    logger.info("Seed ingestion complete (%s)", seed_hash)
    return {"status": "success", "hash": seed_hash, "diff": diff_summary}
