from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from driveschool.config import settings
from driveschool.models import Base


def make_engine(url: str, echo: bool = False):
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=echo, connect_args=connect_args)


engine = make_engine(settings.database.url, echo=settings.database.echo)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def init_db(bind=None):
    """Create all tables."""
    Base.metadata.create_all(bind=bind or engine)


def get_db():
    """FastAPI dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
