import logging

from sqlalchemy import create_engine, func, select
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import declarative_base, sessionmaker

from country_api.config import settings

logger = logging.getLogger("country_api.db")


def make_engine(url=None) -> Engine:
    """Create the application engine.

    Server databases get a bounded connection pool; SQLite keeps the
    SQLAlchemy defaults and is opened for use across request threads.
    """
    url = url or settings.database_url()
    if make_url(url).get_backend_name() == "sqlite":
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url, pool_size=settings.DB_POOL_SIZE, pool_pre_ping=True)


engine = make_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine | None = None) -> None:
    # Import models so they register with Base.metadata
    from country_api import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def ping_database(bind: Engine | None = None) -> int:
    """Open a connection and return the number of stored countries."""
    from country_api.models import Country

    with (bind or engine).connect() as conn:
        total = conn.execute(select(func.count()).select_from(Country)).scalar_one()
    logger.info("Database reachable; %s countries stored", total)
    return total
