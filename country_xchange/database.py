from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from country_xchange.config import Config

DATABASE_URL = Config.database_url

connect_args = {}
if DATABASE_URL.startswith("sqlite"):
    # Upserts run in worker threads off the event loop
    connect_args["check_same_thread"] = False

engine = create_engine(DATABASE_URL, pool_pre_ping=True, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def init_db(bind=None):
    """Create tables that do not exist yet."""
    # Models must be registered on Base before create_all
    from country_xchange import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
