"""
Database connection and session.

Schema source of truth: storefront.models. On startup, Base.metadata.create_all(bind=engine)
creates all tables from the current models and storefront.seed inserts the role
reference rows.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from storefront.config import get_settings

settings = get_settings()
engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
