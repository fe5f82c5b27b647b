# backoffice/db.py

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, declarative_base

from backoffice.config import DATABASE_URL

engine = create_engine(DATABASE_URL, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def db_ping() -> int:
    """Quick connectivity test."""
    with engine.connect() as conn:
        return conn.execute(text("SELECT 1")).scalar_one()
