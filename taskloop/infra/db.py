from sqlalchemy import create_engine, text
from sqlalchemy.orm import declarative_base, sessionmaker

from taskloop.config import SETTINGS

engine = create_engine(SETTINGS.database_url, pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
Base = declarative_base()


def init_db() -> None:
    with engine.connect() as connection:
        connection.execute(text("SELECT 1"))
    if engine.dialect.name == "sqlite":
        from . import models  # noqa: F401

        Base.metadata.create_all(engine)
