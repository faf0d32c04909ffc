from sqlalchemy import create_engine, text
from sqlalchemy.orm import declarative_base, sessionmaker

from trackit.config import SETTINGS

engine = create_engine(SETTINGS.database_url, pool_pre_ping=True, echo=SETTINGS.sql_echo)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
Base = declarative_base()


def init_db() -> None:
    with engine.connect() as connection:
        connection.execute(text("SELECT 1"))
