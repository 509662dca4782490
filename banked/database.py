from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from banked.config import settings

connect_args = {}
if settings.db_url.startswith("sqlite"):
    # one session per request thread; wait on the write lock instead of failing fast
    connect_args = {"check_same_thread": False, "timeout": 30}

engine = create_engine(settings.db_url, connect_args=connect_args, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
