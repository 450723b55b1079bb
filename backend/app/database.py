"""SQLAlchemy engine, session factory and the request-scoped session dependency."""
from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from app.config import settings

connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(settings.DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Yield a session for one request and always close it."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def begin_write(db: Session) -> None:
    """Take the SQLite write lock up front for a read-then-write transaction.

    SQLite ignores ``SELECT ... FOR UPDATE`` and pysqlite defers ``BEGIN`` until
    the first write. ``BEGIN IMMEDIATE`` makes a second writer wait (up to the
    driver's busy timeout) until the first commits or rolls back. No-op on
    other backends, which use row locks.
    """
    if db.get_bind().dialect.name != "sqlite":
        return
    # End any ORM transaction so the explicit BEGIN is the first statement on the connection
    db.commit()
    db.execute(text("BEGIN IMMEDIATE"))
