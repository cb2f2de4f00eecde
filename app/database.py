import sqlite3
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import SQLModel, create_engine, Session
from .config import DATABASE_URL, SQL_ECHO


# Create the database engine
engine = create_engine(
    DATABASE_URL,
    echo=SQL_ECHO,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
)


@event.listens_for(Engine, "connect")
def enable_sqlite_foreign_keys(dbapi_connection, _):
    # SQLite ignores ON DELETE CASCADE unless asked per connection
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# Function to get a database session
def get_session():
    session = Session(engine, autoflush=False)
    try:
        yield session
    finally:
        session.close()


# Function to create tables
def init_db():
    SQLModel.metadata.create_all(engine)


def is_unique_violation(error: IntegrityError) -> bool:
    """True when the failed statement hit a unique or primary key constraint."""
    orig = error.orig
    if getattr(orig, "pgcode", None) == "23505" or getattr(orig, "sqlstate", None) == "23505":
        return True
    message = str(orig)
    return "UNIQUE constraint failed" in message or "duplicate key value" in message
