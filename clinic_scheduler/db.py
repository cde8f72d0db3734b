# clinic_scheduler/db.py

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, Session, create_engine

from clinic_scheduler.config import Settings, get_settings


def build_engine(settings: Settings) -> Engine:
    connect_args = {}
    if settings.is_sqlite:
        # check_same_thread: sessions are handed to FastAPI worker threads
        # timeout: a writer waiting on a day lock blocks instead of failing fast
        connect_args = {
            "check_same_thread": False,
            "timeout": settings.sqlite_busy_timeout,
        }

    new_engine = create_engine(
        settings.database_url,
        echo=False,
        connect_args=connect_args,
    )

    if settings.is_sqlite:
        @event.listens_for(new_engine, "connect")
        def enable_sqlite_fk(dbapi_connection, _):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return new_engine


engine = build_engine(get_settings())


def init_db(bind: Engine = engine) -> None:
    # Import for side effect: registers the tables on SQLModel.metadata
    from clinic_scheduler import models  # noqa: F401

    SQLModel.metadata.create_all(bind)


# Dependency: one session per request
def get_session():
    with Session(engine) as session:
        yield session
