# salonbook/db.py

from sqlmodel import SQLModel, create_engine, Session

from salonbook import config

# Engine = connection to the database
connect_args = {}
if config.DATABASE_URL.startswith("sqlite"):
    connect_args["check_same_thread"] = False  # required for SQLite + FastAPI

engine = create_engine(
    config.DATABASE_URL,
    echo=False,          # set to True to see SQL
    connect_args=connect_args,
)


def init_db():
    # Importing registers the tables on SQLModel.metadata
    from salonbook import models  # noqa: F401

    SQLModel.metadata.create_all(engine)


# Dependency: one session per request
def get_session():
    with Session(engine) as session:
        yield session
