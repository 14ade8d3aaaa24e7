import os
from functools import lru_cache
from sqlmodel import SQLModel, create_engine


DEFAULT_DATABASE_URL = "sqlite:///./finds.db"


def make_engine(url: str):
    connect_args = {}

    # sessions are opened from worker threads
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    return create_engine(url, connect_args=connect_args)


@lru_cache
def get_engine():
    return make_engine(os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL))


def init_db(engine=None):
    SQLModel.metadata.create_all(engine or get_engine())
