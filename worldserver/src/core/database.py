"""
Database connection setup.

This module initializes the connection to the relational store and provides
the session factory used by the load/save pipelines, the presence tracker and
the lookup services. Every caller receives the factory by injection; the
module-level ``SessionLocal`` is only the default.

Sessions are synchronous: each player session drives its own load/save from
its own thread, so one ``Session`` must never be shared between threads.
"""

from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from worldserver.src.core.config import settings
from worldserver.src.models.base import Base


def build_engine(url: str, echo: bool = False, **kwargs) -> Engine:
    """Create an engine, allowing SQLite connections to cross threads."""
    if url.startswith("sqlite"):
        connect_args = kwargs.setdefault("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
    return create_engine(url, echo=echo, future=True, **kwargs)


def build_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(
        bind=bind, autoflush=False, expire_on_commit=False, class_=Session
    )


engine = build_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)

SessionLocal = build_session_factory(engine)


def init_db(bind: Engine = engine) -> None:
    """Create all tables that do not exist yet."""
    # Import models so every table is registered on the metadata
    from worldserver.src import models  # noqa: F401

    Base.metadata.create_all(bind=bind)


def get_db() -> Generator[Session, None, None]:
    """
    Yield a database session and close it afterwards.
    """
    with SessionLocal() as session:
        yield session
