# trakn/storage/db.py
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Callable, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import SQLModel, Session, create_engine

from core.settings import DB_PATH
from services.errors import StorageError

# Ensure SQLModel metadata is populated
import models.sync_operation  # noqa: F401
import models.user_profile  # noqa: F401
import models.workout  # noqa: F401
from storage import migrations


T = TypeVar("T")

_engine = None


def make_engine(path: Path | str):
    """Engine for a SQLite file usable from worker threads."""

    db_path = Path(path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return create_engine(
        f"sqlite:///{db_path.as_posix()}",
        echo=False,
        connect_args={"check_same_thread": False},
    )


def get_engine():
    global _engine
    if _engine is None:
        _engine = make_engine(DB_PATH)
    return _engine


def init_db(engine=None) -> None:
    actual_engine = engine or get_engine()
    SQLModel.metadata.create_all(actual_engine)
    migrations.run_all(actual_engine)


def get_session() -> Session:
    return Session(get_engine())


def session_factory_for(engine) -> Callable[[], Session]:
    def factory() -> Session:
        return Session(engine)

    return factory


async def run_in_session(session_factory: Callable[[], Session], fn: Callable[[Session], T]) -> T:
    """Run ``fn`` with a fresh session in a worker thread.

    SQLAlchemy failures surface as :class:`StorageError`.
    """

    def _call() -> T:
        try:
            with session_factory() as session:
                return fn(session)
        except SQLAlchemyError as exc:
            raise StorageError(f"Local storage failure: {exc}") from exc

    return await asyncio.to_thread(_call)


__all__ = [
    "get_engine",
    "get_session",
    "init_db",
    "make_engine",
    "run_in_session",
    "session_factory_for",
]
