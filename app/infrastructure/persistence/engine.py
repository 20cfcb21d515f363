"""Database engine builder."""

import re
from typing import Any

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool


def mask_password(url: str) -> str:
    """Mask password in database URL for safe logging."""
    return re.sub(r"://([^:/@]+):([^@]+)@", r"://\1:***@", url)


def is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def is_in_memory_sqlite(url: str) -> bool:
    if not is_sqlite(url):
        return False
    return ":memory:" in url or url.rstrip("/").endswith(":")


def build_engine(url: str, echo: bool = False, pool_size: int = 5) -> Engine:
    """Build a SQLAlchemy engine for ``url``.

    SQLite connections are shared across the store's worker thread, so
    ``check_same_thread`` is disabled; an in-memory database uses a
    StaticPool so every session sees the same database.

    Args:
        url: SQLAlchemy database URL
        echo: Echo SQL statements
        pool_size: Pool size for server databases

    Examples:
        >>> engine = build_engine("sqlite:///:memory:")
    """
    kwargs: dict[str, Any] = {"echo": echo, "future": True}

    if is_sqlite(url):
        kwargs["connect_args"] = {"check_same_thread": False}
        if is_in_memory_sqlite(url):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_size"] = pool_size
        kwargs["pool_pre_ping"] = True

    return create_engine(url, **kwargs)


def build_sessionmaker(engine: Engine) -> sessionmaker[Session]:
    """Build a sessionmaker whose objects stay readable after commit.

    Records are handed back to async callers after the session closes, so
    ``expire_on_commit`` is disabled.
    """
    return sessionmaker(
        bind=engine, autoflush=False, expire_on_commit=False, class_=Session
    )
