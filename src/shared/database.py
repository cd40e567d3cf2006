"""SQLAlchemy engine/session management shared by the service-side contexts.

Tables are declared on ``Base`` in each context's repository module. The
module keeps one engine per process, created lazily from settings, and lets
tests swap it with ``configure_database()``.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from shared.config import get_settings


class Base(DeclarativeBase):
    pass


_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def configure_database(database_uri: str | None = None) -> Engine:
    """(Re)create the engine, defaulting to ``DATABASE_URI`` from settings."""
    global _engine, _session_factory
    uri = database_uri or get_settings().database_uri

    connect_args = {}
    if uri.startswith("sqlite"):
        # Requests and reconciliation run on different threads
        connect_args = {"check_same_thread": False, "timeout": 15}

    if _engine is not None:
        _engine.dispose()
    _engine = create_engine(uri, connect_args=connect_args)
    _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        configure_database()
    return _engine


@contextmanager
def session_scope() -> Iterator[Session]:
    """Transactional scope: commit on success, roll back on any exception."""
    if _session_factory is None:
        configure_database()
    session = _session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def setup_db() -> None:
    """Create every table registered on ``Base``."""
    _import_models()
    Base.metadata.create_all(get_engine())


def drop_db() -> None:
    """Drop every table registered on ``Base``."""
    _import_models()
    Base.metadata.drop_all(get_engine())


def _import_models() -> None:
    # Registers the tables on Base.metadata
    import delivery.zone.repository  # noqa: F401
    import ordering.order.repository  # noqa: F401
