"""
SQLAlchemy engine and session factory for the registry store.

One engine per process, created by ``init_engine_from_url``. Publish and
deprecate run as single conditional UPDATEs inside the store's own
transactional scope, so nothing here holds sessions open.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from credit_kernel.logging_config import get_logger

logger = get_logger("db.engine")

_NOT_INITIALIZED = "Registry database not initialized; call init_engine_from_url() first"

_state: dict[str, Engine | sessionmaker[Session] | None] = {
    "engine": None,
    "sessions": None,
}


def _engine_options(database_url: str, echo: bool) -> dict:
    options: dict = {"echo": echo}
    if database_url.startswith("sqlite") and ":memory:" in database_url:
        # Every session must see the same in-memory database
        options.update(poolclass=StaticPool, connect_args={"check_same_thread": False})
    else:
        options["pool_pre_ping"] = True
    return options


def init_engine_from_url(database_url: str, echo: bool = False) -> Engine:
    engine = create_engine(database_url, **_engine_options(database_url, echo))
    _state["engine"] = engine
    _state["sessions"] = sessionmaker(bind=engine, expire_on_commit=False)
    logger.info("registry_engine_initialized", extra={"dialect": engine.dialect.name})
    return engine


def get_engine() -> Engine:
    engine = _state["engine"]
    if engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return engine


def get_session_factory() -> sessionmaker[Session]:
    sessions = _state["sessions"]
    if sessions is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return sessions


def create_tables() -> None:
    """Create the registry tables on the initialized engine."""
    import credit_kernel.models  # noqa: F401  (registers mappers)
    from credit_kernel.db.base import Base

    Base.metadata.create_all(get_engine())
    logger.info("registry_tables_created", extra={"tables": sorted(Base.metadata.tables)})


def reset_engine() -> None:
    """Dispose the engine and forget it. Used by the test suite."""
    engine = _state["engine"]
    if engine is not None:
        engine.dispose()
    _state.update(engine=None, sessions=None)
