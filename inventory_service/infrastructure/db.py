from typing import Any, Dict, Iterator

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker, Session

from inventory_service.core_settings import Settings
from inventory_service.domain.models import Base


def _engine_options(url: str, statement_timeout_ms: int, pool_timeout: int) -> Dict[str, Any]:
    """Bound every store call by the configured timeout, per backend."""
    backend = make_url(url).get_backend_name()
    if backend == "sqlite":
        return {"connect_args": {"check_same_thread": False, "timeout": statement_timeout_ms / 1000}}
    options: Dict[str, Any] = {"pool_pre_ping": True, "pool_timeout": pool_timeout}
    if backend == "postgresql":
        options["connect_args"] = {
            "connect_timeout": pool_timeout,
            "options": f"-c statement_timeout={statement_timeout_ms}",
        }
    elif backend == "mysql":
        options["connect_args"] = {
            "connect_timeout": pool_timeout,
            "read_timeout": max(1, statement_timeout_ms // 1000),
        }
    return options


class Database:
    """Process-wide store handle: opened by the app factory, disposed at shutdown."""

    def __init__(self, url: str, statement_timeout_ms: int = 5000, pool_timeout: int = 10):
        self.url = url
        self.engine: Engine = create_engine(
            url, echo=False, future=True, **_engine_options(url, statement_timeout_ms, pool_timeout)
        )
        self.SessionLocal = sessionmaker(bind=self.engine, autoflush=False, autocommit=False, expire_on_commit=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(settings.database_url, settings.DB_STATEMENT_TIMEOUT_MS, settings.DB_POOL_TIMEOUT)

    def session(self) -> Session:
        return self.SessionLocal()

    def init_models(self) -> None:
        Base.metadata.create_all(self.engine)

    def ping(self) -> None:
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()

    def dispose(self) -> None:
        self.engine.dispose()


def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()
