"""Database engine and request-scoped sessions.

Every autosave, upload merge and finalize step commits on its own (see the
repositories), so a request session is opened per request and only closed here.
"""

from typing import Any, Dict, Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import Settings, get_settings


def engine_options(database_url: str, settings: Settings) -> Dict[str, Any]:
    """Keyword arguments for `create_engine` for the given URL.

    SQLite (tests, local demos) shares one connection across threads; other
    backends get a bounded pool sized from settings.
    """
    options: Dict[str, Any] = {
        "pool_pre_ping": True,
        "echo": settings.DB_ECHO,
    }

    if database_url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            options["poolclass"] = StaticPool
    else:
        options["pool_size"] = settings.DB_POOL_SIZE
        options["max_overflow"] = settings.DB_MAX_OVERFLOW

    return options


_settings = get_settings()
engine = create_engine(_settings.DATABASE_URL, **engine_options(_settings.DATABASE_URL, _settings))

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a session for the current request.

    Usage:
        @router.get("/submissions/drafts/{draft_id}")
        async def get_draft(draft_id: int, db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
