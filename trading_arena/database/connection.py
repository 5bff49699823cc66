"""Database engine and session management.

Engines are created explicitly per process and handed to MarketDatabase;
there is no module-level engine.
"""

import logging
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///data/market.db"


def create_market_engine(database_url: str = DEFAULT_DATABASE_URL, echo: bool = False) -> Engine:
    """Create a SQLAlchemy engine for the market data store.

    SQLite file databases get their parent directory created. Server
    databases get a small connection pool with pre-ping.

    Args:
        database_url: SQLAlchemy URL (e.g. "sqlite:///data/market.db")
        echo: Log every SQL statement

    Returns:
        Engine instance
    """
    url = make_url(database_url)

    if url.get_backend_name() == "sqlite":
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        return create_engine(url, echo=echo)

    # pool_pre_ping: Check connection health before using
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
        echo=echo,
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to engine."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
    )


def init_db(engine: Engine) -> None:
    """Create tables that do not exist yet."""
    from .models import Base
    Base.metadata.create_all(bind=engine)
    logger.info("database_initialized", extra={"url": engine.url.render_as_string(hide_password=True)})

