"""
database.py – engine and connection helpers for postgis-schema
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine

from .config import settings
from .services.schema_router import SchemaEventRouter

logger = logging.getLogger("postgis-schema.database")


def create_engine_from_settings(url: Optional[str] = None) -> Engine:
    """Sync engine for `url`, or for DATABASE_URL when no URL is given."""
    return create_engine(
        url or settings.DATABASE_URL,
        echo=settings.DEBUG,
        future=True,
    )


@contextmanager
def bound_connection(engine: Engine, router: SchemaEventRouter) -> Iterator[Connection]:
    """Open a connection, bind the router to it, release it afterwards."""
    with engine.connect() as conn:
        mode = router.connect(conn)
        logger.debug(f"Connected to {engine.url.render_as_string(hide_password=True)} ({mode.value})")
        try:
            yield conn
        finally:
            router.disconnect()
