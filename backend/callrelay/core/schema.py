import asyncio
import logging

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError

from callrelay.core.database import Base
from callrelay.models import CallRecord  # noqa: F401  registers the table

logger = logging.getLogger(__name__)

# Columns added after the first version of call_records.
ADDITIVE_COLUMNS = {
    "tenant_id": "VARCHAR(64)",
    "originating_number": "VARCHAR(64)",
    "duration": "INTEGER NOT NULL DEFAULT 0",
    "was_answered": "BOOLEAN NOT NULL DEFAULT FALSE",
    "recording_url": "VARCHAR(1024)",
}


async def wait_for_database(
    engine: Engine,
    attempts: int = 8,
    first_delay: float = 1.5,
    max_delay: float = 10.0,
) -> None:
    """Hold startup until the database answers a trivial query."""
    backend = engine.url.get_backend_name()
    for attempt in range(1, attempts + 1):
        try:
            with engine.connect() as connection:
                connection.execute(text("SELECT 1"))
        except OperationalError:
            if attempt == attempts:
                logger.error("[db] %s still unreachable after %s attempts.", backend, attempts)
                raise
            pause = min(first_delay * 1.5 ** (attempt - 1), max_delay)
            logger.warning(
                "[db] %s not reachable yet (%s/%s); next try in %.1fs.",
                backend,
                attempt,
                attempts,
                pause,
            )
            await asyncio.sleep(pause)
        else:
            if attempt > 1:
                logger.info("[db] %s reachable after %s attempts.", backend, attempt)
            return


def init_db(engine: Engine) -> None:
    Base.metadata.create_all(bind=engine)
    ensure_call_records_schema(engine)


def ensure_call_records_schema(engine: Engine) -> list[str]:
    """Add any missing call_records columns; safe to run on every boot."""
    with engine.connect() as connection:
        inspector = inspect(connection)
        if "call_records" not in inspector.get_table_names():
            return []
        columns = {column["name"] for column in inspector.get_columns("call_records")}
        added = []
        for name, ddl in ADDITIVE_COLUMNS.items():
            if name in columns:
                continue
            logger.warning("call_records table missing %s; applying ALTER.", name)
            connection.execute(text(f"ALTER TABLE call_records ADD COLUMN {name} {ddl}"))
            added.append(name)
        if added:
            connection.commit()
    return added
