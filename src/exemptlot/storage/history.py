"""Assessment run history — append-only log with CSV and JSON export.

The log is an observer: the engine never reads it back to make decisions.
Each completed (done or blocked) run appends exactly one LogEntry.
"""

import json
import logging
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from exemptlot.core.types import LogEntry
from exemptlot.storage.models import AssessmentLogRow

logger = logging.getLogger(__name__)


class HistoryRepository(Protocol):
    async def append(self, entry: LogEntry) -> None: ...

    async def list_entries(self) -> list[LogEntry]: ...


class InMemoryHistoryRepository:
    """History kept for the life of the process."""

    def __init__(self, entries: list[LogEntry] | None = None):
        self._entries: list[LogEntry] = list(entries or [])

    async def append(self, entry: LogEntry) -> None:
        self._entries.append(entry)

    async def list_entries(self) -> list[LogEntry]:
        return list(self._entries)


class SqlHistoryRepository:
    """History persisted to the assessment_log table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def append(self, entry: LogEntry) -> None:
        async with self._session_factory() as session:
            session.add(AssessmentLogRow(**entry.to_dict()))
            await session.commit()
        logger.debug("Logged run for site %s", entry.site_id, extra={"site_id": entry.site_id})

    async def list_entries(self) -> list[LogEntry]:
        async with self._session_factory() as session:
            result = await session.execute(select(AssessmentLogRow).order_by(AssessmentLogRow.id))
            rows = result.scalars().all()
        return [
            LogEntry(
                timestamp=row.timestamp,
                site_id=row.site_id,
                site_label=row.site_label,
                verdict=row.verdict,
                reason=row.reason,
                prechecks=row.prechecks,
                clauses=row.clauses,
                overlay=row.overlay,
                inputs=row.inputs,
            )
            for row in rows
        ]


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

def _csv_value(value) -> str:
    if isinstance(value, str):
        return '"' + value.replace('"', '""') + '"'
    if value is None:
        return ""
    return str(value)


def to_csv(rows: list[dict]) -> str:
    """Delimited-text export.

    Columns follow the key order of the first row. Strings are always quoted
    with embedded quotes doubled; None renders empty; anything else is str().
    """
    if not rows:
        return ""
    cols = list(rows[0].keys())
    lines = [",".join(cols)]
    lines.extend(",".join(_csv_value(row.get(col)) for col in cols) for row in rows)
    return "\n".join(lines)


def entries_to_csv(entries: list[LogEntry]) -> str:
    return to_csv([e.to_dict() for e in entries])


def entries_to_json(entries: list[LogEntry]) -> str:
    """Pretty-printed JSON export."""
    return json.dumps([e.to_dict() for e in entries], indent=2, ensure_ascii=False)
