"""Tests for the run history log and its exports."""

import csv
import io
import json

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from exemptlot.core.types import LogEntry
from exemptlot.storage.history import (
    InMemoryHistoryRepository,
    SqlHistoryRepository,
    entries_to_csv,
    entries_to_json,
    to_csv,
)
from exemptlot.storage.models import Base


def _entry(**kwargs) -> LogEntry:
    values = dict(
        timestamp="2024-05-01T10:00:00+00:00",
        site_id="ALB-001",
        site_label="14 Kiewa Street, Albury",
        verdict="LIKELY EXEMPT",
        reason="All checks passed",
        prechecks="",
        clauses="SEPP Exempt Development 2008 cl. 2.18(1)(a)",
        overlay="R1 | BAL-LOW | NONE",
        inputs='{"kind": "shed", "length_m": 3.0}',
    )
    values.update(kwargs)
    return LogEntry(**values)


class TestToCsv:
    def test_empty(self):
        assert to_csv([]) == ""

    def test_header_from_first_row_keys(self):
        assert to_csv([{"a": "x", "b": "y"}]).split("\n")[0] == "a,b"

    def test_strings_quoted_and_escaped(self):
        out = to_csv([{"a": 'say "hi", ok'}])
        assert out.split("\n")[1] == '"say ""hi"", ok"'

    def test_none_and_numbers(self):
        out = to_csv([{"a": None, "b": 3, "c": True}])
        assert out.split("\n")[1] == ",3,True"

    def test_missing_key_renders_empty(self):
        out = to_csv([{"a": "1", "b": "2"}, {"a": "3"}])
        assert out.split("\n")[2] == '"3",'

    def test_rows_joined_without_trailing_newline(self):
        out = to_csv([{"a": "1"}, {"a": "2"}])
        assert out == 'a\n"1"\n"2"'


class TestEntryExports:
    def test_csv_parses_back(self):
        entries = [_entry(), _entry(site_label='Lot "B", rear', verdict="NOT EXEMPT")]
        rows = list(csv.reader(io.StringIO(entries_to_csv(entries))))
        assert rows[0] == list(entries[0].to_dict())
        assert rows[2][2] == 'Lot "B", rear'
        assert rows[1][8] == entries[0].inputs

    def test_json_pretty_printed(self):
        out = entries_to_json([_entry(site_label="Café lot")])
        assert out.startswith("[\n  {")
        assert "Café lot" in out
        assert json.loads(out)[0]["site_id"] == "ALB-001"


class TestInMemoryHistoryRepository:
    @pytest.mark.asyncio
    async def test_append_order(self):
        repo = InMemoryHistoryRepository()
        await repo.append(_entry(site_id="A"))
        await repo.append(_entry(site_id="B"))
        assert [e.site_id for e in await repo.list_entries()] == ["A", "B"]

    @pytest.mark.asyncio
    async def test_list_is_a_copy(self):
        repo = InMemoryHistoryRepository()
        (await repo.list_entries()).append(_entry())
        assert await repo.list_entries() == []


class TestSqlHistoryRepository:
    @pytest.mark.asyncio
    async def test_round_trip(self, tmp_path):
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'history.db'}")
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        repo = SqlHistoryRepository(async_sessionmaker(engine, expire_on_commit=False))

        first, second = _entry(site_id="A"), _entry(site_id="B", verdict="NOT EXEMPT")
        await repo.append(first)
        await repo.append(second)

        assert await repo.list_entries() == [first, second]
        await engine.dispose()
