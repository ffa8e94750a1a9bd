"""Tests for the MSSQL query gateway."""

import asyncio
import threading
from decimal import Decimal
from unittest.mock import patch

import pymssql
import pytest

from datastore_mcp import mssql
from datastore_mcp.config import MssqlConfig
from datastore_mcp.exceptions import ConnectionStringError, QueryError, StoreConnectionError

from fakes import FakeConnector


class TestCapMaxRows:
    """Tests for the row cap."""

    def test_default_applies_when_omitted(self):
        assert mssql.cap_max_rows(None) == 500

    @pytest.mark.parametrize("requested", [0, 1, 5, 500, 9_999, 10_000])
    def test_noop_at_or_below_ceiling(self, requested):
        assert mssql.cap_max_rows(requested) == requested

    @pytest.mark.parametrize("requested", [10_001, 50_000, 2**63])
    def test_never_exceeds_ceiling(self, requested):
        assert mssql.cap_max_rows(requested) == 10_000

    def test_negative_clamped_to_zero(self):
        assert mssql.cap_max_rows(-5) == 0


class TestWrapQuery:
    def test_wraps_in_top_subquery(self):
        assert mssql.wrap_query("SELECT 1 AS x", 5) == (
            "SELECT TOP (5) * FROM (SELECT 1 AS x) AS __mcp_query__"
        )


class TestConnect:
    """Tests for connection opening and error mapping."""

    def test_passes_parsed_kwargs(self):
        cfg = MssqlConfig(connection_string="server=tcp:db,1444;database=d;user id=u;password=p")
        with patch.object(mssql.pymssql, "connect") as mock_connect:
            mssql.connect(cfg)
        mock_connect.assert_called_once_with(
            server="db", port="1444", database="d", user="u", password="p"
        )

    def test_parse_failure(self):
        cfg = MssqlConfig(connection_string="database=d")
        with patch.object(mssql.pymssql, "connect") as mock_connect:
            with pytest.raises(ConnectionStringError):
                mssql.connect(cfg)
        mock_connect.assert_not_called()

    def test_connect_failure(self):
        cfg = MssqlConfig(connection_string="server=db")
        error = pymssql.OperationalError("Adaptive Server is unavailable")
        with patch.object(mssql.pymssql, "connect", side_effect=error):
            with pytest.raises(StoreConnectionError, match="Failed to connect to MSSQL at db:1433"):
                mssql.connect(cfg)


class TestListTables:
    """Tests for list_tables."""

    @pytest.mark.asyncio
    async def test_returns_schema_and_name(self, mssql_config):
        connector = FakeConnector(
            columns=["TABLE_SCHEMA", "TABLE_NAME"],
            rows=[("dbo", "customers"), ("dbo", "orders"), ("sales", "invoices")],
        )

        tables = await mssql.list_tables(mssql_config, connector=connector)

        assert tables == [
            {"schema": "dbo", "table_name": "customers"},
            {"schema": "dbo", "table_name": "orders"},
            {"schema": "sales", "table_name": "invoices"},
        ]
        sql = connector.cursor.executed[0]
        assert "INFORMATION_SCHEMA.TABLES" in sql
        assert "TABLE_TYPE = 'BASE TABLE'" in sql
        assert "ORDER BY TABLE_SCHEMA, TABLE_NAME" in sql

    @pytest.mark.asyncio
    async def test_closes_connection(self, mssql_config):
        connector = FakeConnector(columns=["TABLE_SCHEMA", "TABLE_NAME"], rows=[])
        await mssql.list_tables(mssql_config, connector=connector)
        assert connector.connection.closed
        assert connector.cursor.closed


class TestExecuteQuery:
    """Tests for execute_query."""

    @pytest.mark.asyncio
    async def test_select_one(self, mssql_config):
        connector = FakeConnector(columns=["x"], rows=[(1,)])

        rows = await mssql.execute_query(mssql_config, "SELECT 1 AS x", 5, connector=connector)

        assert rows == [{"x": 1}]
        assert connector.cursor.executed == [
            "SELECT TOP (5) * FROM (SELECT 1 AS x) AS __mcp_query__"
        ]

    @pytest.mark.asyncio
    async def test_default_and_cap_in_wrapper(self, mssql_config):
        connector = FakeConnector(columns=["x"], rows=[])

        await mssql.execute_query(mssql_config, "SELECT x FROM t", None, connector=connector)
        await mssql.execute_query(mssql_config, "SELECT x FROM t", 1_000_000, connector=connector)

        assert connector.cursor.executed[0].startswith("SELECT TOP (500) ")
        assert connector.cursor.executed[1].startswith("SELECT TOP (10000) ")

    @pytest.mark.asyncio
    async def test_cells_go_through_codec(self, mssql_config):
        connector = FakeConnector(
            columns=["price", "blob", "missing"],
            rows=[(Decimal("10.50"), b"\x01\xff", None)],
        )

        rows = await mssql.execute_query(mssql_config, "SELECT ...", 10, connector=connector)

        assert rows == [{"price": "10.50", "blob": "01ff", "missing": None}]

    @pytest.mark.asyncio
    async def test_query_failure_maps_to_query_error(self, mssql_config):
        connector = FakeConnector(error=pymssql.ProgrammingError("Invalid object name 'nope'."))

        with pytest.raises(QueryError, match="Invalid object name 'nope'"):
            await mssql.execute_query(mssql_config, "SELECT * FROM nope", 10, connector=connector)

        assert connector.connection.closed
        assert connector.cursor.closed

    @pytest.mark.asyncio
    async def test_connection_failure_propagates(self, mssql_config):
        def refuse(cfg):
            raise StoreConnectionError("MSSQL", "Failed to connect to MSSQL at localhost:1433")

        with pytest.raises(StoreConnectionError):
            await mssql.execute_query(mssql_config, "SELECT 1", 10, connector=refuse)

    @pytest.mark.asyncio
    async def test_cancelled_call_still_closes_connection(self, mssql_config):
        """The worker thread finishes the statement, then closes the connection."""
        release = threading.Event()
        connector = FakeConnector(columns=["x"], rows=[(1,)], release=release)

        task = asyncio.create_task(
            mssql.execute_query(mssql_config, "SELECT 1 AS x", 5, connector=connector)
        )
        assert await asyncio.to_thread(connector.cursor.started.wait, 5)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert not connector.connection.closed

        release.set()
        assert await asyncio.to_thread(connector.connection.closed_event.wait, 5)
        assert connector.cursor.closed
