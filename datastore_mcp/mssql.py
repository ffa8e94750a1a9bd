"""Azure SQL / MSSQL query gateway.

Every call opens its own connection and closes it before returning, on the
success path and on every error path. pymssql is blocking, so the work runs
in a worker thread via ``asyncio.to_thread``. Cancelling the awaiting task
does not interrupt that thread: the statement runs to completion (or to its
command timeout) and the connection is closed when the worker finishes.

Security note:
    ``execute_query`` passes caller SQL to the database wrapped only in a
    ``SELECT TOP (n) * FROM (...)`` subquery. It does not validate or
    restrict the statement. The database user in MSSQL_CONNECTION_STRING
    should follow the principle of least privilege (read-only where
    possible).
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

import pymssql

from .codec import row_to_json
from .config import MssqlConfig
from .connection_string import parse_connection_string
from .exceptions import QueryError, StoreConnectionError

logger = logging.getLogger(__name__)

# Default number of rows returned when the caller does not specify max_rows
DEFAULT_MAX_ROWS = 500
# Hard upper limit on rows to prevent runaway reads
HARD_MAX_ROWS = 10_000

LIST_TABLES_SQL = (
    "SELECT TABLE_SCHEMA, TABLE_NAME "
    "FROM INFORMATION_SCHEMA.TABLES "
    "WHERE TABLE_TYPE = 'BASE TABLE' "
    "ORDER BY TABLE_SCHEMA, TABLE_NAME"
)

Connector = Callable[[MssqlConfig], Any]


def cap_max_rows(requested: Optional[int]) -> int:
    """Apply the default and the hard ceiling to a requested row count."""
    if requested is None:
        requested = DEFAULT_MAX_ROWS
    return max(0, min(int(requested), HARD_MAX_ROWS))


def wrap_query(sql: str, max_rows: int) -> str:
    """Embed caller SQL in a TOP-limited outer select."""
    return f"SELECT TOP ({int(max_rows)}) * FROM ({sql}) AS __mcp_query__"


def connect(cfg: MssqlConfig) -> Any:
    """Open a new pymssql connection from the configured connection string.

    Raises:
        ConnectionStringError: If the connection string cannot be parsed
        StoreConnectionError: If the TCP connect or login fails
    """
    params = parse_connection_string(cfg.connection_string)
    logger.debug("Connecting to MSSQL at %s", params.address)
    try:
        return pymssql.connect(**params.to_connect_kwargs())
    except pymssql.Error as e:
        raise StoreConnectionError(
            "MSSQL", f"Failed to connect to MSSQL at {params.address}: {e}"
        ) from e


def _run_query(cfg: MssqlConfig, sql: str, connector: Connector) -> Dict[str, Any]:
    """Connect, execute and fetch all rows. Runs in a worker thread."""
    conn = connector(cfg)
    try:
        cursor = conn.cursor()
        try:
            cursor.execute(sql)
            columns = [desc[0] for desc in cursor.description or []]
            rows = cursor.fetchall() if columns else []
        finally:
            cursor.close()
    except pymssql.Error as e:
        raise QueryError("MSSQL", f"Failed to execute SQL query: {e}") from e
    finally:
        conn.close()
    return {"columns": columns, "rows": rows}


async def _query(cfg: MssqlConfig, sql: str, connector: Optional[Connector]) -> Dict[str, Any]:
    return await asyncio.to_thread(_run_query, cfg, sql, connector or connect)


async def list_tables(cfg: MssqlConfig, connector: Optional[Connector] = None) -> List[Dict[str, str]]:
    """List all user (base) tables in the connected database.

    Returns:
        List of {"schema": ..., "table_name": ...} ordered by schema, then name
    """
    result = await _query(cfg, LIST_TABLES_SQL, connector)
    tables = [
        {"schema": schema or "", "table_name": name or ""}
        for schema, name in (row[:2] for row in result["rows"])
    ]
    logger.debug("Listed %d MSSQL tables", len(tables))
    return tables


async def execute_query(
    cfg: MssqlConfig,
    sql: str,
    max_rows: Optional[int] = None,
    connector: Optional[Connector] = None,
) -> List[Dict[str, Any]]:
    """Execute caller SQL and return rows as JSON objects.

    Args:
        cfg: MSSQL configuration
        sql: Query to run; embedded as a subquery
        max_rows: Row cap (default 500, never above 10 000)
        connector: Optional replacement for ``connect``

    Returns:
        List of {column: value} dicts, values converted by the codec

    Raises:
        StoreConnectionError: If connecting or logging in fails
        QueryError: If the database rejects the query
    """
    limit = cap_max_rows(max_rows)
    result = await _query(cfg, wrap_query(sql, limit), connector)
    columns = result["columns"]
    rows = [row_to_json(columns, row) for row in result["rows"]]
    logger.debug("MSSQL query returned %d row(s) (limit %d)", len(rows), limit)
    return rows
