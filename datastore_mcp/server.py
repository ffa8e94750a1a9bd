"""MCP server exposing Azure SQL / MSSQL and Azure Cosmos DB as tools.

Provides five read-oriented tools via the Model Context Protocol using
FastMCP 2.0:

- relational_list_tables / relational_execute_query (MSSQL)
- document_list_databases / document_list_containers / document_query_items (Cosmos DB)
"""

import logging
from typing import Annotated, Any, Awaitable

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from pydantic import Field
from starlette.responses import JSONResponse

from .config import Config
from .cosmos import DEFAULT_MAX_ITEMS, HARD_MAX_ITEMS
from .mssql import DEFAULT_MAX_ROWS, HARD_MAX_ROWS
from .tools import DataStoreTools

logger = logging.getLogger(__name__)

SERVER_NAME = "datastore-mcp"

INSTRUCTIONS = (
    "This MCP server provides tools for querying Azure MSSQL and Azure Cosmos DB "
    "data stores. Use the relational_* tools for relational data and the "
    "document_* tools for document data. Results are JSON text."
)

READ_ONLY = {"readOnlyHint": True, "destructiveHint": False, "idempotentHint": True}


async def _run_tool(name: str, call: Awaitable[str]) -> str:
    """Await a handler and turn any failure into a single error string."""
    try:
        return await call
    except Exception as e:
        logger.warning("Tool %s failed: %s", name, e)
        raise ToolError(str(e)) from e


def create_server(config: Config, tools: DataStoreTools | None = None) -> FastMCP:
    """Create the MCP server with all tools registered.

    Args:
        config: Store configuration, resolved once at startup
        tools: Optional pre-built handlers (tests inject fakes through this)

    Returns:
        Configured FastMCP instance
    """
    handlers = tools or DataStoreTools(config)
    mcp = FastMCP(SERVER_NAME, instructions=INSTRUCTIONS)

    # =========================================================================
    # Health Check Endpoint
    # =========================================================================

    @mcp.custom_route("/health", methods=["GET"])
    async def health_check(request: Any) -> JSONResponse:
        """Report configured stores. Performs no database I/O."""
        return JSONResponse({"status": "healthy", "stores": config.available_stores()})

    # =========================================================================
    # MSSQL Tools
    # =========================================================================

    @mcp.tool(annotations=READ_ONLY)
    async def relational_list_tables() -> str:
        """List all user tables in the Azure MSSQL database.

        Returns:
            JSON array of objects with `schema` and `table_name` fields
        """
        return await _run_tool("relational_list_tables", handlers.relational_list_tables())

    @mcp.tool(annotations=READ_ONLY)
    async def relational_execute_query(
        query: Annotated[str, Field(description="SQL query to execute. Results are capped to max_rows rows.")],
        max_rows: Annotated[
            int | None,
            Field(
                ge=0,
                description=(
                    f"Maximum number of rows to return "
                    f"(default: {DEFAULT_MAX_ROWS}, maximum: {HARD_MAX_ROWS:,})."
                ),
            ),
        ] = None,
    ) -> str:
        """Execute a SQL query against Azure MSSQL.

        The query runs wrapped in a TOP clause to prevent runaway reads.
        Date and time columns are returned in the driver's display form; cast
        to varchar in SQL for a specific format.

        Returns:
            JSON array of row objects
        """
        return await _run_tool(
            "relational_execute_query",
            handlers.relational_execute_query(query, max_rows=max_rows),
        )

    # =========================================================================
    # Cosmos DB Tools
    # =========================================================================

    @mcp.tool(annotations=READ_ONLY)
    async def document_list_databases() -> str:
        """List all databases in the Azure Cosmos DB account.

        Returns:
            JSON array of database name strings
        """
        return await _run_tool("document_list_databases", handlers.document_list_databases())

    @mcp.tool(annotations=READ_ONLY)
    async def document_list_containers(
        database: Annotated[
            str | None,
            Field(description="Cosmos DB database name. Defaults to COSMOS_DEFAULT_DATABASE when omitted."),
        ] = None,
    ) -> str:
        """List all containers in an Azure Cosmos DB database.

        Returns:
            JSON array of container name strings
        """
        return await _run_tool(
            "document_list_containers",
            handlers.document_list_containers(database=database),
        )

    @mcp.tool(annotations=READ_ONLY)
    async def document_query_items(
        query: Annotated[
            str,
            Field(description='SQL-API query string, e.g. "SELECT * FROM c WHERE c.active = true".'),
        ],
        container: Annotated[str, Field(description="Container to query.")],
        database: Annotated[
            str | None,
            Field(description="Cosmos DB database name. Defaults to COSMOS_DEFAULT_DATABASE when omitted."),
        ] = None,
        partition_key: Annotated[
            str | None,
            Field(description="Partition key value for single-partition queries. Omit for a cross-partition query."),
        ] = None,
        max_items: Annotated[
            int | None,
            Field(
                ge=0,
                description=(
                    f"Maximum number of items to return "
                    f"(default: {DEFAULT_MAX_ITEMS}, maximum: {HARD_MAX_ITEMS:,})."
                ),
            ),
        ] = None,
    ) -> str:
        """Query items in an Azure Cosmos DB container using a SQL-API query.

        Returns:
            JSON array of matching documents
        """
        return await _run_tool(
            "document_query_items",
            handlers.document_query_items(
                query,
                container,
                database=database,
                partition_key=partition_key,
                max_items=max_items,
            ),
        )

    return mcp
