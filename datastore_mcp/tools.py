"""Tool handlers mapping MCP tool calls onto the store gateways.

Each handler resolves its store configuration and default database before
any I/O, delegates to ``mssql`` or ``cosmos``, and returns the result as JSON
text. Errors propagate as DataStoreError subclasses; the MCP layer turns
them into a single error string.
"""

import json
import logging
from typing import Any, Optional

from . import cosmos, mssql
from .config import COSMOS_DEFAULT_DATABASE_VAR, Config, CosmosConfig
from .exceptions import ParameterError

logger = logging.getLogger(__name__)


def _json_dumps(obj: Any) -> str:
    """Serialize a tool result to JSON text."""
    return json.dumps(obj, ensure_ascii=False)


class DataStoreTools:
    """The five data-store tools bound to one immutable Config.

    Example:
        ```python
        tools = DataStoreTools(Config.from_env())
        text = await tools.relational_execute_query("SELECT name FROM sys.tables", max_rows=10)
        ```
    """

    def __init__(
        self,
        config: Config,
        mssql_connector: Optional[mssql.Connector] = None,
        cosmos_client_factory: Optional[cosmos.ClientFactory] = None,
    ):
        """Initialize the handlers.

        Args:
            config: Store configuration shared by every call
            mssql_connector: Optional replacement for ``mssql.connect``
            cosmos_client_factory: Optional replacement for the CosmosClient constructor
        """
        self.config = config
        self._mssql_connector = mssql_connector
        self._cosmos_client_factory = cosmos_client_factory

    # =========================================================================
    # MSSQL
    # =========================================================================

    async def relational_list_tables(self) -> str:
        """List all user tables as [{schema, table_name}, ...]."""
        cfg = self.config.require_mssql()
        tables = await mssql.list_tables(cfg, connector=self._mssql_connector)
        return _json_dumps(tables)

    async def relational_execute_query(self, query: str, max_rows: Optional[int] = None) -> str:
        """Run a query and return [{column: value}, ...], capped at max_rows."""
        cfg = self.config.require_mssql()
        rows = await mssql.execute_query(cfg, query, max_rows, connector=self._mssql_connector)
        return _json_dumps(rows)

    # =========================================================================
    # Cosmos DB
    # =========================================================================

    async def document_list_databases(self) -> str:
        """List database names in the Cosmos account."""
        cfg = self.config.require_cosmos()
        names = await cosmos.list_databases(cfg, client_factory=self._cosmos_client_factory)
        return _json_dumps(names)

    async def document_list_containers(self, database: Optional[str] = None) -> str:
        """List container names in a database (default database if omitted)."""
        cfg = self.config.require_cosmos()
        database = self._resolve_database(cfg, database)
        names = await cosmos.list_containers(
            cfg, database, client_factory=self._cosmos_client_factory
        )
        return _json_dumps(names)

    async def document_query_items(
        self,
        query: str,
        container: str,
        database: Optional[str] = None,
        partition_key: Optional[str] = None,
        max_items: Optional[int] = None,
    ) -> str:
        """Run a SQL-API query against a container, capped at max_items."""
        cfg = self.config.require_cosmos()
        database = self._resolve_database(cfg, database)
        items = await cosmos.query_items(
            cfg,
            database,
            container,
            query,
            partition_key=partition_key,
            max_items=max_items,
            client_factory=self._cosmos_client_factory,
        )
        return _json_dumps(items)

    @staticmethod
    def _resolve_database(cfg: CosmosConfig, database: Optional[str]) -> str:
        resolved = database or cfg.default_database
        if not resolved:
            raise ParameterError(
                "database",
                f"database parameter is required when {COSMOS_DEFAULT_DATABASE_VAR} is not set",
            )
        return resolved
