"""Azure Cosmos DB query gateway.

Uses the async ``azure-cosmos`` client with account-key authentication.
A client is created per call and closed by ``async with`` on every exit
path, including cancellation.
"""

import logging
from typing import Any, Callable, List, Optional

from azure.core.exceptions import ServiceRequestError, ServiceResponseError
from azure.cosmos.aio import CosmosClient
from azure.cosmos.exceptions import CosmosHttpResponseError

from .config import CosmosConfig
from .exceptions import AuthenticationUnavailableError, QueryError, StoreConnectionError

logger = logging.getLogger(__name__)

# Default number of items returned when the caller does not specify max_items
DEFAULT_MAX_ITEMS = 100
# Hard upper limit on items to prevent runaway reads
HARD_MAX_ITEMS = 5_000
# Largest page requested from the service in one round trip
MAX_PAGE_SIZE = 1_000

ClientFactory = Callable[[CosmosConfig], Any]


def cap_max_items(requested: Optional[int]) -> int:
    """Apply the default and the hard ceiling to a requested item count."""
    if requested is None:
        requested = DEFAULT_MAX_ITEMS
    return max(0, min(int(requested), HARD_MAX_ITEMS))


def _default_client_factory(cfg: CosmosConfig) -> CosmosClient:
    return CosmosClient(cfg.endpoint, credential=cfg.key)


def build_client(cfg: CosmosConfig, client_factory: Optional[ClientFactory] = None) -> Any:
    """Create a Cosmos client for the configured account.

    Only key-based authentication is supported.

    Raises:
        AuthenticationUnavailableError: If no account key is configured
        StoreConnectionError: If the client cannot be created
    """
    if not cfg.key:
        raise AuthenticationUnavailableError()
    factory = client_factory or _default_client_factory
    try:
        return factory(cfg)
    except (ValueError, TypeError) as e:
        raise StoreConnectionError(
            "Cosmos DB", f"Failed to create Cosmos DB client with account key: {e}"
        ) from e


def _translate(e: Exception, action: str) -> Exception:
    """Map an azure exception onto the data-store error taxonomy."""
    if isinstance(e, (ServiceRequestError, ServiceResponseError)):
        return StoreConnectionError("Cosmos DB", f"Failed to reach Cosmos DB while {action}: {e}")
    if isinstance(e, CosmosHttpResponseError) and e.status_code in (401, 403):
        return StoreConnectionError("Cosmos DB", f"Cosmos DB rejected the credentials while {action}: {e.message}")
    if isinstance(e, CosmosHttpResponseError):
        return QueryError("Cosmos DB", f"Error {action}: {e.message}")
    return e


async def _drain_ids(pager: Any) -> List[str]:
    names = []
    async for entry in pager:
        names.append(entry["id"])
    return names


async def list_databases(
    cfg: CosmosConfig, client_factory: Optional[ClientFactory] = None
) -> List[str]:
    """List all databases in the Cosmos DB account.

    Returns:
        Database names in the order the service returns them
    """
    client = build_client(cfg, client_factory)
    try:
        async with client:
            names = await _drain_ids(client.list_databases())
    except (ServiceRequestError, ServiceResponseError, CosmosHttpResponseError) as e:
        raise _translate(e, "iterating database list") from e
    logger.debug("Listed %d Cosmos databases", len(names))
    return names


async def list_containers(
    cfg: CosmosConfig, database: str, client_factory: Optional[ClientFactory] = None
) -> List[str]:
    """List all containers within a Cosmos DB database.

    Returns:
        Container names in the order the service returns them
    """
    client = build_client(cfg, client_factory)
    try:
        async with client:
            db = client.get_database_client(database)
            names = await _drain_ids(db.list_containers())
    except (ServiceRequestError, ServiceResponseError, CosmosHttpResponseError) as e:
        raise _translate(e, "iterating container list") from e
    logger.debug("Listed %d containers in Cosmos database %s", len(names), database)
    return names


async def query_items(
    cfg: CosmosConfig,
    database: str,
    container: str,
    sql: str,
    partition_key: Optional[str] = None,
    max_items: Optional[int] = None,
    client_factory: Optional[ClientFactory] = None,
) -> List[Any]:
    """Query items in a container with a SQL-API query.

    Pages are pulled until the result set is exhausted or ``max_items``
    items have been collected; no page is requested after that and the
    result is truncated to exactly ``max_items``.

    Args:
        cfg: Cosmos DB configuration
        database: Database name
        container: Container name
        sql: SQL-API query, e.g. ``SELECT * FROM c WHERE c.active = true``
        partition_key: Scope the query to one logical partition. None runs a
            cross-partition query (more RUs, but allowed).
        max_items: Item cap (default 100, never above 5 000)
        client_factory: Optional replacement for the CosmosClient constructor

    Returns:
        List of matching items

    Raises:
        AuthenticationUnavailableError: If no account key is configured
        StoreConnectionError: If the service cannot be reached
        QueryError: If the service rejects the query
    """
    limit = cap_max_items(max_items)
    client = build_client(cfg, client_factory)

    options = {"query": sql, "max_item_count": max(1, min(limit, MAX_PAGE_SIZE))}
    if partition_key is not None:
        options["partition_key"] = partition_key

    items: List[Any] = []
    try:
        async with client:
            container_client = client.get_database_client(database).get_container_client(container)
            if limit > 0:
                pager = container_client.query_items(**options)
                async for page in pager.by_page():
                    async for item in page:
                        items.append(item)
                        if len(items) >= limit:
                            break
                    if len(items) >= limit:
                        break
    except (ServiceRequestError, ServiceResponseError, CosmosHttpResponseError) as e:
        raise _translate(e, "iterating Cosmos DB query results") from e

    logger.debug(
        "Cosmos query on %s/%s returned %d item(s) (limit %d, partition_key=%s)",
        database,
        container,
        len(items),
        limit,
        "set" if partition_key is not None else "cross-partition",
    )
    return items[:limit]
