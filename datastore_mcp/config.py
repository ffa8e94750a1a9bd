"""Store configuration resolved from environment variables.

Environment variables:
    MSSQL_CONNECTION_STRING: ADO.NET connection string, e.g.
        ``server=tcp:myserver.database.windows.net,1433;database=mydb;
        user id=myuser;password=mypassword;encrypt=true``
    COSMOS_ENDPOINT: Cosmos DB account endpoint, e.g.
        ``https://myaccount.documents.azure.com:443/``
    COSMOS_KEY: Primary or secondary account key
    COSMOS_DEFAULT_DATABASE: Database used when a tool call omits ``database``

At least one of MSSQL_CONNECTION_STRING or COSMOS_ENDPOINT must be set.
"""

import logging
import os
from dataclasses import dataclass
from typing import List, Mapping, Optional

from .exceptions import ConfigurationError, NotConfiguredError

logger = logging.getLogger(__name__)

MSSQL_CONNECTION_STRING_VAR = "MSSQL_CONNECTION_STRING"
COSMOS_ENDPOINT_VAR = "COSMOS_ENDPOINT"
COSMOS_KEY_VAR = "COSMOS_KEY"
COSMOS_DEFAULT_DATABASE_VAR = "COSMOS_DEFAULT_DATABASE"


@dataclass(frozen=True)
class MssqlConfig:
    """Connection settings for Azure SQL / MSSQL."""

    connection_string: str

    def __repr__(self) -> str:
        # Connection string carries the password
        return "MssqlConfig(connection_string='***')"


@dataclass(frozen=True)
class CosmosConfig:
    """Connection settings for Azure Cosmos DB.

    ``key`` may be None; every Cosmos operation then fails with
    AuthenticationUnavailableError before touching the network.
    """

    endpoint: str
    key: Optional[str] = None
    default_database: Optional[str] = None

    def __repr__(self) -> str:
        key = "***" if self.key else None
        return (
            f"CosmosConfig(endpoint={self.endpoint!r}, key={key!r}, "
            f"default_database={self.default_database!r})"
        )


@dataclass(frozen=True)
class Config:
    """Top-level server configuration.

    Built once at startup and shared read-only by every tool call.

    Raises:
        ConfigurationError: If neither store is configured
    """

    mssql: Optional[MssqlConfig] = None
    cosmos: Optional[CosmosConfig] = None

    def __post_init__(self) -> None:
        if self.mssql is None and self.cosmos is None:
            raise ConfigurationError(
                "No data-store configuration found. Set at least one of "
                f"{MSSQL_CONNECTION_STRING_VAR} or {COSMOS_ENDPOINT_VAR}."
            )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        """Build configuration from environment variables.

        Args:
            environ: Mapping to read from. Defaults to os.environ.

        Returns:
            Validated Config

        Raises:
            ConfigurationError: If neither store is configured
        """
        env = os.environ if environ is None else environ

        mssql = None
        connection_string = _get(env, MSSQL_CONNECTION_STRING_VAR)
        if connection_string:
            logger.info("MSSQL connection string found, MSSQL tools will be available")
            mssql = MssqlConfig(connection_string=connection_string)

        cosmos = None
        endpoint = _get(env, COSMOS_ENDPOINT_VAR)
        if endpoint:
            key = _get(env, COSMOS_KEY_VAR)
            if key:
                logger.info("Cosmos DB endpoint and account key found, Cosmos tools will be available")
            else:
                logger.warning(
                    "%s is set but %s is missing. Cosmos DB tools will return "
                    "an error until %s is configured",
                    COSMOS_ENDPOINT_VAR,
                    COSMOS_KEY_VAR,
                    COSMOS_KEY_VAR,
                )
            cosmos = CosmosConfig(
                endpoint=endpoint,
                key=key,
                default_database=_get(env, COSMOS_DEFAULT_DATABASE_VAR),
            )

        return cls(mssql=mssql, cosmos=cosmos)

    def require_mssql(self) -> MssqlConfig:
        """Return the MSSQL config or raise NotConfiguredError."""
        if self.mssql is None:
            raise NotConfiguredError("MSSQL", MSSQL_CONNECTION_STRING_VAR)
        return self.mssql

    def require_cosmos(self) -> CosmosConfig:
        """Return the Cosmos DB config or raise NotConfiguredError."""
        if self.cosmos is None:
            raise NotConfiguredError("Cosmos DB", COSMOS_ENDPOINT_VAR)
        return self.cosmos

    def available_stores(self) -> List[str]:
        """Names of the configured stores."""
        stores = []
        if self.mssql is not None:
            stores.append("mssql")
        if self.cosmos is not None:
            stores.append("cosmos")
        return stores


def _get(env: Mapping[str, str], name: str) -> Optional[str]:
    value = env.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None
