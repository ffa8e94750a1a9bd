"""Error taxonomy for the data-store tools.

Every error raised below the tool boundary is a ``DataStoreError`` so that
handlers and tests can branch on the kind. The MCP layer turns them into a
single error string (see ``server.py``).
"""

from typing import Optional


class DataStoreError(Exception):
    """Base class for all data-store tool errors."""


class ConfigurationError(DataStoreError):
    """Raised at startup when no data store is configured at all."""


class NotConfiguredError(DataStoreError):
    """Raised when a tool targets a store that was never configured.

    Attributes:
        store: Human-readable store name (e.g. "MSSQL")
        env_var: Environment variable that would enable the store
    """

    def __init__(self, store: str, env_var: str):
        self.store = store
        self.env_var = env_var
        super().__init__(f"{store} is not configured ({env_var} not set)")


class AuthenticationUnavailableError(DataStoreError):
    """Raised when the Cosmos DB endpoint is set but no account key is."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(
            message
            or (
                "Cosmos DB authentication requires COSMOS_KEY to be set. "
                "Set COSMOS_KEY to your Cosmos DB account key."
            )
        )


class StoreConnectionError(DataStoreError):
    """Raised when connecting or logging in to a store fails.

    Attributes:
        store: Store the connection was opened against
    """

    def __init__(self, store: str, message: str):
        self.store = store
        super().__init__(message)


class ConnectionStringError(StoreConnectionError):
    """Raised when the MSSQL connection string cannot be parsed."""

    def __init__(self, message: str):
        super().__init__("MSSQL", f"Failed to parse MSSQL connection string: {message}")


class QueryError(DataStoreError):
    """Raised when the store rejects or fails to execute a query.

    The driver's message is kept verbatim; callers are trusted operators.
    """

    def __init__(self, store: str, message: str):
        self.store = store
        super().__init__(message)


class ParameterError(DataStoreError):
    """Raised when a required tool parameter is missing and has no default."""

    def __init__(self, parameter: str, message: str):
        self.parameter = parameter
        super().__init__(message)
