"""ADO.NET connection string parsing for MSSQL.

Turns a string such as::

    server=tcp:myserver.database.windows.net,1433;database=mydb;
    user id=myuser;password=secret;encrypt=true

into keyword arguments for ``pymssql.connect``. Keys are case-insensitive and
the usual aliases are accepted. ``encrypt`` maps onto pymssql's
``encryption`` setting and ``applicationintent=readonly`` onto ``read_only``.
Keys that have no pymssql counterpart (trustservercertificate, ...) are
ignored.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .exceptions import ConnectionStringError

logger = logging.getLogger(__name__)

DEFAULT_PORT = 1433

_ALIASES = {
    "server": "server",
    "data source": "server",
    "address": "server",
    "addr": "server",
    "network address": "server",
    "database": "database",
    "initial catalog": "database",
    "user id": "user",
    "uid": "user",
    "user": "user",
    "password": "password",
    "pwd": "password",
    "connect timeout": "login_timeout",
    "connection timeout": "login_timeout",
    "timeout": "login_timeout",
    "command timeout": "timeout",
    "application name": "appname",
    "app": "appname",
    "encrypt": "encryption",
    "applicationintent": "read_only",
    "application intent": "read_only",
}

# ADO.NET Encrypt values -> pymssql encryption levels
_ENCRYPTION = {
    "true": "require",
    "yes": "require",
    "mandatory": "require",
    "strict": "require",
    "false": "request",
    "no": "request",
    "optional": "request",
}

_APPLICATION_INTENT = {"readonly": True, "readwrite": False}


@dataclass(frozen=True)
class MssqlConnectionParams:
    """Parsed MSSQL connection settings."""

    server: str
    port: int = DEFAULT_PORT
    database: Optional[str] = None
    user: Optional[str] = None
    password: Optional[str] = None
    login_timeout: Optional[int] = None
    timeout: Optional[int] = None
    appname: Optional[str] = None
    encryption: Optional[str] = None
    read_only: bool = False

    @property
    def address(self) -> str:
        """host:port for log and error messages."""
        return f"{self.server}:{self.port}"

    def to_connect_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for pymssql.connect."""
        kwargs: Dict[str, Any] = {"server": self.server, "port": str(self.port)}
        for name in (
            "database", "user", "password", "login_timeout", "timeout", "appname", "encryption",
        ):
            value = getattr(self, name)
            if value is not None:
                kwargs[name] = value
        if self.read_only:
            kwargs["read_only"] = True
        return kwargs

    def __repr__(self) -> str:
        return (
            f"MssqlConnectionParams(server={self.server!r}, port={self.port}, "
            f"database={self.database!r}, user={self.user!r})"
        )


def _split_pairs(text: str) -> List[str]:
    """Split on ';' while honouring single/double quoted values."""
    parts: List[str] = []
    current: List[str] = []
    quote: Optional[str] = None
    for ch in text:
        if quote:
            if ch == quote:
                quote = None
            else:
                current.append(ch)
        elif ch in ("'", '"') and "".join(current).rstrip().endswith("="):
            quote = ch
        elif ch == ";":
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
    if quote:
        raise ConnectionStringError("unterminated quoted value")
    parts.append("".join(current))
    return [p for p in parts if p.strip()]


def _to_int(key: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ConnectionStringError(f"'{key}' must be an integer, got {value!r}")


def _lookup(key: str, value: str, table: Dict[str, Any]) -> Any:
    try:
        return table[value.lower()]
    except KeyError:
        allowed = ", ".join(table)
        raise ConnectionStringError(f"'{key}' must be one of {allowed}, got {value!r}")


def parse_connection_string(text: str) -> MssqlConnectionParams:
    """Parse an ADO.NET style MSSQL connection string.

    Args:
        text: Connection string (``key=value;`` pairs)

    Returns:
        MssqlConnectionParams

    Raises:
        ConnectionStringError: If a pair is malformed or no server is given
    """
    values: Dict[str, str] = {}
    for pair in _split_pairs(text):
        if "=" not in pair:
            raise ConnectionStringError(f"expected 'key=value', got {pair.strip()!r}")
        key, value = pair.split("=", 1)
        key = " ".join(key.strip().lower().split())
        name = _ALIASES.get(key)
        if name is None:
            logger.debug("Ignoring connection string key %r", key)
            continue
        values[name] = value.strip()

    server = values.pop("server", "")
    if not server:
        raise ConnectionStringError("no server specified")

    if server.lower().startswith("tcp:"):
        server = server[4:]
    port = DEFAULT_PORT
    if "," in server:
        server, port_text = server.rsplit(",", 1)
        port = _to_int("server", port_text.strip())
    server = server.strip()
    if not server:
        raise ConnectionStringError("no server specified")

    return MssqlConnectionParams(
        server=server,
        port=port,
        database=values.get("database") or None,
        user=values.get("user") or None,
        password=values.get("password"),
        login_timeout=_to_int("connect timeout", values["login_timeout"]) if values.get("login_timeout") else None,
        timeout=_to_int("command timeout", values["timeout"]) if values.get("timeout") else None,
        appname=values.get("appname") or None,
        encryption=_lookup("encrypt", values["encryption"], _ENCRYPTION) if values.get("encryption") else None,
        read_only=_lookup("applicationintent", values["read_only"], _APPLICATION_INTENT) if values.get("read_only") else False,
    )
