"""Entry script for the MCP server.

Supports dual transport modes:
- stdio: For direct process communication with an agent host (default)
- http: Streamable HTTP for remote / Kubernetes deployment

Usage:
    # stdio (default)
    datastore-mcp

    # http
    MCP_TRANSPORT=http datastore-mcp

Environment variables:
    MSSQL_CONNECTION_STRING, COSMOS_ENDPOINT, COSMOS_KEY, COSMOS_DEFAULT_DATABASE:
        Store configuration, see datastore_mcp.config
    MCP_TRANSPORT: Transport mode - "stdio" or "http" (default: stdio)
    MCP_HOST: HTTP server host (default: 0.0.0.0)
    MCP_PORT: HTTP server port (default: 8055)
    LOG_LEVEL: Logging level (default: INFO)
"""

import logging
import os
import sys

from dotenv import load_dotenv

from . import __version__
from .config import Config
from .exceptions import ConfigurationError
from .server import create_server

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    """Configure logging to stderr so stdout stays clean for MCP JSON-RPC."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )
    # The azure SDK logs every HTTP request at INFO
    logging.getLogger("azure").setLevel(logging.WARNING)


def main() -> None:
    """Run the MCP server with configured transport."""
    load_dotenv()
    setup_logging(os.environ.get("LOG_LEVEL", "INFO"))

    logger.info("Starting datastore-mcp v%s", __version__)

    try:
        config = Config.from_env()
    except ConfigurationError as e:
        logger.error("%s", e)
        sys.exit(1)

    mcp = create_server(config)
    transport = os.environ.get("MCP_TRANSPORT", "stdio").lower()

    if transport == "http":
        host = os.environ.get("MCP_HOST", "0.0.0.0")
        port = int(os.environ.get("MCP_PORT", "8055"))
        logger.info("MCP server listening on http://%s:%d/mcp/", host, port)
        logger.info("Health check: http://%s:%d/health", host, port)
        mcp.run(transport="streamable-http", host=host, port=port)
    else:
        logger.info("MCP server listening on stdio")
        mcp.run(transport="stdio", show_banner=False)


if __name__ == "__main__":
    main()
