"""Entry point for running the MCP server as a module.

Usage:
    python -m datastore_mcp
"""

from .run import main

if __name__ == "__main__":
    main()
