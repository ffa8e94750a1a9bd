"""MCP server for Azure SQL / MSSQL and Azure Cosmos DB.

Exposes schema listing and bounded, read-oriented queries as MCP tools:
- relational_list_tables, relational_execute_query
- document_list_databases, document_list_containers, document_query_items
"""

__version__ = "0.1.0"
