"""MCP tools for rentroll-nlq."""

from rentroll_nlq.tools.query import handle_nl_query, register_query_tool
from rentroll_nlq.tools.schema import handle_table_schema, register_schema_tool

__all__ = [
    "handle_nl_query",
    "register_query_tool",
    "handle_table_schema",
    "register_schema_tool",
]
