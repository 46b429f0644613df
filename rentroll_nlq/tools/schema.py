"""MCP table schema tool implementation."""

import logging
from typing import Iterable, Optional

from mcp.server.fastmcp import FastMCP

from rentroll_nlq.services.data_engine import DataEngine
from rentroll_nlq.utils.exceptions import InvalidRequestError, NLQueryError

logger = logging.getLogger("tools.schema")


async def handle_table_schema(
    engine: DataEngine,
    table: str,
    timeout: float,
    blocked_tables: Iterable[str] = ()
) -> dict:
    """Describe ``table`` and render it as a JSON-safe dict.

    Args:
        engine: The data engine.
        table: Fully qualified table name.
        timeout: Metadata lookup timeout in seconds.
        blocked_tables: Table names that may not be described.

    Returns:
        The camelCase schema, or the error dict of a typed failure.
    """
    try:
        name = table.strip("`\"").rsplit(".", 1)[-1]
        if name.lower() in {t.lower() for t in blocked_tables}:
            raise InvalidRequestError(
                f"Access to table is not allowed: {name}",
                [{"field": "table", "message": "table is blocked"}]
            )
        schema = await engine.describe(table, timeout)
    except NLQueryError as e:
        logger.warning("Schema lookup failed for %s: %s", table, e.message)
        return e.to_dict()

    return {
        "status": "success",
        **schema.model_dump(mode="json", by_alias=True)
    }


def register_schema_tool(
    mcp: FastMCP,
    engine: DataEngine,
    default_table: str,
    timeout: float = 15,
    blocked_tables: Iterable[str] = ()
) -> None:
    """Register the schema tool with the MCP server.

    Args:
        mcp: The FastMCP server instance.
        engine: The data engine.
        default_table: Table described when the caller names none.
        timeout: Metadata lookup timeout in seconds.
        blocked_tables: Table names that may not be described.
    """
    blocked = list(blocked_tables)

    @mcp.tool()
    async def table_schema(table: Optional[str] = None) -> dict:
        """
        Get the columns and storage statistics of a rent roll table.

        Args:
            table: Fully qualified table name (defaults to the main rent roll table).

        Returns:
            Column names, types, nullability and descriptions plus row and byte counts, or an error.
        """
        return await handle_table_schema(engine, table or default_table, timeout, blocked)
