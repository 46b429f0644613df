"""MCP natural language query tool."""

import logging
from typing import Optional

from mcp.server.fastmcp import FastMCP

from rentroll_nlq.services.pipeline import NLQueryPipeline
from rentroll_nlq.utils.exceptions import NLQueryError

logger = logging.getLogger("tools.query")


async def handle_nl_query(
    pipeline: NLQueryPipeline,
    prompt: str,
    session_id: Optional[str] = None,
    include_explanation: Optional[bool] = None
) -> dict:
    """Run the pipeline and render the outcome as a JSON-safe dict.

    Args:
        pipeline: The query pipeline.
        prompt: Natural language question.
        session_id: Optional caller session id.
        include_explanation: Whether to narrate the result.

    Returns:
        The camelCase response, or the error dict of a typed failure.
    """
    try:
        response = await pipeline.run_query(
            prompt,
            session_id=session_id,
            include_explanation=include_explanation
        )
    except NLQueryError as e:
        return e.to_dict()

    return {
        "status": "success",
        **response.model_dump(mode="json", by_alias=True)
    }


def register_query_tool(mcp: FastMCP, pipeline: NLQueryPipeline) -> None:
    """Register the query tool with the MCP server.

    Args:
        mcp: The FastMCP server instance.
        pipeline: The query pipeline.
    """

    @mcp.tool()
    async def nl_query(
        prompt: str,
        session_id: Optional[str] = None,
        include_explanation: Optional[bool] = None
    ) -> dict:
        """
        Answer a question about the rent roll with an executed SQL query.

        Args:
            prompt: Natural language question (3-500 characters).
            session_id: Caller session id (optional).
            include_explanation: Whether to add a narrative explanation of the rows.

        Returns:
            Rows, executed SQL, optional explanation and cost accounting, or an error.
        """
        return await handle_nl_query(pipeline, prompt, session_id, include_explanation)
