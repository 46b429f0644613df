"""Main entry point for rentroll-nlq."""

import argparse
import asyncio
import json
import logging
from typing import Optional

from mcp.server.fastmcp import FastMCP

from rentroll_nlq.config import Settings
from rentroll_nlq.services.ai_client import AIClient
from rentroll_nlq.services.data_engine import create_engine
from rentroll_nlq.services.pipeline import NLQueryPipeline
from rentroll_nlq.tools.query import handle_nl_query, register_query_tool
from rentroll_nlq.tools.schema import register_schema_tool


logger = logging.getLogger("rentroll_nlq")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="RentRoll natural language query server")
    parser.add_argument(
        "--engine",
        choices=["bigquery", "postgres"],
        help="Data engine to query"
    )
    parser.add_argument("--dsn", type=str, help="PostgreSQL DSN")
    parser.add_argument("--project", type=str, help="BigQuery project")
    parser.add_argument("--table", type=str, help="Fully qualified table to query")
    parser.add_argument("--api-key", type=str, help="OpenAI API Key")
    parser.add_argument("--base-url", type=str, help="OpenAI API Base URL")
    parser.add_argument("--model", type=str, help="OpenAI Model")
    parser.add_argument("--max-bytes", type=int, help="Bytes-scanned ceiling per query")
    parser.add_argument(
        "--prompt",
        type=str,
        help="Answer one question, print the JSON result and exit"
    )
    parser.add_argument(
        "--no-explanation",
        action="store_true",
        help="Skip the narrative explanation (with --prompt)"
    )
    return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
    """Load settings from the environment, overridden by CLI flags."""
    overrides = {
        "data_engine": args.engine,
        "postgres_dsn": args.dsn,
        "bigquery_project": args.project,
        "dataset_table": args.table,
        "openai_api_key": args.api_key,
        "openai_base_url": args.base_url,
        "openai_model": args.model,
        "max_bytes": args.max_bytes,
    }
    return Settings(**{k: v for k, v in overrides.items() if v is not None})


def main() -> None:
    """Main entry point for the server."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )

    args = build_parser().parse_args()
    settings = settings_from_args(args)

    if args.prompt:
        asyncio.run(run_once(settings, args.prompt, not args.no_explanation))
        return

    logger.info("Starting rentroll-nlq server initialization")
    asyncio.run(run_server(settings))


async def run_once(settings: Settings, prompt: str, include_explanation: Optional[bool]) -> None:
    """Answer a single question and print the result."""
    ai_client = AIClient(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        base_url=settings.openai_base_url,
        timeout=settings.openai_timeout
    )
    engine = await create_engine(settings)
    try:
        pipeline = NLQueryPipeline.from_settings(settings, ai_client, engine)
        result = await handle_nl_query(
            pipeline, prompt, include_explanation=include_explanation
        )
        print(json.dumps(result, indent=2, default=str))
    finally:
        await engine.close()


async def run_server(settings: Settings) -> None:
    """Run the MCP server.

    Args:
        settings: Application settings.
    """
    mcp = FastMCP("rentroll-nlq", host=settings.mcp_host, port=settings.mcp_port)

    logger.info("settings: %s", settings.model_dump(exclude={"openai_api_key"}))

    logger.info("Initializing services (AI client, data engine, pipeline)")
    ai_client = AIClient(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        base_url=settings.openai_base_url,
        timeout=settings.openai_timeout
    )
    engine = await create_engine(settings)
    pipeline = NLQueryPipeline.from_settings(settings, ai_client, engine)

    register_query_tool(mcp, pipeline)
    register_schema_tool(
        mcp,
        engine,
        settings.dataset_table,
        timeout=settings.estimate_timeout,
        blocked_tables=settings.get_blocked_tables()
    )

    logger.info("rentroll-nlq server ready; starting event loop")

    try:
        await mcp.run_sse_async()
    finally:
        await engine.close()


if __name__ == "__main__":
    main()
