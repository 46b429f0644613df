"""Configuration management for rentroll-nlq."""

from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional, List, Literal
import json

from rentroll_nlq.utils.constants import DEFAULT_MAX_BYTES


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Built once at startup and handed to the pipeline; components never read
    the environment themselves.
    """

    # OpenAI configuration
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_validation_model: Optional[str] = None
    openai_base_url: Optional[str] = None
    openai_timeout: int = 30

    # Generation parameters
    translation_temperature: float = 0.1
    translation_max_tokens: int = 1000
    validation_temperature: float = 0.1
    validation_max_tokens: int = 500
    narration_temperature: float = 0.3
    narration_max_tokens: int = 1500
    narration_timeout: int = 30
    narration_max_rows: int = 50

    # Validation configuration
    validation_mode: Literal["heuristic", "llm"] = "heuristic"
    allowed_statements: list[str] = ["SELECT"]
    blocked_tables: str = Field(default="[]", description="JSON array of blocked table names")

    # Data engine configuration
    data_engine: Literal["bigquery", "postgres"] = "bigquery"
    dataset_table: str = "rentroll.rentroll.Update_7_8_native"
    bigquery_project: Optional[str] = None
    bigquery_location: Optional[str] = None
    postgres_dsn: str = "postgresql://localhost:5432/postgres"
    postgres_ssl: bool = False

    # Guardrails
    max_bytes: int = DEFAULT_MAX_BYTES
    max_result_rows: int = 1000
    query_timeout: int = 30
    estimate_timeout: int = 15
    request_timeout: int = 120
    include_explanation_default: bool = True

    # MCP configuration
    mcp_host: str = "0.0.0.0"
    mcp_port: int = 8989

    class Config:
        env_prefix = "RENTROLL_NLQ_"

    @property
    def sql_dialect(self) -> str:
        """sqlglot dialect matching the configured data engine."""
        return "bigquery" if self.data_engine == "bigquery" else "postgres"

    @property
    def review_model(self) -> str:
        """Model used for the validation review call."""
        return self.openai_validation_model or self.openai_model

    def get_blocked_tables(self) -> List[str]:
        """Parse blocked tables from JSON.

        Returns:
            List of blocked table names.
        """
        try:
            return json.loads(self.blocked_tables)
        except json.JSONDecodeError:
            return []
