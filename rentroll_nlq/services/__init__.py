"""Service modules for rentroll-nlq."""

from rentroll_nlq.services.ai_client import AIClient
from rentroll_nlq.services.sql_validator import SQLValidator
from rentroll_nlq.services.translator import QueryTranslator
from rentroll_nlq.services.validator import QueryValidator
from rentroll_nlq.services.data_engine import DataEngine, create_engine
from rentroll_nlq.services.cost_guard import CostGuard
from rentroll_nlq.services.executor import QueryExecutor
from rentroll_nlq.services.narrator import Narrator
from rentroll_nlq.services.pipeline import (
    NLQueryPipeline,
    PipelineRun,
    PipelineState,
)
from rentroll_nlq.services.resilience import run_with_timeout

__all__ = [
    # AI
    "AIClient",
    # Stages
    "SQLValidator",
    "QueryTranslator",
    "QueryValidator",
    "CostGuard",
    "QueryExecutor",
    "Narrator",
    # Engine
    "DataEngine",
    "create_engine",
    # Pipeline
    "NLQueryPipeline",
    "PipelineRun",
    "PipelineState",
    # Resilience
    "run_with_timeout",
]
