"""Prompt templates and function schemas for the text generation service."""

import json
from typing import Any, Optional


SQL_ANALYST_PROMPT = """You are a property management data analyst with expertise in SQL.
You have access to a table called `{table}` which contains rental property data.

Your job is to convert natural language questions into precise SQL queries that will answer the user's question.

Key guidelines:
- Always use the exact table name: `{table}`
- Be conservative with resource usage - prefer efficient queries
- Include LIMIT clauses for queries that might return large datasets
- Use appropriate date functions for time-based analysis
- Format numbers and percentages appropriately
- Include relevant columns that provide context to the answer
- Only produce a single read-only SELECT statement

Available columns include (but not limited to):
- Property information: Property (property name)
- Unit details: Unit, Bedroom, Bathrooms, Sqft, Unit_Type
- Financial data: Rent, Market_Rent, Monthly_Rent_SF, Monthly_Market_Rent_SF, Deposit
- Occupancy: Status, Rent_Status, Rent_Ready
- Lease information: Lease_From, Lease_To, Move_in, Move_out
- Performance: Past_Due, NSF_Count, Late_Count

Return only valid SQL for the {dialect} dialect."""

NARRATIVE_ANALYST_PROMPT = """You are a property management consultant who explains data insights in clear, business-focused language.

Your job is to:
1. Analyze the query results provided
2. Identify key trends, patterns, and insights
3. Provide actionable recommendations
4. Explain what the data means for property management decisions

Keep your analysis professional, clear and supported by specific data points."""

SQL_REVIEW_PROMPT = """As a SQL expert, analyze this {dialect} SQL query for potential issues:

{sql}

Check for:
1. Security issues (SQL injection risks)
2. Performance problems (missing LIMIT, inefficient joins)
3. Syntax errors
4. {dialect}-specific issues
5. Data access patterns that might be expensive (full-table scans without filters)

Set isValid to false only for problems that make the query unsafe or unable to run.
List every problem in issues and every improvement in suggestions."""

COST_WARNING = (
    "IMPORTANT: Be mindful of query costs. This query will be billed by the "
    "number of bytes scanned."
)

CONTEXT_REMINDER = """Remember you're analyzing real rental property data. Focus on insights that help property managers make better decisions about:
- Rent pricing and adjustments
- Occupancy optimization
- Market positioning
- Portfolio performance"""

FORMAT_INSTRUCTIONS = """Format your response clearly with:
- Key findings at the top
- Supporting data and metrics
- Specific recommendations
- Any relevant caveats or limitations"""


SQL_FUNCTION_SCHEMA: dict[str, Any] = {
    "name": "generate_sql_query",
    "description": "Generate a SQL query to answer the user's question about rental property data",
    "parameters": {
        "type": "object",
        "properties": {
            "sql": {
                "type": "string",
                "description": "Valid SQL query against the rent roll table"
            },
            "explanation": {
                "type": "string",
                "description": "Brief explanation of what the query does and what insights it provides"
            },
            "estimatedComplexity": {
                "type": "string",
                "enum": ["low", "medium", "high"],
                "description": "Estimated query complexity and resource usage"
            }
        },
        "required": ["sql", "explanation", "estimatedComplexity"]
    }
}

REVIEW_FUNCTION_SCHEMA: dict[str, Any] = {
    "name": "review_sql_query",
    "description": "Report whether a SQL query is safe and efficient to run",
    "parameters": {
        "type": "object",
        "properties": {
            "isValid": {
                "type": "boolean",
                "description": "False if the query is unsafe, invalid or unbounded"
            },
            "issues": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Problems found in the query"
            },
            "suggestions": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Concrete improvements to the query"
            }
        },
        "required": ["isValid", "issues", "suggestions"]
    }
}


def build_sql_prompt(
    user_question: str,
    table: str,
    dialect: str,
    context: Optional[str] = None
) -> str:
    prompt = SQL_ANALYST_PROMPT.format(table=table, dialect=dialect) + "\n\n"

    if context:
        prompt += f"Previous context: {context}\n\n"

    prompt += f"User question: {user_question}\n\n"
    prompt += COST_WARNING + "\n"
    prompt += "Generate a SQL query to answer this question."
    return prompt


def build_validation_prompt(sql: str, dialect: str) -> str:
    return SQL_REVIEW_PROMPT.format(sql=sql, dialect=dialect)


def build_narrative_prompt(
    rows: list[dict[str, Any]],
    original_question: str,
    sql: str
) -> str:
    prompt = NARRATIVE_ANALYST_PROMPT + "\n\n"
    prompt += f"Original question: {original_question}\n\n"
    prompt += f"SQL query executed:\n{sql}\n\n"
    prompt += f"Query results:\n{json.dumps(rows, indent=2, default=str)}\n\n"
    prompt += CONTEXT_REMINDER + "\n\n"
    prompt += FORMAT_INSTRUCTIONS + "\n\n"
    prompt += "Analyze these results and provide business insights."
    return prompt
