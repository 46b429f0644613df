"""Static SQL validation - first line of defence before any engine call.

Every check runs on sqlglot tokens or the parse tree of the exact text that
will be executed, so comments are ignored and string literals stay opaque.
"""

import sqlglot
from sqlglot import exp
from sqlglot.errors import SqlglotError
from sqlglot.tokens import Token, TokenType
from typing import Optional, Set, List

from rentroll_nlq.models.query import ValidationVerdict

# Quoted text never counts as SQL keywords
_LITERAL_TOKENS = frozenset(
    t for t in TokenType if t.name.endswith("STRING")
) | {TokenType.IDENTIFIER}

# Operands compared by an always-true predicate such as OR 1=1
_OPERAND_TOKENS = frozenset({
    TokenType.NUMBER,
    TokenType.STRING,
    TokenType.VAR,
    TokenType.IDENTIFIER,
})


class SQLValidator:
    """Heuristic SQL validator.

    Checks a candidate query for injection risk, syntax, missing bounding
    clauses and engine anti-patterns. Problems that make a query unsafe or
    unbounded are reported as issues and fail the verdict; everything else
    is reported as a suggestion.
    """

    # Allowed statement types
    ALLOWED_STATEMENTS = {"SELECT"}

    # System schemas to block
    SYSTEM_SCHEMA_PREFIXES = ("pg_", "information_schema")

    # Keywords that never belong in a read-only query
    FORBIDDEN_KEYWORDS = [
        "INSERT",
        "UPDATE",
        "DELETE",
        "MERGE",
        "DROP",
        "TRUNCATE",
        "ALTER",
        "CREATE",
        "GRANT",
        "REVOKE",
        "EXECUTE",
        "CALL",
        "EXPORT",
        "CONNECT",  # cross-database attempts
        "USE",       # database switching
    ]

    def __init__(
        self,
        dialect: str = "bigquery",
        allowed_statements: Optional[Set[str]] = None,
        blocked_tables: Optional[Set[str]] = None
    ):
        """Initialize the SQL validator.

        Args:
            dialect: sqlglot dialect used to parse queries.
            allowed_statements: Set of allowed statement types.
            blocked_tables: Set of table names to block access to.
        """
        self.dialect = dialect
        self.allowed_statements = {
            s.upper() for s in (allowed_statements or self.ALLOWED_STATEMENTS)
        }
        self.blocked_tables = set(t.lower() for t in (blocked_tables or set()))
        self._forbidden = set(self.FORBIDDEN_KEYWORDS)

    def validate(self, sql: str) -> ValidationVerdict:
        """Validate an SQL statement.

        Args:
            sql: The SQL statement to validate.

        Returns:
            The verdict with every issue and suggestion found.
        """
        try:
            tokens = sqlglot.tokenize(sql or "", read=self.dialect)
        except SqlglotError as e:
            return self._syntax_error(e)

        if all(t.token_type == TokenType.SEMICOLON for t in tokens):
            return self._reject("Query is empty")

        # Keyword check runs before parsing so unparseable DML is still caught
        keyword = self._forbidden_keyword(tokens)
        if keyword:
            return self._reject(
                f"Forbidden keyword detected: {keyword}",
                "Only read-only SELECT queries are allowed"
            )

        try:
            statements = [
                s for s in sqlglot.parse(sql, read=self.dialect) if s is not None
            ]
        except SqlglotError as e:
            return self._syntax_error(e)

        if len(statements) != 1:
            return self._reject("Only a single SELECT statement is allowed")

        parsed = statements[0]

        statement_type = type(parsed).__name__.upper()
        if statement_type not in self.allowed_statements:
            return self._reject(f"Statement type not allowed: {statement_type}")

        issues: List[str] = []
        suggestions: List[str] = []

        tables = self.extract_tables(parsed)
        for table in tables:
            if table.lower() in self.blocked_tables:
                issues.append(f"Access to table is not allowed: {table}")
        if any(self._is_system_table(t) for t in parsed.find_all(exp.Table)):
            issues.append("Access to system tables or INFORMATION_SCHEMA is not allowed")

        if self._has_tautology(tokens):
            issues.append("Always-true predicate detected (possible injection)")

        if isinstance(parsed, exp.Select):
            self._check_select(parsed, issues, suggestions)

        return ValidationVerdict(
            is_valid=not issues,
            issues=issues,
            suggestions=suggestions
        )

    def _check_select(
        self,
        select: exp.Select,
        issues: List[str],
        suggestions: List[str]
    ) -> None:
        """Bounding clauses and anti-patterns of the outermost SELECT."""
        has_from = self._clause(select, exp.From) is not None
        has_limit = self._clause(select, (exp.Limit, exp.Fetch)) is not None
        has_where = self._clause(select, exp.Where) is not None
        has_order = self._clause(select, exp.Order) is not None
        aggregated = self._clause(select, exp.Group) is not None or any(
            e.find(exp.AggFunc) is not None for e in select.expressions
        )

        if not has_from:
            return

        if not has_limit and not aggregated:
            if not has_where:
                issues.append("Unbounded scan: query has no WHERE filter and no LIMIT clause")
            suggestions.append("Add a LIMIT clause to bound the number of rows returned")
        elif not has_where:
            suggestions.append(
                "Add a WHERE filter (for example a date range) to avoid a full-table scan"
            )

        if has_order and not has_limit:
            suggestions.append("ORDER BY without LIMIT sorts the whole result; add a LIMIT")

        if any(self._is_star(e) for e in select.expressions):
            suggestions.append(
                "Select only the columns you need; SELECT * scans every column"
            )

        for join in select.find_all(exp.Join):
            if join.parent_select is not select:
                continue
            unconditioned = (
                (join.args.get("kind") or "").upper() == "CROSS"
                or (join.args.get("on") is None and not join.args.get("using"))
            )
            if not unconditioned:
                continue
            if has_where:
                suggestions.append(
                    f"Join with {join.this.sql(dialect=self.dialect)} has no join "
                    "condition; prefer an explicit ON clause"
                )
            else:
                issues.append(
                    f"Join with {join.this.sql(dialect=self.dialect)} has no join "
                    "condition (cartesian product)"
                )

    @staticmethod
    def _clause(select: exp.Select, kind) -> Optional[exp.Expression]:
        """Return the direct clause of ``select`` of the given type, if any."""
        for value in select.args.values():
            if isinstance(value, kind):
                return value
        return None

    @staticmethod
    def _is_star(expression: exp.Expression) -> bool:
        if isinstance(expression, exp.Star):
            return True
        return isinstance(expression, exp.Column) and isinstance(expression.this, exp.Star)

    def _is_system_table(self, table: exp.Table) -> bool:
        """Check if a table reference points at a system schema.

        Args:
            table: The table expression to check.

        Returns:
            True if it's a system table.
        """
        parts = [table.name, table.db, table.catalog]
        return any(
            part and part.lower().startswith(self.SYSTEM_SCHEMA_PREFIXES)
            for part in parts
        )

    def _forbidden_keyword(self, tokens: List[Token]) -> Optional[str]:
        """Return the first forbidden keyword outside quoted text, if any."""
        for token in tokens:
            if token.token_type in _LITERAL_TOKENS:
                continue
            word = token.text.upper()
            if word in self._forbidden:
                return word
        return None

    @staticmethod
    def _has_tautology(tokens: List[Token]) -> bool:
        """Detect ``OR x = x`` where both sides are the same operand."""
        for i, token in enumerate(tokens[:-3]):
            if token.token_type != TokenType.OR:
                continue
            left, op, right = tokens[i + 1:i + 4]
            if (
                op.token_type == TokenType.EQ
                and left.token_type in _OPERAND_TOKENS
                and left.token_type == right.token_type
                and left.text == right.text
            ):
                return True
        return False

    def _syntax_error(self, error: SqlglotError) -> ValidationVerdict:
        return self._reject(
            f"SQL syntax error: {error}",
            "Rephrase the question so a valid query can be generated"
        )

    @staticmethod
    def _reject(issue: str, suggestion: Optional[str] = None) -> ValidationVerdict:
        return ValidationVerdict(
            is_valid=False,
            issues=[issue],
            suggestions=[suggestion] if suggestion else []
        )

    def extract_tables(self, sql_or_parsed) -> list[str]:
        """Extract table names from an SQL statement.

        Args:
            sql_or_parsed: SQL text or an already parsed expression.

        Returns:
            Distinct table names in order of appearance.
        """
        if isinstance(sql_or_parsed, str):
            try:
                parsed = sqlglot.parse_one(sql_or_parsed, read=self.dialect)
            except SqlglotError:
                return []
        else:
            parsed = sql_or_parsed

        cte_names = {cte.alias_or_name.lower() for cte in parsed.find_all(exp.CTE)}
        tables: list[str] = []
        for node in parsed.find_all(exp.Table):
            name = node.name
            if name and name.lower() not in cte_names and name not in tables:
                tables.append(name)
        return tables

    def set_blocked_tables(self, tables: Set[str]) -> None:
        """Update blocked tables at runtime.

        Args:
            tables: Set of table names to block.
        """
        self.blocked_tables = set(t.lower() for t in tables)
