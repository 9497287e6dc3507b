"""SQL compiler for analytics definitions.

translates a definition into one aggregate query against a single table.
the basic flow:
  1. start from the table's base relation (FROM, plus whatever the table
     wants to restrict or join for this definition)
  2. select + group by every dimension, aliased dimension_<i>
  3. select every metric, aliased metric_<i>
  4. filters become WHERE predicates against the column's filter expression
  5. orderings become ORDER BY

aliases are positional on purpose. column expressions are arbitrary sql
(aggregates, CASE ...) and column names can collide with reserved words, so
neither is safe to reuse as an identifier.

sqlglot builds the statement as an ast, which also means filter values are
always rendered as proper literals - no string interpolation of user input.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import sqlglot
from sqlglot import exp

from sheetforge.exceptions import InvalidFilterTypeError
from sheetforge.logging import get_logger
from sheetforge.models.columns import DEFAULT_DIALECT
from sheetforge.models.definition import Definition, Filter, FilterType

if TYPE_CHECKING:
    from sheetforge.tables.base import Table

logger = get_logger(__name__)


def dimension_alias(index: int) -> str:
    return f"dimension_{index}"


def metric_alias(index: int) -> str:
    return f"metric_{index}"


@dataclass
class QueryPlan:
    """A compiled definition, ready for an executor.

    keeps the names in alias order so rows can be mapped back without
    re-deriving anything from the sql.
    """

    table: str
    statement: exp.Select
    dimensions: list[str] = field(default_factory=list)
    metrics: list[str] = field(default_factory=list)
    dialect: str = DEFAULT_DIALECT

    def sql(self, pretty: bool = False) -> str:
        return self.statement.sql(dialect=self.dialect, pretty=pretty)

    def aliases(self) -> dict[str, str]:
        """Column name -> alias in the result rows."""
        aliases = {name: dimension_alias(i) for i, name in enumerate(self.dimensions)}
        aliases.update({name: metric_alias(i) for i, name in enumerate(self.metrics)})
        return aliases


class SQLCompiler:
    """Compiles definitions into SQL against one table.

    stateless - the same compiler can serve every table, which is what the
    Table base class does by default.
    """

    # basic filter operators -> sqlglot node. "not like" is special-cased in
    # _basic_predicate since it wraps a Like in a Not
    COMPARISONS = {
        "=": exp.EQ,
        "!=": exp.NEQ,
        "<>": exp.NEQ,
        "<": exp.LT,
        "<=": exp.LTE,
        ">": exp.GT,
        ">=": exp.GTE,
        "like": exp.Like,
    }

    def __init__(self, dialect: str = DEFAULT_DIALECT) -> None:
        self.dialect = dialect

    def compile(self, table: "Table", definition: Definition) -> QueryPlan:
        """Turn a definition into a query plan for the given table."""
        statement = table.base_relation(definition)

        statement = self._apply_dimensions(statement, table, definition)
        statement = self._apply_metrics(statement, table, definition)
        statement = self._apply_filters(statement, table, definition)
        statement = self._apply_orderings(statement, table, definition)

        plan = QueryPlan(
            table=table.name,
            statement=statement,
            dimensions=list(definition.dimensions),
            metrics=list(definition.metrics),
            dialect=self.dialect,
        )
        logger.debug("Compiled %s: %s", table.name, plan.sql())
        return plan

    def parse(self, sql: str) -> exp.Expression:
        """Parse a column expression fragment in this compiler's dialect."""
        return sqlglot.parse_one(sql, dialect=self.dialect)

    def _apply_dimensions(
        self, statement: exp.Select, table: "Table", definition: Definition
    ) -> exp.Select:
        for index, name in enumerate(definition.dimensions):
            column = table.get_column(name)
            statement = statement.select(
                exp.alias_(self.parse(column.select_expression), dimension_alias(index)),
                append=True,
            )
            statement = statement.group_by(self.parse(column.group_by_expression), append=True)
        return statement

    def _apply_metrics(
        self, statement: exp.Select, table: "Table", definition: Definition
    ) -> exp.Select:
        for index, name in enumerate(definition.metrics):
            column = table.get_column(name)
            statement = statement.select(
                exp.alias_(self.parse(column.select_expression), metric_alias(index)),
                append=True,
            )
        return statement

    def _apply_filters(
        self, statement: exp.Select, table: "Table", definition: Definition
    ) -> exp.Select:
        for filter in definition.filters:
            statement = statement.where(self._predicate(table, filter), append=True)
        return statement

    def _predicate(self, table: "Table", filter: Filter) -> exp.Expression:
        target = self.parse(table.get_column(filter.column).filter_expression)

        filter_type = filter.type
        if filter_type == FilterType.BASIC:
            return self._basic_predicate(target, filter)
        if filter_type == FilterType.IN:
            return self._in_predicate(target, filter)
        raise InvalidFilterTypeError(filter_type)

    def _basic_predicate(self, target: exp.Expression, filter: Filter) -> exp.Expression:
        operator = filter.operator

        # "= NULL" is never true in sql, so translate to IS [NOT] NULL
        if filter.value is None and operator in ("=", "!=", "<>"):
            predicate = exp.Is(this=target, expression=exp.Null())
            return predicate if operator == "=" else exp.Not(this=predicate)

        value = self._literal(filter.value)
        if operator == "not like":
            return exp.Not(this=exp.Like(this=target, expression=value))
        return self.COMPARISONS[operator](this=target, expression=value)

    def _in_predicate(self, target: exp.Expression, filter: Filter) -> exp.Expression:
        values = list(filter.value)
        if not values:
            # "x IN ()" is a syntax error - an empty set matches nothing
            return exp.false()
        return target.isin(*(self._literal(value) for value in values))

    def _literal(self, value: Any) -> exp.Expression:
        if isinstance(value, Decimal):
            return exp.Literal.number(str(value))
        return exp.convert(value)

    def _apply_orderings(
        self, statement: exp.Select, table: "Table", definition: Definition
    ) -> exp.Select:
        """Add ORDER BY clauses.

        metrics are ordered by their alias - ordering by the raw filter
        expression of an aggregate isn't valid next to a GROUP BY. columns
        this table doesn't declare are skipped, they belong to another table
        in a multi-table run.
        """
        metric_aliases = {name: metric_alias(i) for i, name in enumerate(definition.metrics)}

        for ordering in definition.orderings:
            if ordering.column in metric_aliases:
                target = exp.column(metric_aliases[ordering.column])
            elif table.has_column(ordering.column):
                target = self.parse(table.get_column(ordering.column).filter_expression)
            else:
                logger.debug(
                    "Skipping ordering on '%s', not a column of %s", ordering.column, table.name
                )
                continue

            statement = statement.order_by(
                exp.Ordered(this=target, desc=ordering.direction == "desc"), append=True
            )
        return statement

