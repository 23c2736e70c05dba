"""Storage backend rendering predicate trees as SQLAlchemy Core queries."""

from __future__ import annotations

import functools
import logging
import operator
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

import sqlalchemy.engine
from sqlalchemy import (
    Table,
    and_,
    case,
    false,
    func,
    not_,
    or_,
    select,
    true,
)
from sqlalchemy.sql.elements import ColumnElement

from tablefuzz.db.session import get_engine, reflect_table, register_sqlite_functions
from tablefuzz.exceptions import InvalidConfigurationError
from tablefuzz.search.ast_nodes import (
    AllOf,
    AnyOf,
    FieldFilter,
    MatchEverything,
    MatchPattern,
    NativeHint,
    OrderBy,
    PatternClause,
    PredicateNode,
    RankingRule,
    SortKey,
)

log = logging.getLogger(__name__)

# Native operators commonly available per dialect (PostgreSQL needs the
# fuzzystrmatch and pg_trgm extensions).
DIALECT_OPERATORS: dict[str, frozenset[str]] = {
    "postgresql": frozenset({"levenshtein", "soundex", "similarity"}),
    "mysql": frozenset({"soundex"}),
    "mariadb": frozenset({"soundex"}),
}

_COMPARE = {
    "=": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


class SQLAlchemyBackend:
    """Backend over one table of a SQLAlchemy engine."""

    def __init__(
        self,
        engine: sqlalchemy.engine.Engine,
        table: Table,
        native_operators: Iterable[str] | None = None,
    ) -> None:
        self.engine = engine
        self.table = table
        if native_operators is None:
            native_operators = DIALECT_OPERATORS.get(engine.dialect.name, frozenset())
        self.native_operators = frozenset(native_operators)

    @classmethod
    def from_sqlite(cls, db_path: Path, table_name: str) -> SQLAlchemyBackend:
        """Open a SQLite file with the fuzzy SQL functions registered."""
        engine = get_engine(db_path)
        register_sqlite_functions(engine)
        table = reflect_table(engine, table_name)
        return cls(engine, table, native_operators=("levenshtein", "soundex", "similarity"))

    # -- rendering ------------------------------------------------------------

    def column(self, name: str) -> ColumnElement:
        try:
            return self.table.c[name]
        except KeyError:
            raise InvalidConfigurationError(
                "column", name, f"no such column in table '{self.table.name}'"
            ) from None

    def render_pattern(self, col: ColumnElement, pattern: MatchPattern) -> ColumnElement:
        if isinstance(pattern, NativeHint):
            if pattern.operator == "levenshtein":
                return func.levenshtein(func.lower(col), pattern.term) <= int(pattern.argument)
            if pattern.operator == "soundex":
                return func.soundex(col) == func.soundex(pattern.term)
            if pattern.operator == "similarity":
                return func.similarity(col, pattern.term) >= float(pattern.argument)
            raise ValueError(f"Unknown native operator: {pattern.operator}")
        return col.ilike(pattern.template, escape="\\")

    def _render_filter(self, flt: FieldFilter) -> ColumnElement:
        col = self.column(flt.field)
        if flt.operator == "in":
            clause = col.in_(list(flt.value))
        elif flt.operator == "like":
            clause = col.ilike(flt.value, escape="\\")
        else:
            clause = _COMPARE[flt.operator](col, flt.value)
        return not_(clause) if flt.negated else clause

    def render(self, node: PredicateNode) -> ColumnElement:
        """Translate a predicate tree into a SQL boolean expression."""
        if isinstance(node, MatchEverything):
            return true()
        if isinstance(node, PatternClause):
            clause = self.render_pattern(self.column(node.column), node.pattern)
            return not_(clause) if node.negated else clause
        if isinstance(node, FieldFilter):
            return self._render_filter(node)
        if isinstance(node, AllOf):
            if not node.children:
                return true()
            return and_(*(self.render(child) for child in node.children))
        if isinstance(node, AnyOf):
            if not node.children:
                return false()
            return or_(*(self.render(child) for child in node.children))
        raise TypeError(f"Unknown predicate node: {node!r}")

    def _relevance(self, rules: Sequence[RankingRule]) -> ColumnElement:
        terms = [
            case((self.render_pattern(self.column(r.column), r.pattern), r.score), else_=0)
            for r in rules
        ]
        return functools.reduce(operator.add, terms)

    def render_order(self, order_by: Sequence[OrderBy]) -> list[ColumnElement]:
        """ORDER BY clauses; consecutive ranking rules sum into one relevance term."""
        clauses: list[ColumnElement] = []
        rules: list[RankingRule] = []
        for item in [*order_by, None]:
            if isinstance(item, RankingRule):
                rules.append(item)
                continue
            if rules:
                clauses.append(self._relevance(rules).desc())
                rules = []
            if isinstance(item, SortKey):
                col = self.column(item.column)
                clauses.append(col.desc() if item.descending else col.asc())
        return clauses

    def statement(
        self,
        predicate: PredicateNode,
        order_by: Sequence[OrderBy] = (),
        limit: int | None = None,
        offset: int = 0,
    ):
        stmt = select(self.table).where(self.render(predicate))
        order = self.render_order(order_by)
        if order:
            stmt = stmt.order_by(*order)
        if limit is not None:
            stmt = stmt.limit(limit)
        if offset:
            stmt = stmt.offset(offset)
        return stmt

    def compile(
        self,
        predicate: PredicateNode,
        order_by: Sequence[OrderBy] = (),
        limit: int | None = None,
    ) -> str:
        """SQL text of a query with literal values, for explain output."""
        stmt = self.statement(predicate, order_by, limit)
        return str(stmt.compile(self.engine, compile_kwargs={"literal_binds": True}))

    # -- StorageBackend -------------------------------------------------------

    def execute(
        self,
        predicate: PredicateNode,
        order_by: Sequence[OrderBy] = (),
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Any]:
        stmt = self.statement(predicate, order_by, limit, offset)
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()
        log.debug("SQL execute on %s: %d rows", self.table.name, len(rows))
        return list(rows)

    def count(self, predicate: PredicateNode) -> int:
        stmt = select(func.count()).select_from(self.table).where(self.render(predicate))
        with self.engine.connect() as conn:
            return int(conn.execute(stmt).scalar_one())

    def facet_counts(self, predicate: PredicateNode, column: str) -> dict[Any, int]:
        col = self.column(column)
        stmt = (
            select(col, func.count())
            .select_from(self.table)
            .where(self.render(predicate))
            .group_by(col)
        )
        with self.engine.connect() as conn:
            return {value: int(n) for value, n in conn.execute(stmt)}


class SQLAlchemySchemaRegistry:
    """Column listing through the SQLAlchemy inspector."""

    def __init__(self, engine: sqlalchemy.engine.Engine) -> None:
        self.engine = engine

    def list_columns(self, entity: str) -> set[str]:
        return {col.name for col in reflect_table(self.engine, entity).columns}
