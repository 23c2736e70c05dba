"""Interfaces between the search core and storage."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from tablefuzz.search.ast_nodes import OrderBy, PredicateNode


@runtime_checkable
class Record(Protocol):
    """Read access to a row's named fields."""

    def get(self, column: str, default: Any = None) -> Any: ...


class StorageBackend(Protocol):
    """Executes predicate trees and returns matching records.

    ``native_operators`` lists the native-operator hints the backend can
    evaluate; hints outside that set are never sent to it.
    """

    native_operators: frozenset[str]

    def execute(
        self,
        predicate: PredicateNode,
        order_by: Sequence[OrderBy],
        limit: int | None,
        offset: int = 0,
    ) -> list[Record]: ...

    def count(self, predicate: PredicateNode) -> int: ...

    def facet_counts(self, predicate: PredicateNode, column: str) -> dict[Any, int]: ...


class SchemaRegistry(Protocol):
    """Lists the columns available for an entity (table)."""

    def list_columns(self, entity: str) -> set[str]: ...
