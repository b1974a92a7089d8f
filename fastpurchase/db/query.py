"""
Parameterized SQL builders.

``UpdateBuilder`` turns a set of named, optional column changes into a
single ``UPDATE ... SET a = ?, b = ? WHERE ...`` statement. Column names
are checked against an allow-list; values only ever travel as parameters.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple


class UpdateBuilder:
    """
    Builder for partial UPDATE statements.

    Usage:
        sql, params = (
            UpdateBuilder("products", allowed={"name", "stock"})
            .set("name", "Desk")
            .set("stock", 3)
            .touch("updated_at", now)
            .where("id = ?", product_id)
            .build()
        )
    """

    __slots__ = ("_table", "_allowed", "_assignments", "_where", "_where_params")

    def __init__(self, table: str, allowed: Optional[Iterable[str]] = None):
        self._table = table
        self._allowed = set(allowed) if allowed is not None else None
        self._assignments: Dict[str, Any] = {}
        self._where: List[str] = []
        self._where_params: List[Any] = []

    def set(self, column: str, value: Any) -> "UpdateBuilder":
        if self._allowed is not None and column not in self._allowed:
            raise ValueError(f"Column {column!r} is not updatable on {self._table}")
        self._assignments[column] = value
        return self

    def set_many(self, changes: Dict[str, Any]) -> "UpdateBuilder":
        for column, value in changes.items():
            self.set(column, value)
        return self

    def touch(self, column: str, value: Any) -> "UpdateBuilder":
        """Always-written bookkeeping column (not subject to the allow-list)."""
        self._assignments[column] = value
        return self

    def where(self, clause: str, *params: Any) -> "UpdateBuilder":
        self._where.append(clause)
        self._where_params.extend(params)
        return self

    @property
    def has_changes(self) -> bool:
        return bool(self._assignments)

    def build(self) -> Tuple[str, Sequence[Any]]:
        if not self._assignments:
            raise ValueError("UpdateBuilder has no columns to set")
        if not self._where:
            raise ValueError("UpdateBuilder refuses to build an UPDATE without WHERE")
        set_sql = ", ".join(f"{col} = ?" for col in self._assignments)
        where_sql = " AND ".join(f"({clause})" for clause in self._where)
        sql = f"UPDATE {self._table} SET {set_sql} WHERE {where_sql}"
        return sql, [*self._assignments.values(), *self._where_params]
