"""Incremental builder for parameterised PostgreSQL statements."""

from __future__ import annotations

from typing import Any


class QueryBuilder:
    """Builds an SQL statement piece by piece, numbering parameters ``$1``, ``$2``, ..."""

    def __init__(self) -> None:
        self._parts: list[str] = []
        self._args: list[Any] = []
        self._param_index = 1

    def reset(self) -> None:
        """Discard the statement text and every collected parameter."""
        self._parts = []
        self._args = []
        self._param_index = 1

    def add_param(self, value: Any) -> str:
        """Record a parameter value and return its placeholder."""
        self._args.append(value)
        placeholder = f"${self._param_index}"
        self._param_index += 1
        return placeholder

    def write(self, s: str) -> QueryBuilder:
        """Append raw text to the statement."""
        self._parts.append(s)
        return self

    def write_with_params(self, format: str, *args: Any) -> QueryBuilder:
        """Append ``format`` with each ``%s`` replaced by a placeholder for the matching arg."""
        if not args:
            return self.write(format)
        placeholders = tuple(self.add_param(arg) for arg in args)
        return self.write(format % placeholders)

    def write_select(self, *args: str) -> QueryBuilder:
        """Append a SELECT clause; no columns selects ``*``."""
        self.write("SELECT ")
        self.write(", ".join(args) if args else "*")
        return self

    def write_from(self, table: str) -> QueryBuilder:
        """Append a FROM clause."""
        return self.write(f" FROM {table}")

    def write_where(self, condition: str, *args: Any) -> QueryBuilder:
        """Append a WHERE clause."""
        self.write(" WHERE ")
        return self.write_with_params(condition, *args)

    def write_and(self, condition: str, *args: Any) -> QueryBuilder:
        """Append an AND condition."""
        self.write(" AND ")
        return self.write_with_params(condition, *args)

    def write_or(self, condition: str, *args: Any) -> QueryBuilder:
        """Append an OR condition."""
        self.write(" OR ")
        return self.write_with_params(condition, *args)

    def write_order_by(self, *args: str) -> QueryBuilder:
        """Append an ORDER BY clause when columns are given."""
        if args:
            self.write(" ORDER BY ")
            self.write(", ".join(args))
        return self

    def write_limit(self, limit: int) -> QueryBuilder:
        """Append a LIMIT clause when ``limit`` is positive."""
        if limit > 0:
            self.write(f" LIMIT {limit}")
        return self

    def write_offset(self, offset: int) -> QueryBuilder:
        """Append an OFFSET clause when ``offset`` is positive."""
        if offset > 0:
            self.write(f" OFFSET {offset}")
        return self

    def write_insert(self, table: str, columns, values) -> QueryBuilder:
        """Append an INSERT statement with one placeholder per value."""
        self.write(f"INSERT INTO {table} (")
        self.write(", ".join(columns))
        self.write(") VALUES (")
        self.write(", ".join(self.add_param(value) for value in values))
        self.write(")")
        return self

    def write_update(self, table: str, columns, values) -> QueryBuilder:
        """Append an UPDATE ... SET statement assigning each column its value."""
        self.write(f"UPDATE {table} SET ")
        assignments = [
            f"{column} = {self.add_param(value)}"
            for column, value in zip(columns, values)
        ]
        self.write(", ".join(assignments))
        return self

    def write_delete(self, table: str) -> QueryBuilder:
        """Append a DELETE statement."""
        return self.write(f"DELETE FROM {table}")

    def write_returning(self, *args: str) -> QueryBuilder:
        """Append a RETURNING clause when columns are given."""
        if args:
            self.write(" RETURNING ")
            self.write(", ".join(args))
        return self

    def build(self) -> tuple[str, list[Any]]:
        """Return the statement text and its parameter values."""
        return "".join(self._parts), list(self._args)