from __future__ import annotations

from typing import Any, Iterable, Union

from sqlalchemy import Select, bindparam, false, literal_column, or_
from sqlalchemy.sql.elements import ColumnElement


class SearchQueryMixin:
    """OR-combined search predicates over one field."""

    def search_where(
        self,
        stmt: Select,
        field: Union[str, ColumnElement],
        values: Iterable[Any],
        strict: bool = False,
        param_prefix: str = "name",
    ) -> ColumnElement:
        """
        Return ``field = value`` alternatives for every value, plus word-wise
        ``LIKE`` matches (``'% v %'``, ``'% v'``, ``'v %'``) unless ``strict``.

        Bound parameters are named ``{param_prefix}{i}``, ``..._any``,
        ``..._pre`` and ``..._suf``; use distinct prefixes when combining two
        searches in one statement.
        """

        column = self._resolve_search_field(stmt, field)

        clauses = []
        for i, value in enumerate(values):
            name = f"{param_prefix}{i}"
            clauses.append(column == bindparam(name, value))

            if strict:
                continue

            clauses.append(column.like(bindparam(f"{name}_any", f"% {value} %")))
            clauses.append(column.like(bindparam(f"{name}_pre", f"% {value}")))
            clauses.append(column.like(bindparam(f"{name}_suf", f"{value} %")))

        return or_(false(), *clauses)

    @staticmethod
    def _resolve_search_field(stmt: Select, field: Union[str, ColumnElement]) -> ColumnElement:
        if not isinstance(field, str):
            return field

        # bare names refer to the statement's primary entity
        if "." not in field and stmt.column_descriptions:
            entity = stmt.column_descriptions[0].get("entity")
            if entity is not None and hasattr(entity, field):
                return getattr(entity, field)

        return literal_column(field)
