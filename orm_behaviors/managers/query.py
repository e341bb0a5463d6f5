from __future__ import annotations

import re
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from flask import current_app, has_app_context
from flask_sqlalchemy.pagination import SelectPagination
from sqlalchemy import Select, asc, desc, literal_column

from ..utils.logging_utils import get_logger

logger = get_logger("query")

_IDENTIFIER = re.compile(r"^\w+$")
_DIRECTIONS = {"asc": asc, "desc": desc}

SortSpec = Union[Iterable[str], Mapping[str, str]]


def _config_value(key: str, default: Any) -> Any:
    if has_app_context():
        return current_app.config.get(key, default)
    return default


class BaseQueryMixin:
    """Pagination and dynamic ordering for ``select()`` statements."""

    session: Any

    def create_pager(self, stmt: Select, limit: int, page: int) -> SelectPagination:
        """
        Build a pager over ``stmt`` showing ``limit`` rows of page ``page``.

        Out-of-range input is clamped rather than aborting the request: a page
        below 1 becomes 1, a limit above ``ORM_MAX_PER_PAGE`` is capped.
        """

        pager = SelectPagination(
            select=stmt,
            session=self.session,
            page=page,
            per_page=limit,
            max_per_page=_config_value("ORM_MAX_PER_PAGE", 100),
            error_out=False,
        )
        logger.debug(
            "Paged query page=%s per_page=%s total=%s",
            pager.page,
            pager.per_page,
            pager.total,
        )
        return pager

    def add_order(
        self,
        stmt: Select,
        sort: SortSpec,
        default_entity: str,
        alias_mapping: Optional[Dict[str, str]] = None,
        default_order: Optional[str] = None,
    ) -> Select:
        """
        Append ``ORDER BY`` clauses built from user supplied field names.

        ``sort`` is a name or a list of names, ordered by ``default_order``, or a
        mapping of name to ``"asc"``/``"desc"``. A name is ``field`` (resolved
        on ``default_entity``) or ``alias.field`` where ``alias`` is looked up
        in ``alias_mapping``. Names with more parts or non-identifier
        characters are ignored.
        """

        alias_mapping = alias_mapping or {}
        default_order = default_order or _config_value("ORM_DEFAULT_ORDER", "asc")

        if isinstance(sort, str):
            sort = [sort]

        if isinstance(sort, Mapping):
            entries = list(sort.items())
        else:
            entries = [(name, default_order) for name in sort]

        for name, order in entries:
            parts = name.split(".")
            if len(parts) > 2:
                logger.debug("Ignoring sort field %s", name)
                continue

            if len(parts) == 2:
                table = alias_mapping.get(parts[0], parts[0])
                field = parts[1]
            else:
                table = default_entity
                field = parts[0]

            if not (_IDENTIFIER.match(table) and _IDENTIFIER.match(field)):
                logger.warning("Ignoring invalid sort field %s", name)
                continue

            direction = _DIRECTIONS.get(str(order).lower())
            if direction is None:
                raise ValueError(f"Invalid sort order {order!r} for {name}: expected 'asc' or 'desc'")

            stmt = stmt.order_by(direction(literal_column(f"{table}.{field}")))

        return stmt
