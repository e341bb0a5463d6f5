from __future__ import annotations

from typing import Any, Callable, List, Optional, Sequence, Tuple

from sqlalchemy import Column, DateTime, Table, event
from sqlalchemy.orm import Mapper, MapperProperty, MappedColumn, RelationshipProperty, object_session
from sqlalchemy.orm.interfaces import MANYTOONE
from sqlalchemy.orm.properties import ColumnProperty
from sqlalchemy.sql.elements import ColumnElement
from sqlalchemy.types import TypeEngine

from ..utils.logging_utils import get_logger


logger = get_logger("listeners")


class AbstractListener:
    """
    Base class for mapper event listeners.

    Subclasses list the events they handle in ``get_subscribed_events`` and
    implement one method per event, named after the event. ``register`` binds
    them to a declarative base (or any mapped class) with ``propagate=True``
    so every model declared afterwards receives them.
    """

    events: Tuple[str, ...] = ()

    def get_subscribed_events(self) -> Tuple[str, ...]:
        return tuple(self.events)

    def _handlers(self) -> List[Tuple[str, Callable[..., Any]]]:
        return [(name, getattr(self, name)) for name in self.get_subscribed_events()]

    def register(self, target: Any) -> "AbstractListener":
        for name, handler in self._handlers():
            event.listen(target, name, handler, propagate=True)
        logger.debug(
            "Registered %s on %s",
            type(self).__name__,
            getattr(target, "__name__", target),
            extra={"events": list(self.get_subscribed_events())},
        )
        return self

    def unregister(self, target: Any) -> None:
        for name, handler in self._handlers():
            if event.contains(target, name, handler):
                event.remove(target, name, handler)

    def is_registered(self, target: Any) -> bool:
        return all(event.contains(target, name, handler) for name, handler in self._handlers())

    # ------------------------------------------------------------------
    # Mapping metadata helpers
    # ------------------------------------------------------------------
    @staticmethod
    def has_field(mapper: Mapper, name: str) -> bool:
        """
        True when ``name`` is already mapped: declared on the class (under any
        column name), present on the local table, or inherited.
        """

        if name in (getattr(mapper, "_init_properties", None) or {}):
            return True
        if isinstance(vars(mapper.class_).get(name), (Column, MapperProperty, MappedColumn)):
            return True

        table = mapper.local_table
        columns = getattr(table, "c", None)
        if columns is not None:
            if name in columns:
                return True
            if any(column.name == name for column in columns):
                return True
        inherits = mapper.inherits
        return inherits is not None and inherits.has_property(name)

    def map_field(
        self,
        mapper: Mapper,
        name: str,
        type_: TypeEngine | type,
        nullable: bool = True,
        default: Any = None,
    ) -> Optional[Column]:
        table = mapper.local_table
        if not isinstance(table, Table):
            logger.warning(
                "Cannot map %s on %s: local selectable is not a table",
                name,
                mapper.class_.__name__,
            )
            return None

        column = Column(name, type_, nullable=nullable, default=default)
        table.append_column(column)
        logger.info(
            "Mapped field %s.%s",
            mapper.class_.__name__,
            name,
            extra={"table": table.name, "nullable": nullable},
        )
        return column

    def create_datetime_field(self, mapper: Mapper, name: str, nullable: bool) -> Optional[Column]:
        if self.has_field(mapper, name):
            return None
        return self.map_field(mapper, name, DateTime(timezone=True), nullable=nullable)


# ----------------------------------------------------------------------
# Group criteria shared by the sortable and unique-active listeners
# ----------------------------------------------------------------------
def _column_for(mapper: Mapper, key: str) -> Column:
    prop = mapper.get_property(key)
    if not isinstance(prop, ColumnProperty):
        raise ValueError(f"{mapper.class_.__name__}.{key} is not a column attribute")
    return prop.columns[0]


def _many_to_one(mapper: Mapper, field: str) -> Optional[RelationshipProperty]:
    prop = mapper.get_property(field)
    if not isinstance(prop, RelationshipProperty):
        return None
    if prop.direction is not MANYTOONE:
        raise ValueError(
            f"{mapper.class_.__name__}.{field} must be a many-to-one relationship to group by it"
        )
    return prop


def _foreign_key_values(
    mapper: Mapper, prop: RelationshipProperty, target: Any
) -> Optional[List[Tuple[Column, Any]]]:
    """
    Local foreign-key columns of a many-to-one relationship paired with the
    values ``target`` refers to.

    The related object wins when it is set; otherwise the foreign-key
    attributes of ``target`` itself are read. ``None`` means the related
    object has no primary key yet and must not constrain the query.
    """

    related = getattr(target, prop.key)
    pairs = []
    for local, remote in prop.local_remote_pairs:
        if related is None:
            value = getattr(target, mapper.get_property_by_column(local).key)
        else:
            value = getattr(related, prop.mapper.get_property_by_column(remote).key, None)
            if value is None:
                return None
        pairs.append((local, value))
    return pairs


def group_criteria(mapper: Mapper, target: Any, fields: Sequence[str]) -> List[ColumnElement]:
    criteria: List[ColumnElement] = []
    for field in fields:
        prop = _many_to_one(mapper, field)

        if prop is not None:
            pairs = _foreign_key_values(mapper, prop, target)
            if pairs is None:
                logger.debug("Skipping unidentified group value %s.%s", mapper.class_.__name__, field)
                continue
            criteria.extend(local.is_(None) if value is None else local == value for local, value in pairs)
            continue

        column = _column_for(mapper, field)
        value = getattr(target, field)
        criteria.append(column.is_(None) if value is None else column == value)
    return criteria


def group_values(mapper: Mapper, target: Any, fields: Sequence[str]) -> Tuple[Any, ...]:
    """The values ``group_criteria`` filters on, comparable between objects."""

    values = []
    for field in fields:
        prop = _many_to_one(mapper, field)
        if prop is None:
            values.append(getattr(target, field))
            continue

        pairs = _foreign_key_values(mapper, prop, target)
        # an unsaved related object is only equal to itself
        values.append(getattr(target, field) if pairs is None else tuple(value for _local, value in pairs))
    return tuple(values)


def same_group(mapper: Mapper, target: Any, other: Any, fields: Sequence[str]) -> bool:
    return group_values(mapper, target, fields) == group_values(mapper, other, fields)


def pending_peers(target: Any) -> List[Any]:
    """Other not-yet-inserted objects of the same class in the target's session."""

    session = object_session(target)
    if session is None:
        return []
    return [obj for obj in session.new if obj is not target and type(obj) is type(target)]


def primary_key_values(mapper: Mapper, target: Any) -> List[Tuple[Column, Any]]:
    return [
        (column, getattr(target, mapper.get_property_by_column(column).key))
        for column in mapper.primary_key
    ]
