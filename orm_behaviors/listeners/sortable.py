from sqlalchemy import Integer, func, select, update
from sqlalchemy.orm.attributes import get_history

from ..models.mixins import PositionAwareMixin
from .base import (
    AbstractListener,
    group_criteria,
    logger,
    pending_peers,
    same_group,
)


class SortableListener(AbstractListener):
    """
    Keeps ``position`` values of position-aware models dense within their
    group: new rows are appended, moved rows push the others along and
    deleted rows close the gap.
    """

    events = ("before_insert", "before_update", "before_delete", "instrument_class")

    def before_insert(self, mapper, connection, target):
        if not isinstance(target, PositionAwareMixin):
            return

        self._unique_position(mapper, connection, target)

    def before_update(self, mapper, connection, target):
        if not isinstance(target, PositionAwareMixin):
            return

        old_position = target.position
        history = get_history(target, "position")
        if history.has_changes() and history.deleted:
            old_position = history.deleted[0]

        self._unique_position(mapper, connection, target, old_position)

    def before_delete(self, mapper, connection, target):
        if not isinstance(target, PositionAwareMixin):
            return

        self.move_position(mapper, connection, target, -1)

    def instrument_class(self, mapper, class_):
        if not issubclass(class_, PositionAwareMixin):
            return

        if not self.has_field(mapper, "position"):
            self.map_field(mapper, "position", Integer)

    def _unique_position(self, mapper, connection, target, old_position=None):
        if target.position is None:
            target.position = self.get_next_position(mapper, connection, target)
        elif old_position is not None and old_position != target.position:
            self.move_position(mapper, connection, target)

    def move_position(self, mapper, connection, target, direction=1):
        """Shift the rest of the target's group by ``direction``."""

        column = mapper.get_property("position").columns[0]

        if direction > 0:
            bound = column <= target.position
        elif direction < 0:
            bound = column >= target.position
        else:
            return

        stmt = (
            update(column.table)
            .where(bound, *group_criteria(mapper, target, target.get_position_group()))
            .values({column: column + direction})
        )
        result = connection.execute(stmt)
        logger.debug(
            "Shifted %s positions by %+d",
            mapper.class_.__name__,
            direction,
            extra={"position": target.position, "rows": result.rowcount},
        )

    def get_next_position(self, mapper, connection, target):
        column = mapper.get_property("position").columns[0]
        fields = target.get_position_group()

        stmt = select(func.max(column)).where(*group_criteria(mapper, target, fields))
        highest = connection.execute(stmt).scalar()

        for peer in pending_peers(target):
            if peer.position is None or not same_group(mapper, target, peer, fields):
                continue
            if highest is None or peer.position > highest:
                highest = peer.position

        return 0 if highest is None else highest + 1
