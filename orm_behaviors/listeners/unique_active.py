from sqlalchemy import Boolean, false, true, update

from ..models.mixins import UniqueActiveMixin
from .base import AbstractListener, group_criteria, logger, primary_key_values


class UniqueActiveListener(AbstractListener):
    """Deactivates the other rows of a group when a row becomes active."""

    events = ("before_insert", "before_update", "instrument_class")

    def before_insert(self, mapper, connection, target):
        self.unique_active(mapper, connection, target)

    def before_update(self, mapper, connection, target):
        self.unique_active(mapper, connection, target)

    def instrument_class(self, mapper, class_):
        if not issubclass(class_, UniqueActiveMixin):
            return

        if not self.has_field(mapper, "active"):
            self.map_field(mapper, "active", Boolean, nullable=False, default=False)

    def unique_active(self, mapper, connection, target):
        if not isinstance(target, UniqueActiveMixin) or not target.is_active():
            return

        column = mapper.get_property("active").columns[0]

        criteria = [column == true()]
        # rows that are not inserted yet have no identity to exclude
        criteria.extend(pk != value for pk, value in primary_key_values(mapper, target) if value is not None)
        criteria.extend(group_criteria(mapper, target, target.get_unique_active_fields()))

        result = connection.execute(update(column.table).where(*criteria).values({column: false()}))
        logger.debug(
            "Deactivated %s rows of %s",
            result.rowcount,
            mapper.class_.__name__,
        )
