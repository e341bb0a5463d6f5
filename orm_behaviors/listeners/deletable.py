from ..models.mixins import DeletableMixin
from .base import AbstractListener


class DeletableListener(AbstractListener):
    """Adds a nullable ``deleted_at`` column to soft-deletable models."""

    events = ("instrument_class",)

    def instrument_class(self, mapper, class_):
        if not issubclass(class_, DeletableMixin):
            return

        self.create_datetime_field(mapper, "deleted_at", nullable=True)
