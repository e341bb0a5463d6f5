from sqlalchemy.orm import object_session

from ..models.mixins import LifecycleDateTimeMixin, utcnow
from .base import AbstractListener, logger


class LifecycleDateListener(AbstractListener):
    """Maintains ``created_at`` / ``updated_at`` on lifecycle-dated models."""

    events = ("before_insert", "before_update", "instrument_class")

    def before_insert(self, mapper, connection, target):
        if not isinstance(target, LifecycleDateTimeMixin):
            return

        now = utcnow()
        target.created_at = now
        target.updated_at = now
        logger.debug("Stamped new %s", mapper.class_.__name__)

    def before_update(self, mapper, connection, target):
        if not isinstance(target, LifecycleDateTimeMixin):
            return

        # before_update fires for any dirty instance, including collection-only changes
        session = object_session(target)
        if session is not None and not session.is_modified(target, include_collections=False):
            return

        target.updated_at = utcnow()
        logger.debug("Touched %s", mapper.class_.__name__)

    def instrument_class(self, mapper, class_):
        if not issubclass(class_, LifecycleDateTimeMixin):
            return

        self.create_datetime_field(mapper, "created_at", nullable=False)
        self.create_datetime_field(mapper, "updated_at", nullable=False)
