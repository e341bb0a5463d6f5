"""
Capability mixins for declarative models.

A model opts into a behavior by inheriting one of these classes. The mixins
only carry marker identity and convenience methods; the columns they rely on
(``created_at``, ``deleted_at``, ``position``, ``active`` ...) are added to the
mapped table by the matching listener unless the model maps them itself.
"""

from datetime import datetime, timezone
from typing import Optional, Tuple


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LifecycleDateTimeMixin:
    """Model gets ``created_at`` / ``updated_at`` maintained on flush."""


class DeletableMixin:
    """Model carries a nullable ``deleted_at`` soft-delete marker."""

    @property
    def is_deleted(self) -> bool:
        return getattr(self, "deleted_at", None) is not None

    def mark_deleted(self, when: Optional[datetime] = None) -> None:
        self.deleted_at = when or utcnow()

    def restore(self) -> None:
        self.deleted_at = None


class PositionAwareMixin:
    """
    Model rows are kept in a ``position`` order.

    ``__position_group__`` names the attributes (columns or many-to-one
    relationships) that partition the ordering; an empty group means one
    ordering for the whole table.
    """

    __position_group__: Tuple[str, ...] = ()

    @classmethod
    def get_position_group(cls) -> Tuple[str, ...]:
        return tuple(cls.__position_group__)


class UniqueActiveMixin:
    """
    At most one row per ``__unique_active_fields__`` group has ``active`` set.
    """

    __unique_active_fields__: Tuple[str, ...] = ()

    @classmethod
    def get_unique_active_fields(cls) -> Tuple[str, ...]:
        return tuple(cls.__unique_active_fields__)

    def is_active(self) -> bool:
        return bool(getattr(self, "active", False))
