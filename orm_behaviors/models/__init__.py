from .mixins import (
    DeletableMixin,
    LifecycleDateTimeMixin,
    PositionAwareMixin,
    UniqueActiveMixin,
    utcnow,
)

__all__ = [
    "DeletableMixin",
    "LifecycleDateTimeMixin",
    "PositionAwareMixin",
    "UniqueActiveMixin",
    "utcnow",
]
