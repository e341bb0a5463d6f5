from __future__ import annotations

from typing import Any, Iterable, List, Optional, Type, TypeVar

from flask import Flask
from sqlalchemy.orm import configure_mappers

from .commands.behavior_commands import behaviors_command
from .listeners import (
    AbstractListener,
    DeletableListener,
    LifecycleDateListener,
    SortableListener,
    TablePrefixListener,
    UniqueActiveListener,
)
from .utils.logging_utils import get_logger

logger = get_logger("metadata")

ListenerType = TypeVar("ListenerType", bound=AbstractListener)


def default_listeners(table_prefix: Optional[str] = None) -> List[AbstractListener]:
    return [
        LifecycleDateListener(),
        DeletableListener(),
        SortableListener(),
        UniqueActiveListener(),
        TablePrefixListener(table_prefix),
    ]


class Behaviors:
    """
    Flask extension wiring the behavior listeners onto a declarative base.

    Listeners are bound when the base is registered, so ``register`` must run
    before the models that rely on injected columns are declared::

        db = SQLAlchemy()
        behaviors = Behaviors(db.Model, table_prefix="app_")

        def create_app():
            app = Flask(__name__)
            db.init_app(app)
            behaviors.init_app(app)
    """

    def __init__(
        self,
        model: Any = None,
        app: Optional[Flask] = None,
        *,
        table_prefix: Optional[str] = None,
        listeners: Optional[Iterable[AbstractListener]] = None,
    ) -> None:
        self.table_prefix = table_prefix
        self.listeners: List[AbstractListener] = (
            list(listeners) if listeners is not None else default_listeners(table_prefix)
        )
        self.models: List[Any] = []

        if model is not None:
            self.register(model)
        if app is not None:
            self.init_app(app)

    def register(self, model: Any) -> Any:
        if model in self.models:
            return model

        for listener in self.listeners:
            listener.register(model)
        self.models.append(model)
        logger.info(
            "Behaviors registered on %s",
            getattr(model, "__name__", model),
            extra={"listeners": [type(listener).__name__ for listener in self.listeners]},
        )
        return model

    def unregister(self, model: Any) -> None:
        if model not in self.models:
            return

        for listener in self.listeners:
            listener.unregister(model)
        self.models.remove(model)

    def get_listener(self, listener_class: Type[ListenerType]) -> Optional[ListenerType]:
        for listener in self.listeners:
            if isinstance(listener, listener_class):
                return listener
        return None

    def init_app(self, app: Flask) -> None:
        app.extensions["orm_behaviors"] = self
        app.cli.add_command(behaviors_command)

        configured_prefix = app.config.get("ORM_TABLE_PREFIX")
        if configured_prefix is not None and configured_prefix != self.table_prefix:
            logger.warning(
                "ORM_TABLE_PREFIX=%s ignored: listeners were built with prefix %s",
                configured_prefix,
                self.table_prefix,
            )

        if app.config.get("ORM_CONFIGURE_ON_INIT", True):
            configure_mappers()
