from __future__ import annotations

from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from sqlalchemy import Select, inspect as sa_inspect, select
from sqlalchemy.exc import NoInspectionAvailable
from sqlalchemy.orm import Mapper, Session, aliased

from ..utils.logging_utils import log_context
from .query import BaseQueryMixin, logger
from .search import SearchQueryMixin

ModelType = TypeVar("ModelType")


class BaseManager(BaseQueryMixin, SearchQueryMixin, Generic[ModelType]):
    """
    Query entry point for one mapped model.

    Without an explicit ``session`` the Flask-SQLAlchemy scoped session
    (``db.session``) is used, which requires an application context.
    """

    def __init__(self, model: Type[ModelType], session: Optional[Session] = None) -> None:
        try:
            mapper = sa_inspect(model)
        except NoInspectionAvailable:
            mapper = None
        if not isinstance(mapper, Mapper):
            raise RuntimeError(f"{model!r} is not a mapped class")

        self.model = model
        self.mapper = mapper
        self._session = session

    @property
    def session(self) -> Session:
        if self._session is not None:
            return self._session
        from ..extensions import db

        return db.session

    @property
    def model_name(self) -> str:
        return self.model.__name__

    def create_query(self, alias: Optional[str] = None) -> Select:
        entity = aliased(self.model, name=alias) if alias else self.model
        return select(entity)

    def find(self, **criteria: Any) -> List[ModelType]:
        with log_context(model=self.model_name, action="find"):
            results = list(self.session.scalars(select(self.model).filter_by(**criteria)))
            logger.debug("Found %s %s rows", len(results), self.model_name)
            return results

    def find_one(self, ident: Any) -> Optional[ModelType]:
        if ident is None:
            return None
        return self.session.get(self.model, ident)

    def find_one_by(self, **criteria: Any) -> Optional[ModelType]:
        return self.session.scalars(select(self.model).filter_by(**criteria).limit(1)).first()

    def fetch_indexed(self, stmt: Select, index_by: str) -> Dict[Any, ModelType]:
        """Execute ``stmt`` and key the resulting entities by ``index_by``."""

        return {getattr(entity, index_by): entity for entity in self.session.scalars(stmt)}

    def save(self, instance: ModelType, commit: bool = True) -> ModelType:
        with log_context(model=self.model_name, action="save"):
            try:
                self.session.add(instance)
                if commit:
                    self.session.commit()
                else:
                    self.session.flush()
            except Exception:
                logger.exception("Failed to save %s", self.model_name)
                self.session.rollback()
                raise
            return instance

    def delete(self, instance: ModelType, commit: bool = True) -> None:
        with log_context(model=self.model_name, action="delete"):
            try:
                self.session.delete(instance)
                if commit:
                    self.session.commit()
                else:
                    self.session.flush()
            except Exception:
                logger.exception("Failed to delete %s", self.model_name)
                self.session.rollback()
                raise
