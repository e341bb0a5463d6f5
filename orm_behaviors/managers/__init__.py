from .base import BaseManager
from .query import BaseQueryMixin
from .search import SearchQueryMixin

__all__ = ["BaseManager", "BaseQueryMixin", "SearchQueryMixin"]
