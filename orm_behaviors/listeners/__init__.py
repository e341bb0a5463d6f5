from .base import AbstractListener
from .deletable import DeletableListener
from .lifecycle_date import LifecycleDateListener
from .sortable import SortableListener
from .table_prefix import TablePrefixListener
from .unique_active import UniqueActiveListener

__all__ = [
    "AbstractListener",
    "DeletableListener",
    "LifecycleDateListener",
    "SortableListener",
    "TablePrefixListener",
    "UniqueActiveListener",
]
