from .pagination_schema import PageQuerySchema, PaginationSchema

__all__ = [
    'PageQuerySchema',
    'PaginationSchema',
]
