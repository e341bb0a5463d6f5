import pytest
from marshmallow import ValidationError
from werkzeug.datastructures import MultiDict

from conftest import Tag
from orm_behaviors.managers import BaseManager
from orm_behaviors.schemas import PageQuerySchema, PaginationSchema


class TestPageQuerySchema:
    """Paging arguments."""

    def test_defaults(self, app):
        data = PageQuerySchema().load({})
        assert data == {'page': 1, 'per_page': app.config['ORM_DEFAULT_PER_PAGE'], 'sort': {}}

    def test_comma_separated_sort(self):
        data = PageQuerySchema().load({'page': '2', 'per_page': '5', 'sort': 'name,-position'})
        assert data == {'page': 2, 'per_page': 5, 'sort': {'name': 'asc', 'position': 'desc'}}

    def test_repeated_sort_arguments(self):
        args = MultiDict([('sort', 'name'), ('sort', '-id'), ('order', 'desc'), ('unknown', 'x')])
        data = PageQuerySchema().load(args)
        assert data['sort'] == {'name': 'desc', 'id': 'desc'}

    def test_order_is_case_insensitive(self):
        data = PageQuerySchema().load({'per_page': '5', 'sort': 'name', 'order': 'Desc'})
        assert data['sort'] == {'name': 'desc'}

    @pytest.mark.parametrize('payload', [{'page': '0'}, {'per_page': '-1'}, {'page': 'abc'}, {'order': 'up'}])
    def test_invalid_arguments(self, payload):
        with pytest.raises(ValidationError):
            PageQuerySchema().load(payload)

    def test_per_page_above_configured_maximum(self, app, monkeypatch):
        monkeypatch.setitem(app.config, 'ORM_MAX_PER_PAGE', 10)
        with pytest.raises(ValidationError) as excinfo:
            PageQuerySchema().load({'per_page': '11'})
        assert 'per_page' in excinfo.value.messages


class TestPaginationSchema:
    """Pager metadata."""

    def test_dump_pager(self, app, db_session):
        db_session.add_all([Tag(label=f'tag {i}') for i in range(7)])
        db_session.commit()

        manager = BaseManager(Tag)
        pager = manager.create_pager(manager.create_query(), 3, 2)

        assert PaginationSchema().dump(pager) == {
            'page': 2,
            'per_page': 3,
            'total': 7,
            'pages': 3,
            'has_next': True,
            'has_prev': True,
            'next_num': 3,
            'prev_num': 1,
            'count': 3,
        }
