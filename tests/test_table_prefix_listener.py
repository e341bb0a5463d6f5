from sqlalchemy import Column, ForeignKey, Integer, Sequence, String, Table, inspect as sa_inspect, select
from sqlalchemy.orm import relationship

from orm_behaviors.listeners import TablePrefixListener


def build_models(Base):
    memberships = Table(
        'memberships',
        Base.metadata,
        Column('user_id', ForeignKey('users.id'), primary_key=True),
        Column('group_id', ForeignKey('groups.id'), primary_key=True),
    )

    class User(Base):
        __tablename__ = 'users'
        id = Column(Integer, primary_key=True)
        name = Column(String(40))

    class Group(Base):
        __tablename__ = 'groups'
        id = Column(Integer, primary_key=True)
        members = relationship(User, secondary=memberships)

    class Address(Base):
        __tablename__ = 'addresses'
        id = Column(Integer, primary_key=True)
        user_id = Column(ForeignKey('users.id'))

    Base.registry.configure()
    return memberships, User, Group, Address


class TestTablePrefixListener:
    """Physical table name prefixing."""

    def test_subscribed_events(self):
        assert TablePrefixListener('app_').get_subscribed_events() == (
            'instrument_class',
            'mapper_configured',
        )

    def test_prefixes_tables_and_join_tables(self, make_base):
        Base = make_base(TablePrefixListener('app_'))
        memberships, User, Group, Address = build_models(Base)

        assert User.__table__.name == 'app_users'
        assert Group.__table__.name == 'app_groups'
        assert memberships.name == 'app_memberships'
        assert User.__table__.fullname == 'app_users'

    def test_logical_keys_and_foreign_keys_survive(self, make_base):
        Base = make_base(TablePrefixListener('app_'))
        _, User, _, Address = build_models(Base)

        assert 'users' in Base.metadata.tables
        foreign_key = next(iter(Address.__table__.c.user_id.foreign_keys))
        assert foreign_key.column.table is User.__table__

    def test_schema_is_created_with_prefixed_names(self, make_base, engine, session):
        Base = make_base(TablePrefixListener('app_'))
        _, User, Group, _ = build_models(Base)
        Base.metadata.create_all(engine)

        assert sorted(sa_inspect(engine).get_table_names()) == [
            'app_addresses',
            'app_groups',
            'app_memberships',
            'app_users',
        ]

        group = Group(members=[User(name='ann'), User(name='bob')])
        session.add(group)
        session.commit()

        loaded = session.scalars(select(Group)).one()
        assert sorted(user.name for user in loaded.members) == ['ann', 'bob']

    def test_existing_prefix_is_not_repeated(self, make_base):
        Base = make_base(TablePrefixListener('app_'))

        class Setting(Base):
            __tablename__ = 'app_settings'
            id = Column(Integer, primary_key=True)

        assert Setting.__table__.name == 'app_settings'

    def test_single_table_subclass_is_skipped(self, make_base):
        Base = make_base(TablePrefixListener('app_'))

        class Employee(Base):
            __tablename__ = 'employees'
            id = Column(Integer, primary_key=True)
            kind = Column(String(20))
            __mapper_args__ = {'polymorphic_on': kind, 'polymorphic_identity': 'employee'}

        class Manager(Employee):
            __mapper_args__ = {'polymorphic_identity': 'manager'}

        assert Manager.__table__ is Employee.__table__
        assert Employee.__table__.name == 'app_employees'

    def test_primary_key_sequence_is_prefixed(self, make_base):
        Base = make_base(TablePrefixListener('app_'))

        class Widget(Base):
            __tablename__ = 'widgets'
            id = Column(Integer, Sequence('widget_id_seq'), primary_key=True)

        assert Widget.__table__.c.id.default.name == 'app_widget_id_seq'

    def test_no_prefix_leaves_names(self, make_base):
        Base = make_base(TablePrefixListener(None))
        memberships, User, _, _ = build_models(Base)

        assert User.__table__.name == 'users'
        assert memberships.name == 'memberships'
