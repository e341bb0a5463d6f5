from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String

from orm_behaviors.listeners import DeletableListener
from orm_behaviors.models import DeletableMixin


class TestDeletableListener:
    """Soft-delete column injection."""

    def test_subscribed_events(self):
        assert DeletableListener().get_subscribed_events() == ('instrument_class',)

    def test_maps_nullable_deleted_at(self, make_base):
        Base = make_base(DeletableListener())

        class Document(DeletableMixin, Base):
            __tablename__ = 'documents'
            id = Column(Integer, primary_key=True)

        column = Document.__table__.c.deleted_at
        assert column.nullable is True
        assert isinstance(column.type, DateTime)
        assert column.type.timezone is True

    def test_keeps_declared_column(self, make_base):
        Base = make_base(DeletableListener())

        class Document(DeletableMixin, Base):
            __tablename__ = 'documents'
            id = Column(Integer, primary_key=True)
            deleted_at = Column(String(32))

        assert isinstance(Document.__table__.c.deleted_at.type, String)

    def test_plain_model_untouched(self, make_base):
        Base = make_base(DeletableListener())

        class Note(Base):
            __tablename__ = 'notes'
            id = Column(Integer, primary_key=True)

        assert 'deleted_at' not in Note.__table__.c

    def test_mark_deleted_and_restore(self, make_base, engine, session):
        Base = make_base(DeletableListener())

        class Document(DeletableMixin, Base):
            __tablename__ = 'documents'
            id = Column(Integer, primary_key=True)

        Base.metadata.create_all(engine)

        document = Document()
        session.add(document)
        session.commit()
        assert document.is_deleted is False

        when = datetime(2024, 5, 1, tzinfo=timezone.utc)
        document.mark_deleted(when)
        session.commit()
        assert document.is_deleted is True
        assert document.deleted_at.replace(tzinfo=timezone.utc) == when

        document.restore()
        session.commit()
        assert document.deleted_at is None

    def test_mark_deleted_defaults_to_now(self, make_base):
        Base = make_base(DeletableListener())

        class Document(DeletableMixin, Base):
            __tablename__ = 'documents'
            id = Column(Integer, primary_key=True)

        document = Document()
        document.mark_deleted()
        assert document.deleted_at.tzinfo is not None
