import os
import tempfile

# Logging and prefix settings are read when the package is imported
os.environ.setdefault('LOGGING_BASE_DIR', tempfile.mkdtemp(prefix='orm_behaviors_logs_'))
os.environ.setdefault('LOGGING_CONSOLE_ENABLED', 'false')
os.environ['LOG_FILE'] = os.path.join(os.environ['LOGGING_BASE_DIR'], 'app.log')
os.environ.pop('ORM_TABLE_PREFIX', None)

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session

from orm_behaviors import create_app
from orm_behaviors.extensions import db
from orm_behaviors.models import (
    DeletableMixin,
    LifecycleDateTimeMixin,
    PositionAwareMixin,
    UniqueActiveMixin,
)


# --- Models bound to the application's db.Model ---

class Article(LifecycleDateTimeMixin, DeletableMixin, PositionAwareMixin, db.Model):
    __tablename__ = 'articles'
    __position_group__ = ('section',)

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(120), nullable=False)
    section = db.Column(db.String(40), nullable=False)


class Theme(UniqueActiveMixin, db.Model):
    __tablename__ = 'themes'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(40), nullable=False)


class Tag(db.Model):
    __tablename__ = 'tags'

    id = db.Column(db.Integer, primary_key=True)
    label = db.Column(db.String(40), nullable=False)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    os.environ['FLASK_ENV'] = 'testing'

    app = create_app('testing')

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def runner(app):
    """Create test CLI runner."""
    return app.test_cli_runner()


@pytest.fixture(scope='function')
def db_session(app):
    """Flask-SQLAlchemy session with all rows removed afterwards."""
    yield db.session
    db.session.rollback()
    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()


# --- Standalone SQLAlchemy fixtures ---

@pytest.fixture(scope='function')
def make_base():
    """Return a factory building a fresh declarative base with listeners bound."""
    def _make_base(*listeners):
        class Base(DeclarativeBase):
            pass

        for listener in listeners:
            listener.register(Base)
        return Base
    return _make_base


@pytest.fixture(scope='function')
def engine():
    engine = create_engine('sqlite://')
    yield engine
    engine.dispose()


@pytest.fixture(scope='function')
def session(engine):
    with Session(engine) as session:
        yield session
