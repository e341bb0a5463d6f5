from flask_sqlalchemy import SQLAlchemy

from .config import Config
from .extension import Behaviors

db = SQLAlchemy()
behaviors = Behaviors(db.Model, table_prefix=Config.ORM_TABLE_PREFIX)
