import logging
import os
from logging.handlers import RotatingFileHandler

from dotenv import load_dotenv
from flask import Flask

from orm_behaviors.utils.logging_utils import get_logger, init_logger

# Load environment variables from .env file
load_dotenv()

# Import configuration after loading .env
from .config import config, Config
from .extensions import db, behaviors


def configure_logging(app):
    log_file = app.config.get('LOG_FILE', '/tmp/orm_behaviors/app.log')
    log_dir = os.path.dirname(log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    if not app.logger.handlers:
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=app.config.get('LOG_MAX_BYTES', 10485760),  # 10MB default
            backupCount=app.config.get('LOG_BACKUP_COUNT', 5)
        )
        formatter = logging.Formatter(
            "[%(asctime)s] %(levelname)s in %(module)s: %(message)s"
        )
        file_handler.setFormatter(formatter)
        log_level = getattr(logging, app.config.get('LOG_LEVEL', 'INFO'))
        file_handler.setLevel(log_level)
        app.logger.addHandler(file_handler)

    log_level = getattr(logging, app.config.get('LOG_LEVEL', 'INFO'))
    app.logger.setLevel(log_level)
    app.logger.info("Logging configured with level: %s", app.config.get('LOG_LEVEL', 'INFO'))

    # Configure categorized loggers using the same application config.
    init_logger(app)


def create_app(config_name=None):
    # Determine configuration based on environment variable or parameter
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'default')

    config_class = config.get(config_name, Config)

    app = Flask(__name__)
    app.config.from_object(config_class)

    # Initialize configuration-specific setup
    config_class.init_app(app)

    configure_logging(app)
    app.logger.info("Using config: %s", config_class.__name__)
    get_logger("app").info("Application startup with config %s", config_class.__name__)

    db.init_app(app)
    behaviors.init_app(app)

    return app


__all__ = ["create_app", "configure_logging", "db", "behaviors"]
