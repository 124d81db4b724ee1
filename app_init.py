"""
Application Initialization Module
Builds the Flask app with configuration, logging, security, database,
the fallback store, the AI service and all API blueprints
"""
import os
from flask import Flask
from config import get_config
from logging_config import setup_logging
from ai_service import AIService
from database.connection import init_db, init_engine
from security import setup_security
from health_checks import register_health_checks
from services.fallback_store import FallbackStore
from rentalhub import register_blueprints
import logging

logger = logging.getLogger(__name__)


def create_app(config_class=None):
    """
    Application factory

    Args:
        config_class: Configuration class; defaults to the FLASK_ENV selection

    Returns:
        Configured Flask application instance
    """
    app = Flask(__name__)

    app.config.from_object(config_class or get_config())

    setup_logging(app)

    logger.info("=" * 60)
    logger.info("Initializing RentalHub API")
    logger.info("=" * 60)
    logger.info(f"Environment: {os.environ.get('FLASK_ENV', 'development')}")
    logger.info(f"Debug mode: {app.debug}")

    setup_security(app, app.config)

    create_required_directories(app)
    initialize_database(app)

    app.extensions['fallback_store'] = FallbackStore(app.config['FALLBACK_DATA_FOLDER'])
    app.ai_service = initialize_ai_service(app)

    register_blueprints(app)
    register_health_checks(app)

    logger.info("Application initialization complete")
    logger.info("=" * 60)

    return app


def create_required_directories(app):
    """
    Create the fallback store and log directories

    Args:
        app: Flask application instance
    """
    directories = [app.config['FALLBACK_DATA_FOLDER'], 'logs']

    for directory in directories:
        try:
            os.makedirs(directory, exist_ok=True)
            logger.debug(f"Directory ensured: {directory}")
        except OSError as e:
            logger.error(f"Failed to create directory {directory}: {e}")


def initialize_database(app):
    """
    Create the engine and any missing tables. A database that is down at
    startup is logged; business routes then use the fallback store.
    """
    init_engine(app.config['DATABASE_URL'])
    try:
        init_db()
    except Exception as e:
        logger.error(f"Database initialization failed, continuing with fallback store: {e}")


def initialize_ai_service(app):
    """
    Initialize centralized AI service manager

    Args:
        app: Flask application instance

    Returns:
        AIService instance
    """
    ai_service = AIService(app.config)

    if ai_service.is_available('claude'):
        logger.info("AI Services initialized: Claude")
    else:
        logger.warning("No AI services configured - business analysis uses content heuristics")

    return ai_service
