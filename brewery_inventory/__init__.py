import logging
from flask import Flask
from flask_cors import CORS


def create_app(config_name='default'):
    """Application factory pattern"""
    app = Flask(__name__)

    # Load configuration
    from config import config
    app.config.from_object(config[config_name])

    from brewery_inventory.validators import validate_config
    validate_config(app.config, production=config_name == 'production')

    # Configure logging
    if not app.testing:
        logging.basicConfig(
            level=getattr(logging, app.config['LOG_LEVEL'].upper()),
            format='%(asctime)s %(levelname)s %(name)s: %(message)s'
        )

    # Initialize correlation ID middleware
    from brewery_inventory.api.middlewares import CorrelationIdMiddleware, init_correlation_id_logging
    CorrelationIdMiddleware(app)
    init_correlation_id_logging(app)

    # Initialize database
    from brewery_inventory.database import init_db
    init_db(app)

    # Permission store and its cache
    from brewery_inventory.services.permission_service import init_permissions
    init_permissions(app)

    # CORS setup
    origins = app.config.get('CORS_ORIGINS', '*')
    if isinstance(origins, str):
        origins = [origin.strip() for origin in origins.split(',')]
    CORS(app, origins=origins)

    # Register API blueprint
    from brewery_inventory.api.controllers import api_bp
    app.register_blueprint(api_bp, url_prefix='/api/v1')

    # Register operational endpoints
    from brewery_inventory.api.controllers.operational import register_operational_routes
    register_operational_routes(app)

    # Register error handlers
    from brewery_inventory.utils.error_handlers import register_error_handlers
    register_error_handlers(app)

    app.logger.info("Brewery inventory service initialized")
    return app


def init_database(app):
    """Create database tables - call this explicitly when ready"""
    from brewery_inventory.database import db
    with app.app_context():
        try:
            from sqlalchemy import text
            db.session.execute(text('SELECT 1'))  # Test connection
            db.create_all()
            app.logger.info("Database tables created successfully")
            return True
        except Exception as e:
            app.logger.error(f"Failed to create database tables: {e}")
            if not app.debug:
                raise
            app.logger.warning("Continuing without database connection in development mode")
            return False
