#!/usr/bin/env python3
"""
Brewery Inventory Service
Flask-based service for raw materials, finished goods, lots and stock movements.
"""

import os
import sys
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from brewery_inventory import create_app, init_database
from brewery_inventory.validators import ConfigurationError

logger = logging.getLogger(__name__)


def main():
    """Main application entry point."""
    env = os.environ.get('FLASK_ENV', 'production')

    try:
        app = create_app(env)
    except ConfigurationError as e:
        logger.critical(str(e))
        sys.exit(1)

    logger.info(f"Starting Brewery Inventory Service in {env} mode")

    # Schema changes go through migrations in production
    if env != 'production':
        init_database(app)

    host = os.environ.get('HOST', '0.0.0.0')
    port = int(os.environ.get('PORT', 5000))
    debug = env == 'development'

    logger.info(f"Starting Brewery Inventory Service on {host}:{port}")

    app.run(
        host=host,
        port=port,
        debug=debug,
        threaded=True
    )


if __name__ == '__main__':
    main()
