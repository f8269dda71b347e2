"""
Operational endpoints used by load balancers and monitoring
"""

from flask_restx import Resource
from datetime import datetime
import os
import logging
from brewery_inventory.utils.health_checks import (
    perform_readiness_check,
    perform_liveness_check,
    get_system_metrics,
    get_inventory_metrics,
)

logger = logging.getLogger(__name__)

SERVICE_NAME = 'brewery-inventory'


class Health(Resource):
    def get(self):
        """Main health check endpoint"""
        return {
            'status': 'healthy',
            'service': SERVICE_NAME,
            'timestamp': datetime.utcnow().isoformat() + 'Z',
            'version': os.environ.get('API_VERSION', '1.0.0'),
            'environment': os.environ.get('FLASK_ENV', 'development'),
        }, 200


class Readiness(Resource):
    def get(self):
        """Readiness check - the database must answer"""
        result = perform_readiness_check()
        if result['status'] != 'ready':
            logger.warning(f"Readiness check failed: {result['checks']}")
        status_code = 200 if result['status'] == 'ready' else 503
        return {'service': SERVICE_NAME, **result}, status_code


class Liveness(Resource):
    def get(self):
        """Liveness check - process vitals only"""
        result = perform_liveness_check()
        status_code = 200 if result['status'] == 'alive' else 503
        return {'service': SERVICE_NAME, **result}, status_code


class Metrics(Resource):
    def get(self):
        """System and inventory metrics"""
        return {
            'service': SERVICE_NAME,
            **get_system_metrics(),
            'inventory': get_inventory_metrics(),
        }, 200


def register_operational_routes(app):
    app.add_url_rule('/health', 'health', Health().get, methods=['GET'])
    app.add_url_rule('/health/ready', 'readiness', Readiness().get, methods=['GET'])
    app.add_url_rule('/health/live', 'liveness', Liveness().get, methods=['GET'])
    app.add_url_rule('/metrics', 'metrics', Metrics().get, methods=['GET'])
