from flask import jsonify
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError as SchemaValidationError
import logging

from .errors import AppError

logger = logging.getLogger(__name__)


def _schema_error_payload(error):
    return {
        'error': 'VALIDATION_ERROR',
        'code': 'VALIDATION_ERROR',
        'message': 'Request data validation failed',
        'details': error.messages,
        'status_code': 400,
    }


def _app_error_payload(error):
    if error.status_code >= 500:
        logger.error(f"Internal error: {error.message}")
    else:
        logger.warning(f"{error.code}: {error.message}")
    return error.to_dict()


def register_error_handlers(app):
    """Register application error handlers"""

    @app.errorhandler(AppError)
    def app_error(error):
        return jsonify(_app_error_payload(error)), error.status_code

    @app.errorhandler(SchemaValidationError)
    def validation_error(error):
        return jsonify(_schema_error_payload(error)), 400

    @app.errorhandler(HTTPException)
    def http_exception(error):
        return jsonify({
            'error': error.name,
            'code': error.name.upper().replace(' ', '_'),
            'message': error.description,
            'status_code': error.code
        }), error.code

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Internal server error: {error}")
        return jsonify({
            'error': 'INTERNAL_ERROR',
            'code': 'INTERNAL_ERROR',
            'message': 'An unexpected error occurred',
            'status_code': 500
        }), 500


def register_api_error_handlers(api):
    """flask-restx routes errors through the Api before the app handlers"""

    @api.errorhandler(AppError)
    def app_error(error):
        return _app_error_payload(error), error.status_code

    @api.errorhandler(SchemaValidationError)
    def validation_error(error):
        return _schema_error_payload(error), 400
