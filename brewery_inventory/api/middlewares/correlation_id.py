"""
Correlation ID middleware - ties log lines to the request that produced them
"""
import uuid
import logging
from contextvars import ContextVar
from flask import Response, g, request, has_request_context

# Context variable to store correlation ID for the current request
correlation_id_context: ContextVar[str] = ContextVar('correlation_id', default='')

logger = logging.getLogger(__name__)


class CorrelationIdMiddleware:
    """
    Reads X-Correlation-ID from the request (or generates one) and echoes it
    on the response
    """

    def __init__(self, app=None):
        self.app = app
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        app.before_request(self.before_request)
        app.after_request(self.after_request)

    def before_request(self):
        correlation_id = request.headers.get('X-Correlation-ID') or str(uuid.uuid4())

        g.correlation_id = correlation_id
        correlation_id_context.set(correlation_id)

        logger.debug(f"{request.method} {request.path} - Processing request")

    def after_request(self, response: Response) -> Response:
        correlation_id = getattr(g, 'correlation_id', 'unknown')
        response.headers['X-Correlation-ID'] = correlation_id

        logger.info(f"{request.method} {request.path} - Response: {response.status_code}")
        return response


def get_correlation_id() -> str:
    """Current correlation ID from the request, or the context variable outside one"""
    if has_request_context() and hasattr(g, 'correlation_id'):
        return g.correlation_id
    return correlation_id_context.get() or 'unknown'


class CorrelationIdFormatter(logging.Formatter):
    """Formatter that includes the correlation ID in every record"""

    def format(self, record):
        record.correlation_id = get_correlation_id()
        return super().format(record)


def init_correlation_id_logging(app):
    """Install the correlation-aware formatter on the root handlers"""
    formatter = CorrelationIdFormatter(
        '%(asctime)s [%(correlation_id)s] %(levelname)s in %(name)s: %(message)s'
    )
    for handler in logging.getLogger().handlers + app.logger.handlers:
        handler.setFormatter(formatter)
