"""
Health Check Utilities
Database connectivity for readiness, process vitals for liveness and metrics
"""
import time
import os
import psutil
from datetime import datetime
from sqlalchemy import text, func
from brewery_inventory.database import db
import logging

logger = logging.getLogger(__name__)

_process_start = time.time()


def check_database_health():
    """Check database connectivity and round-trip time"""
    try:
        start_time = time.time()
        db.session.execute(text('SELECT 1'))
        response_time = (time.time() - start_time) * 1000

        return {
            'status': 'healthy',
            'message': 'Database connection is healthy',
            'response_time': round(response_time, 2),
            'details': {
                'dialect': db.engine.dialect.name,
            },
        }
    except Exception as e:
        logger.error(f'Database health check failed: {e}')
        db.session.rollback()
        return {
            'status': 'unhealthy',
            'message': f'Database health check failed: {str(e)}',
            'response_time': 0,
            'details': {
                'database_url': db.engine.url.render_as_string(hide_password=True),
            },
        }


def perform_readiness_check():
    """Ready when the database answers"""
    check_start_time = time.time()
    checks = {'database': check_database_health()}
    overall_healthy = all(check['status'] == 'healthy' for check in checks.values())

    return {
        'status': 'ready' if overall_healthy else 'not ready',
        'timestamp': datetime.utcnow().isoformat() + 'Z',
        'total_check_time': round((time.time() - check_start_time) * 1000, 2),
        'checks': checks,
    }


def perform_liveness_check():
    """Fast process-local check; never touches the database"""
    process = psutil.Process()
    memory_percent = process.memory_percent()
    memory_healthy = memory_percent < 90.0

    checks = {
        'memory': {
            'status': 'healthy' if memory_healthy else 'unhealthy',
            'percent': round(memory_percent, 2),
            'rss': process.memory_info().rss,
        },
    }

    return {
        'status': 'alive' if memory_healthy else 'unhealthy',
        'timestamp': datetime.utcnow().isoformat() + 'Z',
        'uptime': round(time.time() - _process_start, 2),
        'checks': checks,
    }


def get_inventory_metrics():
    """Row counts of the inventory tables"""
    from brewery_inventory.models import (
        RawMaterial, FinishedGood, RawMaterialLot, FinishedGoodLot, InventoryMovement
    )
    return {
        'raw_materials': db.session.query(func.count(RawMaterial.id)).scalar(),
        'finished_goods': db.session.query(func.count(FinishedGood.id)).scalar(),
        'raw_material_lots': db.session.query(func.count(RawMaterialLot.id)).scalar(),
        'finished_good_lots': db.session.query(func.count(FinishedGoodLot.id)).scalar(),
        'movements': db.session.query(func.count(InventoryMovement.id)).scalar(),
    }


def get_system_metrics():
    """Process and host metrics for monitoring"""
    process = psutil.Process()
    memory_info = process.memory_info()

    return {
        'timestamp': datetime.utcnow().isoformat() + 'Z',
        'uptime': round(time.time() - _process_start, 2),
        'process': {
            'pid': os.getpid(),
            'memory_rss': memory_info.rss,
            'memory_vms': memory_info.vms,
            'memory_percent': round(process.memory_percent(), 2),
            'threads': process.num_threads(),
        },
        'system': {
            'cpu_count': psutil.cpu_count(),
            'memory_percent': psutil.virtual_memory().percent,
        },
    }
