"""
Health Check & Monitoring Endpoints
Liveness, readiness (database + fallback folder) and process metrics
"""
import os
import sys
import time
import psutil
from datetime import datetime
from typing import Dict, Any
from flask import Blueprint, current_app, jsonify
import logging

from database.connection import check_db_connection

logger = logging.getLogger(__name__)

health_bp = Blueprint('health', __name__)

SERVICE_NAME = 'rentalhub'
SERVICE_VERSION = '1.0.0'

START_TIME = time.time()


def get_system_metrics() -> Dict[str, Any]:
    """
    Get basic process metrics

    Returns:
        Dictionary of system metrics (empty if psutil cannot read them)
    """
    try:
        process = psutil.Process()

        return {
            'cpu_percent': process.cpu_percent(interval=0.1),
            'memory_mb': process.memory_info().rss / 1024 / 1024,
            'memory_percent': process.memory_percent(),
            'threads': process.num_threads(),
            'open_files': len(process.open_files()),
        }
    except psutil.Error as e:
        logger.warning(f"Failed to get system metrics: {e}")
        return {}


def get_uptime() -> Dict[str, Any]:
    uptime_seconds = time.time() - START_TIME

    return {
        'uptime_seconds': round(uptime_seconds, 2),
        'uptime_minutes': round(uptime_seconds / 60, 2),
        'uptime_hours': round(uptime_seconds / 3600, 2),
        'started_at': datetime.fromtimestamp(START_TIME).isoformat()
    }


def check_integrations(app) -> Dict[str, bool]:
    """
    Which external integrations have credentials configured

    Args:
        app: Flask application instance
    """
    config = app.config
    return {
        'anthropic_claude': bool(config.get('ANTHROPIC_API_KEY')),
        'stripe': bool(config.get('STRIPE_SECRET_KEY')),
        'stripe_webhooks': bool(config.get('STRIPE_WEBHOOK_SECRET')),
        'google_places': bool(config.get('GOOGLE_PLACES_API_KEY')),
        'facebook_graph': bool(config.get('FACEBOOK_APP_ID') and config.get('FACEBOOK_APP_SECRET')),
        'twilio_sms': bool(config.get('TWILIO_ACCOUNT_SID') and config.get('TWILIO_AUTH_TOKEN')),
    }


def check_database() -> Dict[str, Any]:
    try:
        check_db_connection()
        return {'healthy': True}
    except RuntimeError as e:
        return {'healthy': False, 'error': str(e)}


def check_filesystem(app) -> Dict[str, Any]:
    """
    Check that the fallback store and log folders exist and are writable
    """
    folders = {
        'fallback_data': app.config.get('FALLBACK_DATA_FOLDER', 'temp-data'),
        'logs': 'logs',
    }

    filesystem_status = {}
    for name, dir_path in folders.items():
        exists = os.path.isdir(dir_path)
        writable = os.access(dir_path, os.W_OK) if exists else False
        filesystem_status[name] = {
            'path': dir_path,
            'exists': exists,
            'writable': writable,
            'healthy': exists and writable
        }

    return filesystem_status


@health_bp.route('/health', methods=['GET'])
def health_check():
    """
    Liveness check. Returns 200 while the process is serving requests.
    """
    return jsonify({
        'status': 'healthy',
        'timestamp': datetime.utcnow().isoformat(),
        'service': SERVICE_NAME
    }), 200


@health_bp.route('/ready', methods=['GET'])
def readiness_check():
    """
    Readiness check. 200 when the database answers and the fallback folder
    is writable, else 503.
    """
    try:
        database = check_database()
        filesystem = check_filesystem(current_app)
        fallback_ready = filesystem['fallback_data']['healthy']
        is_ready = database['healthy'] and fallback_ready

        response = {
            'status': 'ready' if is_ready else 'not_ready',
            'timestamp': datetime.utcnow().isoformat(),
            'checks': {
                'database': database,
                'filesystem': filesystem,
                'integrations': check_integrations(current_app),
            }
        }

        return jsonify(response), 200 if is_ready else 503

    except Exception as e:
        logger.error(f"Readiness check failed: {e}")
        return jsonify({
            'status': 'error',
            'error': 'Readiness check failed',
            'timestamp': datetime.utcnow().isoformat()
        }), 503


@health_bp.route('/metrics', methods=['GET'])
def metrics():
    """
    Process metrics, uptime and integration configuration
    """
    try:
        response = {
            'timestamp': datetime.utcnow().isoformat(),
            'service': SERVICE_NAME,
            'version': SERVICE_VERSION,
            'environment': os.environ.get('FLASK_ENV', 'production'),
            'uptime': get_uptime(),
            'system': get_system_metrics(),
            'integrations': check_integrations(current_app),
            'filesystem': check_filesystem(current_app),
            'python_version': sys.version.split()[0]
        }

        return jsonify(response), 200

    except Exception as e:
        logger.error(f"Metrics collection failed: {e}")
        return jsonify({
            'status': 'error',
            'error': 'Metrics collection failed',
            'timestamp': datetime.utcnow().isoformat()
        }), 500


@health_bp.route('/ping', methods=['GET'])
def ping():
    return 'pong', 200


def register_health_checks(app):
    """
    Register health check blueprint with Flask app

    Args:
        app: Flask application instance
    """
    app.register_blueprint(health_bp, url_prefix='/api')
    logger.info("Health check endpoints registered: /api/health, /api/ready, /api/metrics, /api/ping")
