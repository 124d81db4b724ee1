"""
Security Utilities & Middleware
CORS, response headers, JSON error handlers and request logging for the API
"""
import os
import secrets
from typing import Dict, Any
from flask import Flask, request, jsonify, Response
from flask_cors import CORS
import logging

from validators import format_error_response

logger = logging.getLogger(__name__)

# Paths polled by load balancers; kept out of the request log
QUIET_PATHS = ('/api/health', '/api/ping', '/api/ready')


class SecurityConfig:
    """Secret key generation and validation"""

    @staticmethod
    def generate_secret_key() -> str:
        return secrets.token_hex(32)

    @staticmethod
    def validate_secret_key(secret_key: str) -> bool:
        """
        Validate that secret key is sufficiently secure

        Args:
            secret_key: Secret key to validate

        Returns:
            True if key is secure, False otherwise
        """
        if not secret_key:
            return False

        if len(secret_key) < 32:
            logger.warning("Secret key is too short (minimum 32 characters)")
            return False

        weak_keys = ['dev', 'test', 'secret', 'password', '12345']
        if any(weak in secret_key.lower() for weak in weak_keys):
            logger.warning("Secret key appears to be weak or default")
            return False

        return True

    @staticmethod
    def ensure_secret_key(config: Dict[str, Any]) -> str:
        """
        Return the configured secret key, or a generated one if it is missing or weak
        """
        secret_key = config.get('SECRET_KEY')

        if not secret_key or not SecurityConfig.validate_secret_key(secret_key):
            if os.environ.get('FLASK_ENV') == 'production':
                logger.error("No secure SECRET_KEY in production! Generating one...")
                logger.error("Add SECRET_KEY to environment variables for persistence!")

            secret_key = SecurityConfig.generate_secret_key()
            logger.warning(f"Generated new secret key (length: {len(secret_key)})")

        return secret_key


def setup_security_headers(app: Flask):
    """
    Add security headers to all responses

    Args:
        app: Flask application instance
    """
    @app.after_request
    def add_security_headers(response: Response) -> Response:
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'

        if not app.debug:
            response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'

        # Invoice HTML is the only document served; it uses inline styles
        response.headers['Content-Security-Policy'] = (
            "default-src 'none'; style-src 'unsafe-inline'; img-src 'self' data: https:; frame-ancestors 'none'"
        )
        return response

    logger.info("Security headers configured")


def setup_cors(app: Flask, config: Dict[str, Any]):
    """
    Configure CORS from CORS_ORIGINS / CORS_METHODS / CORS_ALLOW_HEADERS

    Args:
        app: Flask application instance
        config: Application configuration dictionary
    """
    cors_origins = config.get('CORS_ORIGINS', ['*'])
    cors_methods = config.get('CORS_METHODS', ['GET', 'POST', 'PUT', 'DELETE', 'OPTIONS'])
    cors_headers = config.get('CORS_ALLOW_HEADERS', ['Content-Type', 'Authorization'])

    if not app.debug and '*' in cors_origins:
        logger.warning("Using wildcard CORS in production! Set CORS_ORIGINS environment variable.")

    CORS(
        app,
        origins=cors_origins,
        methods=cors_methods,
        allow_headers=cors_headers,
        max_age=3600
    )

    logger.info(f"CORS configured: origins={cors_origins}")


def setup_error_handlers(app: Flask):
    """
    Register JSON error handlers using the API envelope

    Args:
        app: Flask application instance
    """
    include_details = app.debug

    @app.errorhandler(400)
    def bad_request(error):
        return jsonify(format_error_response('Bad request')), 400

    @app.errorhandler(404)
    def not_found(error):
        return jsonify(format_error_response('The requested resource was not found')), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify(format_error_response('The method is not allowed for the requested URL')), 405

    @app.errorhandler(413)
    def request_entity_too_large(error):
        return jsonify(format_error_response('The uploaded file or request is too large')), 413

    @app.errorhandler(500)
    def internal_server_error(error):
        logger.error(f"Internal server error: {error}", exc_info=True)
        extra = {'details': str(getattr(error, 'original_exception', None) or error)} if include_details else {}
        return jsonify(format_error_response('Internal server error', **extra)), 500

    logger.info("Error handlers registered")


def setup_request_logging(app: Flask):
    """
    Log each request and response, except health checks

    Args:
        app: Flask application instance
    """
    @app.before_request
    def log_request():
        if request.path in QUIET_PATHS:
            return

        logger.info(
            f"Request: {request.method} {request.path} "
            f"from {request.remote_addr}"
        )

    @app.after_request
    def log_response(response: Response) -> Response:
        if request.path in QUIET_PATHS:
            return response

        logger.info(
            f"Response: {request.method} {request.path} "
            f"status={response.status_code} "
            f"size={response.content_length}"
        )

        return response

    logger.info("Request logging configured")


def validate_environment_variables(required_vars: list, app: Flask) -> bool:
    """
    Warn about unset environment variables. Returns True when all are set.
    """
    missing_vars = [var for var in required_vars if not os.environ.get(var)]
    for var in missing_vars:
        logger.warning(f"Missing environment variable: {var}")

    if missing_vars and not app.debug:
        logger.error(f"Missing required environment variables in production: {missing_vars}")

    return not missing_vars


def setup_security(app: Flask, config: Dict[str, Any]):
    """
    Setup all security features for the application

    Args:
        app: Flask application instance
        config: Application configuration dictionary
    """
    logger.info("Configuring application security...")

    app.secret_key = SecurityConfig.ensure_secret_key(config)
    setup_cors(app, config)
    setup_security_headers(app)
    setup_error_handlers(app)
    setup_request_logging(app)

    if not app.debug:
        validate_environment_variables(['SECRET_KEY', 'DATABASE_URL', 'STRIPE_SECRET_KEY'], app)

    logger.info("Security configuration complete")
