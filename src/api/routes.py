"""
Flask routes orchestrator for the translation API

This module serves as a lightweight coordinator that registers
all route blueprints:

- blueprints/config_routes.py: Health checks and configuration
- blueprints/job_routes.py: Translation job creation and status
- blueprints/file_routes.py: Signed artifact downloads
"""
from flask import jsonify

from src.core.exceptions import JobNotFoundError, TranslationError
from src.utils.unified_logger import get_logger, LogType
from .blueprints import (
    create_config_blueprint,
    create_job_blueprint,
    create_file_blueprint
)


def configure_routes(app, service, background, start_translation_job):
    """
    Configure Flask routes by registering all blueprints

    Args:
        app: Flask application instance
        service: Translation service
        background: Background loop running the service
        start_translation_job: Function to start translation jobs
    """

    # Register config and health check routes
    app.register_blueprint(create_config_blueprint())

    # Register translation job routes
    app.register_blueprint(create_job_blueprint(service, background, start_translation_job))

    # Register artifact download routes
    app.register_blueprint(create_file_blueprint(service.artifact_store))

    # Register error handlers
    _register_error_handlers(app)


def _register_error_handlers(app):
    """Register global error handlers"""

    @app.errorhandler(JobNotFoundError)
    def job_not_found(error):
        return jsonify({"error": error.message, "job_id": error.context.get('job_id')}), 404

    @app.errorhandler(TranslationError)
    def translation_error(error):
        status = 503 if error.recoverable else 500
        return jsonify({"error": error.message}), status

    @app.errorhandler(404)
    def route_not_found(error):
        return jsonify({"error": "API Endpoint not found"}), 404

    @app.errorhandler(413)
    def payload_too_large(error):
        return jsonify({"error": "File too large"}), 413

    @app.errorhandler(500)
    def internal_server_error(error):
        get_logger().error(f"Internal server error: {error}", LogType.ERROR_DETAIL, {'details': repr(error)})
        return jsonify({"error": "Internal server error", "details": str(error)}), 500
