"""
Configuration and health check routes
"""
import logging
from flask import Blueprint, jsonify

from src.config import (
    BATCH_MODEL,
    DIRECT_PROVIDER,
    POLL_INTERVAL_SECONDS,
    DEFAULT_SOURCE_LANGUAGE,
    DEFAULT_TARGET_LANGUAGE,
    DEFAULT_STYLE,
    DEBUG_MODE,
    LANGUAGE_NAMES,
    TRANSLATION_MODES,
    TRANSLATION_STYLES,
    GEMINI_API_KEY,
    OPENAI_API_KEY
)
from src.core.adapters import supported_formats

# Setup logger for this module
logger = logging.getLogger('config_routes')
if DEBUG_MODE:
    logger.setLevel(logging.DEBUG)


def create_config_blueprint():
    """Create and configure the config blueprint"""
    bp = Blueprint('config', __name__)

    @bp.route('/api/health', methods=['GET'])
    def health_check():
        """API health check endpoint"""
        return jsonify({
            "status": "ok",
            "message": "Translation API is running",
            "batch_model": BATCH_MODEL,
            "direct_provider": DIRECT_PROVIDER,
            "supported_formats": supported_formats()
        })

    @bp.route('/api/config', methods=['GET'])
    def get_default_config():
        """Get default configuration values"""
        config_response = {
            "batch_model": BATCH_MODEL,
            "direct_provider": DIRECT_PROVIDER,
            "poll_interval": POLL_INTERVAL_SECONDS,
            "supported_formats": supported_formats(),
            "languages": LANGUAGE_NAMES,
            "styles": list(TRANSLATION_STYLES),
            "modes": list(TRANSLATION_MODES),
            "openai_api_key_configured": bool(OPENAI_API_KEY),
            "gemini_api_key_configured": bool(GEMINI_API_KEY),
            "default_source_language": DEFAULT_SOURCE_LANGUAGE,
            "default_target_language": DEFAULT_TARGET_LANGUAGE,
            "default_style": DEFAULT_STYLE
        }

        if DEBUG_MODE:
            logger.debug("/api/config response:")
            logger.debug(f"   default_source_language: {DEFAULT_SOURCE_LANGUAGE}")
            logger.debug(f"   default_target_language: {DEFAULT_TARGET_LANGUAGE}")
            logger.debug(f"   batch_model: {BATCH_MODEL}")

        return jsonify(config_response)

    return bp
