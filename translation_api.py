"""
Flask web server for the translation API with WebSocket support
"""
import os
import sys
import logging
import threading
from datetime import datetime
from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Reduce verbosity of werkzeug (Flask HTTP server logs)
logging.getLogger('werkzeug').setLevel(logging.WARNING)

# Fix Windows console encoding
if sys.platform == 'win32':
    import codecs
    sys.stdout = codecs.getwriter('utf-8')(sys.stdout.buffer, 'replace')
    sys.stderr = codecs.getwriter('utf-8')(sys.stderr.buffer, 'replace')

from src.config import (
    OPENAI_API_KEY,
    BATCH_MODEL,
    DIRECT_PROVIDER,
    DATABASE_PATH,
    ARTIFACT_DIR,
    MAX_UPLOAD_MB,
    POLL_INTERVAL_SECONDS,
    RESUME_SCAN_INTERVAL_SECONDS,
    SECRET_KEY,
    PORT,
    HOST,
    TranslationConfig
)
from src.api.routes import configure_routes
from src.api.websocket import configure_websocket_handlers
from src.api.handlers import start_translation_job, start_background_services
from src.core.adapters import supported_formats
from src.core.translation_service import TranslationService


app = Flask(__name__)
app.config['SECRET_KEY'] = SECRET_KEY
app.config['MAX_CONTENT_LENGTH'] = MAX_UPLOAD_MB * 1024 * 1024
CORS(app)
socketio = SocketIO(app, cors_allowed_origins="*")


def validate_configuration():
    """Validate required configuration before starting server"""
    issues = []

    if not PORT or not isinstance(PORT, int):
        issues.append("PORT must be a valid integer")
    if not BATCH_MODEL:
        issues.append("BATCH_MODEL must be configured")
    if POLL_INTERVAL_SECONDS <= 0:
        issues.append("POLL_INTERVAL_SECONDS must be positive")

    if issues:
        logger.error("\n" + "="*70)
        logger.error("CONFIGURATION ERROR")
        logger.error("="*70)
        for issue in issues:
            logger.error(f"   - {issue}")
        logger.error("\nSOLUTION:")
        logger.error("   1. Create a .env file from .env.example")
        logger.error("   2. Configure the required settings")
        logger.error("   3. Restart the application")
        logger.error("="*70 + "\n")
        raise ValueError("Configuration validation failed. See errors above.")

    if not OPENAI_API_KEY:
        logger.warning("OPENAI_API_KEY is not set: batch submissions will fail and fall back to direct translation")

    logger.info("Configuration validated successfully")


# Ensure storage directories exist
try:
    os.makedirs(ARTIFACT_DIR, exist_ok=True)
    db_dir = os.path.dirname(DATABASE_PATH)
    if db_dir:
        os.makedirs(db_dir, exist_ok=True)
    logger.info(f"Artifact folder '{ARTIFACT_DIR}' is ready")
except OSError as e:
    logger.error(f"Critical error: Unable to create storage folders: {e}")
    sys.exit(1)

service = TranslationService.create(TranslationConfig(interface_type="web"))

# Background event loop for batch polling and job processing.
# Jobs interrupted by the previous run are resumed on its first tick.
background = start_background_services(service, socketio, scan_interval=RESUME_SCAN_INTERVAL_SECONDS)


# Wrapper function for starting translation jobs
def start_job_wrapper(job_id):
    """Wrapper to inject dependencies into job starter"""
    return start_translation_job(service, background, job_id)


# Configure routes and WebSocket handlers
configure_routes(app, service, background, start_job_wrapper)
configure_websocket_handlers(socketio, service)

_shutdown_lock = threading.Lock()


def shutdown_services():
    """Cancel poll timers, close HTTP clients and stop the background loop"""
    with _shutdown_lock:
        try:
            background.submit(service.shutdown()).result(timeout=10)
        except Exception as e:
            logger.warning(f"Error during shutdown: {e}")
        background.stop()


if __name__ == '__main__':
    # Validate configuration before starting
    validate_configuration()

    logger.info("="*60)
    logger.info(f"LLM TRANSLATION SERVER (Version {datetime.now().strftime('%Y%m%d-%H%M')})")
    logger.info("="*60)
    logger.info(f"   - Batch model: {BATCH_MODEL} (poll every {POLL_INTERVAL_SECONDS}s)")
    logger.info(f"   - Direct provider: {DIRECT_PROVIDER}")
    logger.info(f"   - API: http://{HOST}:{PORT}/api/")
    logger.info(f"   - Health Check: http://{HOST}:{PORT}/api/health")
    logger.info(f"   - Supported formats: {', '.join(supported_formats())}")
    logger.info("")
    logger.info("Press Ctrl+C to stop the server")
    logger.info("")

    # Production deployment note
    if HOST == '0.0.0.0':
        logger.warning("Server is binding to 0.0.0.0 (all network interfaces)")
        logger.warning("   Run a single worker: poll timers live in this process")
        logger.info("")

    try:
        socketio.run(app, debug=False, host=HOST, port=PORT, allow_unsafe_werkzeug=True)
    finally:
        shutdown_services()
