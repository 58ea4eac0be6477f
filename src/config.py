"""
Centralized configuration class
"""
import os
import logging
from pathlib import Path
from dataclasses import dataclass, asdict
from typing import Optional
from dotenv import load_dotenv

# Setup debug logger for configuration
_config_logger = logging.getLogger('config')

_debug_mode = os.getenv('DEBUG_MODE', 'false').lower() == 'true'
if _debug_mode:
    logging.basicConfig(level=logging.DEBUG, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    _config_logger.setLevel(logging.DEBUG)

# Get config directory (current working directory)
_config_dir = Path.cwd()
_env_file = _config_dir / '.env'

if not _env_file.exists():
    _config_logger.warning(
        "No .env file found in %s, running with default settings "
        "(API keys must then come from the environment)", _config_dir
    )

_dotenv_result = load_dotenv(_env_file)
if _debug_mode:
    _config_logger.debug(f"load_dotenv() returned: {_dotenv_result}")

# ============================================================================
# BATCH BACKEND (OpenAI Files + Batches API)
# ============================================================================
OPENAI_API_KEY = os.getenv('OPENAI_API_KEY', '')
OPENAI_BASE_URL = os.getenv('OPENAI_BASE_URL', 'https://api.openai.com/v1')
BATCH_MODEL = os.getenv('BATCH_MODEL', 'gpt-4.1')
BATCH_ENDPOINT = '/v1/chat/completions'
BATCH_COMPLETION_WINDOW = os.getenv('BATCH_COMPLETION_WINDOW', '24h')

# ============================================================================
# DIRECT (per-unit) TRANSLATION
# ============================================================================
DIRECT_PROVIDER = os.getenv('DIRECT_PROVIDER', 'gemini')  # 'gemini' or 'openai'
GEMINI_API_KEY = os.getenv('GEMINI_API_KEY', '')
GEMINI_MODEL = os.getenv('GEMINI_MODEL', 'gemini-2.0-flash')
DIRECT_MODEL = os.getenv('DIRECT_MODEL', 'gpt-4o-mini')
REQUEST_TIMEOUT = int(os.getenv('REQUEST_TIMEOUT', '900'))
MAX_TRANSLATION_ATTEMPTS = int(os.getenv('MAX_TRANSLATION_ATTEMPTS', '2'))
RETRY_DELAY_SECONDS = int(os.getenv('RETRY_DELAY_SECONDS', '2'))

# ============================================================================
# ORCHESTRATION
# ============================================================================
POLL_INTERVAL_SECONDS = int(os.getenv('POLL_INTERVAL_SECONDS', '120'))
RESUME_SCAN_INTERVAL_SECONDS = int(os.getenv('RESUME_SCAN_INTERVAL_SECONDS', '300'))

# Progress checkpoints. Batch processing owns [40, 70], direct translation
# owns [30, 80], reconstruction starts at 80.
BATCH_PROGRESS_START = int(os.getenv('BATCH_PROGRESS_START', '40'))
BATCH_PROGRESS_END = int(os.getenv('BATCH_PROGRESS_END', '70'))
DIRECT_PROGRESS_START = int(os.getenv('DIRECT_PROGRESS_START', '30'))
DIRECT_PROGRESS_END = int(os.getenv('DIRECT_PROGRESS_END', '80'))
RECONSTRUCT_PROGRESS = int(os.getenv('RECONSTRUCT_PROGRESS', '80'))

# ============================================================================
# STORAGE
# ============================================================================
DATABASE_PATH = os.getenv('DATABASE_PATH', 'data/jobs.db')
UPLOAD_DIR = os.getenv('UPLOAD_DIR', 'data/uploads')
ARTIFACT_DIR = os.getenv('ARTIFACT_DIR', 'translated_files')
DOWNLOAD_URL_TTL_SECONDS = int(os.getenv('DOWNLOAD_URL_TTL_SECONDS', '900'))
SECRET_KEY = os.getenv('SECRET_KEY', 'change-me')
MAX_UPLOAD_MB = int(os.getenv('MAX_UPLOAD_MB', '100'))

# Server configuration
HOST = os.getenv('HOST', '127.0.0.1')
PORT = int(os.getenv('PORT', '5000'))

# Default languages from environment
DEFAULT_SOURCE_LANGUAGE = os.getenv('DEFAULT_SOURCE_LANGUAGE', 'English')
DEFAULT_TARGET_LANGUAGE = os.getenv('DEFAULT_TARGET_LANGUAGE', 'Spanish')
DEFAULT_STYLE = os.getenv('DEFAULT_STYLE', 'standard')

# Debug mode (reload after .env is loaded)
DEBUG_MODE = os.getenv('DEBUG_MODE', 'false').lower() == 'true'

if DEBUG_MODE or _debug_mode:
    _config_logger.setLevel(logging.DEBUG)
    _config_logger.debug("=" * 60)
    _config_logger.debug("LOADED CONFIGURATION VALUES:")
    _config_logger.debug(f"   OPENAI_BASE_URL: {OPENAI_BASE_URL}")
    _config_logger.debug(f"   BATCH_MODEL: {BATCH_MODEL}")
    _config_logger.debug(f"   DIRECT_PROVIDER: {DIRECT_PROVIDER}")
    _config_logger.debug(f"   POLL_INTERVAL_SECONDS: {POLL_INTERVAL_SECONDS}")
    _config_logger.debug(f"   DATABASE_PATH: {DATABASE_PATH}")
    _config_logger.debug(f"   GEMINI_API_KEY: {'***' + GEMINI_API_KEY[-4:] if GEMINI_API_KEY else '(not set)'}")
    _config_logger.debug(f"   OPENAI_API_KEY: {'***' + OPENAI_API_KEY[-4:] if OPENAI_API_KEY else '(not set)'}")
    _config_logger.debug("=" * 60)

# Language codes accepted by the API, mapped to the names used in prompts
LANGUAGE_NAMES = {
    'en': 'English',
    'es': 'Spanish',
    'fr': 'French',
    'de': 'German',
    'it': 'Italian',
    'pt': 'Portuguese',
    'ru': 'Russian',
    'zh': 'Chinese',
    'ja': 'Japanese',
    'ko': 'Korean',
    'ar': 'Arabic',
    'hi': 'Hindi',
}

TRANSLATION_STYLES = ('standard', 'literal', 'technical', 'literary', 'colloquial')
TRANSLATION_MODES = ('batch', 'direct')

# EPUB-specific configuration
NAMESPACES = {
    'opf': 'http://www.idpf.org/2007/opf',
    'dc': 'http://purl.org/dc/elements/1.1/',
    'xhtml': 'http://www.w3.org/1999/xhtml',
    'epub': 'http://www.idpf.org/2007/ops',
    'ncx': 'http://www.daisy.org/z3986/2005/ncx/',
    'container': 'urn:oasis:names:tc:opendocument:xmlns:container',
}


def resolve_language(value: Optional[str], default: str) -> str:
    """Map a language code (``fr``) to its name, leaving full names untouched."""
    if not value:
        return default
    return LANGUAGE_NAMES.get(value.strip().lower(), value.strip())


@dataclass
class TranslationConfig:
    """Unified configuration for both CLI and web interfaces"""

    source_language: str = DEFAULT_SOURCE_LANGUAGE
    target_language: str = DEFAULT_TARGET_LANGUAGE
    style: str = DEFAULT_STYLE
    mode: str = 'batch'

    # Backend settings
    batch_model: str = BATCH_MODEL
    direct_provider: str = DIRECT_PROVIDER
    openai_api_key: str = OPENAI_API_KEY
    gemini_api_key: str = GEMINI_API_KEY

    # LLM parameters
    timeout: int = REQUEST_TIMEOUT
    max_attempts: int = MAX_TRANSLATION_ATTEMPTS
    retry_delay: int = RETRY_DELAY_SECONDS
    poll_interval: int = POLL_INTERVAL_SECONDS

    # Interface-specific
    interface_type: str = "cli"  # or "web"

    def __post_init__(self):
        if self.style not in TRANSLATION_STYLES:
            raise ValueError(f"Unknown translation style '{self.style}' (expected one of {', '.join(TRANSLATION_STYLES)})")
        if self.mode not in TRANSLATION_MODES:
            raise ValueError(f"Unknown translation mode '{self.mode}' (expected 'batch' or 'direct')")

    @classmethod
    def from_cli_args(cls, args) -> 'TranslationConfig':
        """Create config from CLI arguments"""
        return cls(
            source_language=resolve_language(args.source_lang, DEFAULT_SOURCE_LANGUAGE),
            target_language=resolve_language(args.target_lang, DEFAULT_TARGET_LANGUAGE),
            style=args.style,
            mode=args.mode,
            batch_model=getattr(args, 'model', None) or BATCH_MODEL,
            direct_provider=getattr(args, 'provider', None) or DIRECT_PROVIDER,
            openai_api_key=getattr(args, 'openai_api_key', None) or OPENAI_API_KEY,
            gemini_api_key=getattr(args, 'gemini_api_key', None) or GEMINI_API_KEY,
            interface_type="cli",
        )

    @classmethod
    def from_web_request(cls, request_data: dict) -> 'TranslationConfig':
        """Create config from web request data"""
        return cls(
            source_language=resolve_language(request_data.get('source_language'), DEFAULT_SOURCE_LANGUAGE),
            target_language=resolve_language(request_data.get('target_language'), DEFAULT_TARGET_LANGUAGE),
            style=request_data.get('style') or DEFAULT_STYLE,
            mode=request_data.get('mode') or 'batch',
            batch_model=request_data.get('model') or BATCH_MODEL,
            direct_provider=request_data.get('direct_provider') or DIRECT_PROVIDER,
            interface_type="web",
        )

    def to_dict(self) -> dict:
        """Convert to dictionary, without secrets"""
        data = asdict(self)
        data.pop('openai_api_key')
        data.pop('gemini_api_key')
        return data
