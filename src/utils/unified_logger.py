"""
Unified logging system
Provides consistent logging across the CLI, the web server and the background orchestrator
"""
import sys
import os
from datetime import datetime
from typing import Optional, Dict, Any, Callable
from enum import Enum


class LogLevel(Enum):
    """Log levels with priority values"""
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50


class LogType(Enum):
    """Types of log messages for special handling"""
    GENERAL = "general"
    JOB_START = "job_start"
    JOB_END = "job_end"
    BATCH_SUBMITTED = "batch_submitted"
    BATCH_POLL = "batch_poll"
    PROGRESS = "progress"
    ERROR_DETAIL = "error_detail"


class Colors:
    """ANSI color codes for terminal output"""
    NO_COLOR = os.environ.get('NO_COLOR') is not None or not sys.stdout.isatty()

    YELLOW = '' if NO_COLOR else '\033[93m'
    WHITE = '' if NO_COLOR else '\033[97m'
    GRAY = '' if NO_COLOR else '\033[90m'
    GREEN = '' if NO_COLOR else '\033[92m'
    RED = '' if NO_COLOR else '\033[91m'
    ENDC = '' if NO_COLOR else '\033[0m'

    @classmethod
    def disable(cls):
        """Disable all colors"""
        cls.YELLOW = cls.WHITE = cls.GRAY = cls.GREEN = cls.RED = cls.ENDC = ''


class UnifiedLogger:
    """
    Unified logger that provides consistent logging across all interfaces
    """

    def __init__(self,
                 name: str = "BookTranslator",
                 console_output: bool = True,
                 enable_colors: bool = True,
                 min_level: LogLevel = LogLevel.INFO,
                 web_callback: Optional[Callable] = None,
                 storage_callback: Optional[Callable] = None):
        """
        Initialize the unified logger

        Args:
            name: Logger name/identifier
            console_output: Whether to output to console
            enable_colors: Whether to use colored output
            min_level: Minimum log level to display
            web_callback: Callback for web interface (WebSocket emission)
            storage_callback: Callback for storing logs (e.g., in memory)
        """
        self.name = name
        self.console_output = console_output
        self.enable_colors = enable_colors
        self.min_level = min_level
        self.web_callback = web_callback
        self.storage_callback = storage_callback

        if not enable_colors:
            Colors.disable()

    def _format_timestamp(self) -> str:
        """Format current timestamp"""
        return datetime.now().strftime("%H:%M:%S")

    def _format_console_message(self, level: LogLevel, message: str,
                                log_type: LogType = LogType.GENERAL,
                                data: Optional[Dict[str, Any]] = None) -> str:
        """Format message for console output"""
        timestamp = self._format_timestamp()

        level_colors = {
            LogLevel.DEBUG: Colors.GRAY,
            LogLevel.INFO: Colors.WHITE,
            LogLevel.WARNING: Colors.YELLOW,
            LogLevel.ERROR: Colors.RED,
            LogLevel.CRITICAL: Colors.RED
        }
        color = level_colors.get(level, Colors.WHITE)

        if log_type == LogType.PROGRESS:
            return self._format_progress(message, data or {})
        elif log_type == LogType.JOB_START:
            return self._format_job_start(message, data or {})
        elif log_type == LogType.JOB_END:
            return self._format_job_end(message, data or {})
        elif log_type == LogType.ERROR_DETAIL:
            return self._format_error_detail(message, data or {})
        else:
            level_str = f"[{level.name}]" if level != LogLevel.INFO else ""
            return f"{color}[{timestamp}] {level_str} {message}{Colors.ENDC}"

    def _format_progress(self, message: str, data: Dict[str, Any]) -> str:
        """Format progress summary with a simple bar"""
        percentage = data.get('progress', 0)
        status = data.get('status', '')

        bar_length = 30
        filled = int(bar_length * percentage / 100)
        bar = '█' * filled + '░' * (bar_length - filled)
        suffix = f" {status}" if status else ""
        return f"{Colors.WHITE}[{self._format_timestamp()}] [{bar}] {percentage}%{suffix} {message}{Colors.ENDC}"

    def _format_job_start(self, message: str, data: Dict[str, Any]) -> str:
        """Format job start message"""
        output = [f"{Colors.YELLOW}{'=' * 80}{Colors.ENDC}",
                  f"{Colors.YELLOW}TRANSLATION STARTED{Colors.ENDC}"]
        if 'file_name' in data:
            output.append(f"{Colors.WHITE}File: {data['file_name']} ({data.get('file_type', '?')}){Colors.ENDC}")
        output.append(f"{Colors.WHITE}Languages: {data.get('source_language', '?')} → "
                      f"{data.get('target_language', '?')}{Colors.ENDC}")
        output.append(f"{Colors.GRAY}Mode: {data.get('mode', '?')} | Style: {data.get('style', '?')}{Colors.ENDC}")
        if data.get('total_units'):
            output.append(f"{Colors.WHITE}Units: {data['total_units']}{Colors.ENDC}")
        if message:
            output.append(f"{Colors.GRAY}{message}{Colors.ENDC}")
        return '\n'.join(output)

    def _format_job_end(self, message: str, data: Dict[str, Any]) -> str:
        """Format job end message"""
        failed = data.get('status') == 'failed'
        color = Colors.RED if failed else Colors.GREEN
        output = [f"\n{color}{'TRANSLATION FAILED' if failed else 'TRANSLATION COMPLETE'}{Colors.ENDC}"]
        if data.get('artifact_key'):
            output.append(f"{Colors.WHITE}Output saved to: {data['artifact_key']}{Colors.ENDC}")
        if data.get('error'):
            output.append(f"{Colors.RED}Error: {data['error']}{Colors.ENDC}")
        if message:
            output.append(f"{Colors.GRAY}{message}{Colors.ENDC}")
        return '\n'.join(output)

    def _format_error_detail(self, message: str, data: Dict[str, Any]) -> str:
        """Format detailed error message"""
        output = [f"{Colors.RED}[{self._format_timestamp()}] ERROR: {message}{Colors.ENDC}"]
        if 'details' in data:
            output.append(f"{Colors.RED}Details: {data['details']}{Colors.ENDC}")
        if 'job_id' in data:
            output.append(f"{Colors.RED}Job: {data['job_id']}{Colors.ENDC}")
        return '\n'.join(output)

    def log(self, level: LogLevel, message: str,
            log_type: LogType = LogType.GENERAL,
            data: Optional[Dict[str, Any]] = None):
        """
        Main logging method

        Args:
            level: Log level
            message: Log message
            log_type: Type of log for special formatting
            data: Additional data for the log entry
        """
        if level.value < self.min_level.value:
            return

        if self.console_output:
            try:
                console_msg = self._format_console_message(level, message, log_type, data)
                if console_msg:
                    print(console_msg, flush=True)
            except UnicodeEncodeError:
                # Windows consoles (cp1252) cannot print every character
                safe_message = message.encode('ascii', 'replace').decode('ascii')
                print(f"[{self._format_timestamp()}] {safe_message}", flush=True)

        log_entry = {
            'timestamp': datetime.now().isoformat(),
            'level': level.name,
            'type': log_type.value,
            'message': message,
            'data': data or {}
        }

        # Web callback (for WebSocket)
        if self.web_callback:
            self.web_callback(log_entry)

        # Storage callback (for in-memory storage)
        if self.storage_callback:
            self.storage_callback(log_entry)

    # Convenience methods
    def debug(self, message: str, log_type: LogType = LogType.GENERAL, data: Optional[Dict[str, Any]] = None):
        self.log(LogLevel.DEBUG, message, log_type, data)

    def info(self, message: str, log_type: LogType = LogType.GENERAL, data: Optional[Dict[str, Any]] = None):
        self.log(LogLevel.INFO, message, log_type, data)

    def warning(self, message: str, log_type: LogType = LogType.GENERAL, data: Optional[Dict[str, Any]] = None):
        self.log(LogLevel.WARNING, message, log_type, data)

    def error(self, message: str, log_type: LogType = LogType.GENERAL, data: Optional[Dict[str, Any]] = None):
        self.log(LogLevel.ERROR, message, log_type, data)


# Global logger instance
_global_logger = None


def get_logger(name: str = "BookTranslator", **kwargs) -> UnifiedLogger:
    """
    Get or create the global logger instance

    Args:
        name: Logger name
        **kwargs: Additional arguments for UnifiedLogger

    Returns:
        UnifiedLogger instance
    """
    global _global_logger
    if _global_logger is None:
        _global_logger = UnifiedLogger(name, **kwargs)
    else:
        if 'web_callback' in kwargs:
            _global_logger.web_callback = kwargs['web_callback']
        if 'storage_callback' in kwargs:
            _global_logger.storage_callback = kwargs['storage_callback']
        if 'min_level' in kwargs:
            _global_logger.min_level = kwargs['min_level']
    return _global_logger


def setup_cli_logger(enable_colors: bool = True) -> UnifiedLogger:
    """Setup logger for CLI usage"""
    # Import here to avoid circular dependencies
    from src.config import DEBUG_MODE

    return get_logger(
        console_output=True,
        enable_colors=enable_colors,
        min_level=LogLevel.DEBUG if DEBUG_MODE else LogLevel.INFO
    )


def setup_web_logger(web_callback: Callable, storage_callback: Optional[Callable] = None) -> UnifiedLogger:
    """Setup logger for web interface usage"""
    # Import here to avoid circular dependencies
    from src.config import DEBUG_MODE

    return get_logger(
        console_output=True,
        enable_colors=True,
        min_level=LogLevel.DEBUG if DEBUG_MODE else LogLevel.INFO,
        web_callback=web_callback,
        storage_callback=storage_callback
    )
