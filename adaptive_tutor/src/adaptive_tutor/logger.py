"""
Structured Logging

Readable console logging for the engine and its API:
- Color-coded log levels
- Per-component icons (workflows, fallback chain, videos, ...)
- Pretty printing for data dictionaries attached to a message
"""

import json
import logging
import sys
from datetime import datetime
from pprint import pformat
from typing import Any, Dict, Optional


class Colors:
    """ANSI color codes for terminal output."""
    RESET = '\033[0m'
    BOLD = '\033[1m'

    DEBUG = '\033[36m'      # Cyan
    INFO = '\033[32m'       # Green
    WARNING = '\033[33m'    # Yellow
    ERROR = '\033[31m'      # Red
    CRITICAL = '\033[35m'   # Magenta

    KEY = '\033[93m'        # Bright Yellow
    VALUE = '\033[92m'      # Bright Green
    TIMESTAMP = '\033[90m'  # Dark Gray


class ColoredFormatter(logging.Formatter):
    """Formatter with level colors and component icons."""

    ICONS = {
        'DEBUG': '🔍',
        'INFO': 'ℹ️',
        'WARNING': '⚠️',
        'ERROR': '❌',
        'CRITICAL': '🚨',
    }

    # Keyed by the last dotted segment of the logger name
    COMPONENT_ICONS = {
        'orchestrator': '🧭',
        'response_composer': '🪜',
        'emotion_classifier': '💭',
        'content_personalizer': '📚',
        'exercise_module': '📝',
        'content_freshness': '🗞️',
        'video_recommender': '🎬',
        'text_generation': '🤖',
        'main': '🌐',
    }

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors and sys.stdout.isatty()

    def format(self, record: logging.LogRecord) -> str:
        icon = self.COMPONENT_ICONS.get(record.name.split('.')[-1], self.ICONS.get(record.levelname, '•'))
        timestamp = datetime.fromtimestamp(record.created).strftime('%H:%M:%S.%f')[:-3]

        if self.use_colors:
            level_color = {
                'DEBUG': Colors.DEBUG,
                'INFO': Colors.INFO,
                'WARNING': Colors.WARNING,
                'ERROR': Colors.ERROR,
                'CRITICAL': Colors.CRITICAL,
            }.get(record.levelname, Colors.RESET)
            reset = Colors.RESET
            timestamp_color = Colors.TIMESTAMP
            bold = Colors.BOLD
        else:
            level_color = reset = timestamp_color = bold = ''

        message = record.getMessage()
        stripped = message.strip()
        if stripped.startswith('{') or stripped.startswith('['):
            try:
                message = f"\n{pformat(json.loads(stripped), indent=2, width=100)}"
            except (json.JSONDecodeError, ValueError):
                pass

        formatted = (
            f"{timestamp_color}[{timestamp}]{reset} "
            f"{icon} {level_color}{record.levelname:8s}{reset} "
            f"{bold}{record.name}{reset} | {message}"
        )
        if record.exc_info:
            formatted += f"\n{self.formatException(record.exc_info)}"
        return formatted


class StructuredLogger:
    """Logger facade that appends a pretty-printed data dict to messages."""

    def __init__(self, name: str, logger: Optional[logging.Logger] = None):
        self.name = name
        self.logger = logger or logging.getLogger(name)

    def _format_data(self, data: Any, indent: int = 2) -> str:
        if isinstance(data, dict):
            lines = []
            for key, value in data.items():
                rendered = self._format_data(value, indent + 2) if isinstance(value, (dict, list)) else value
                lines.append(f"{' ' * indent}{key}: {rendered}")
            return "{\n" + "\n".join(lines) + f"\n{' ' * (indent - 2)}}}"
        if isinstance(data, list):
            shown = data[:3] if len(data) > 5 else data
            items = ",\n".join(f"{' ' * indent}{self._format_data(item, indent + 2)}" for item in shown)
            more = f"\n{' ' * indent}... ({len(data)} items total)" if len(data) > 5 else ""
            return f"[\n{items}{more}\n{' ' * (indent - 2)}]"
        return str(data)

    def _with_data(self, message: str, data: Optional[Dict[str, Any]]) -> str:
        return f"{message}\n{self._format_data(data)}" if data else message

    def debug(self, message: str, data: Optional[Dict[str, Any]] = None):
        self.logger.debug(self._with_data(message, data))

    def info(self, message: str, data: Optional[Dict[str, Any]] = None):
        self.logger.info(self._with_data(message, data))

    def warning(self, message: str, data: Optional[Dict[str, Any]] = None):
        self.logger.warning(self._with_data(message, data))

    def error(self, message: str, error: Optional[Exception] = None, data: Optional[Dict[str, Any]] = None):
        """Log an error, attaching the exception type and traceback when given."""
        error_info = f" Error: {type(error).__name__}: {error}" if error else ""
        self.logger.error(self._with_data(f"{message}{error_info}", data), exc_info=error)

    def success(self, message: str, data: Optional[Dict[str, Any]] = None):
        self.logger.info(self._with_data(f"✅ {message}", data))

    def request(self, method: str, path: str, user_id: Optional[str] = None, data: Optional[Dict[str, Any]] = None):
        request_data = {
            "method": method,
            "path": path,
            "user_id": user_id[:20] + "..." if user_id and len(user_id) > 20 else user_id,
        }
        if data:
            request_data.update(data)
        self.logger.info(self._with_data(f"📥 REQUEST: {method} {path}", request_data))

    def response(self, status: int, path: str, duration: Optional[float] = None, data: Optional[Dict[str, Any]] = None):
        response_data = {
            "status": status,
            "path": path,
            "duration_ms": f"{duration * 1000:.2f}" if duration is not None else None,
        }
        if data:
            response_data.update(data)
        self.logger.info(self._with_data(f"📤 RESPONSE: {status} {path}", response_data))


def setup_logging(level: int = logging.INFO, use_colors: bool = True) -> logging.Logger:
    """Install the colored console handler on the root logger."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(ColoredFormatter(use_colors=use_colors))

    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)

    # Suppress noisy loggers
    for noisy in ('asyncio', 'httpx', 'httpcore', 'openai'):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> StructuredLogger:
    return StructuredLogger(name, logging.getLogger(name))
