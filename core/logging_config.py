"""
Centralized logging configuration for the enterprise workflow builder.

Features:
- Colored console logging with a color per log level
- Structured formatting with timestamps and logger names
- LLM request/response logging between dividers, tagged with the pipeline stage
- Configurable log levels and output formats
"""

import logging
import re
import sys
from datetime import datetime
from typing import Optional, Union
from pathlib import Path


class Colors:
    """ANSI color codes for terminal output"""
    RESET = "\033[0m"
    BOLD = "\033[1m"
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    MAGENTA = "\033[95m"
    CYAN = "\033[96m"
    WHITE = "\033[97m"
    GRAY = "\033[90m"


_TIMESTAMP_PATTERN = re.compile(r'(\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}(?:\.\d{2,3})?)')


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name, timestamp and logger name"""

    COLORS = {
        logging.DEBUG: Colors.GRAY,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.MAGENTA,
    }

    def format(self, record):
        formatted = super().format(record)

        level_color = self.COLORS.get(record.levelno, Colors.WHITE)
        formatted = formatted.replace(
            record.levelname,
            f"{level_color}{record.levelname}{Colors.RESET}",
            1
        )
        formatted = _TIMESTAMP_PATTERN.sub(f"{Colors.CYAN}\\1{Colors.RESET}", formatted, count=1)

        if record.name:
            formatted = formatted.replace(
                f"{record.name} - ",
                f"{Colors.BLUE}{record.name}{Colors.RESET} - ",
                1
            )

        return formatted


class LLMLogger:
    """Specialized logger for LLM input/output logging"""

    def __init__(self, logger: logging.Logger, preview_chars: int = 500):
        self.logger = logger
        self.preview_chars = preview_chars
        self.divider_length = 60

    def _preview(self, text: str) -> str:
        if len(text) > self.preview_chars:
            return f"{text[:self.preview_chars]}... [{len(text)} chars]"
        return text

    def log_api_call_start(self, endpoint: str, method: str = "POST", request_id: Optional[str] = None):
        """Log the start of an HTTP call with a divider"""
        divider = "=" * 80
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        self.logger.info(f"{Colors.MAGENTA}{divider}{Colors.RESET}")
        self.logger.info(f"{Colors.MAGENTA}API CALL START - {method} {endpoint} "
                         f"[{request_id or '-'}] at {timestamp}{Colors.RESET}")

    def log_api_call_end(self, endpoint: str, method: str = "POST", request_id: Optional[str] = None,
                         duration_ms: Optional[float] = None, status: str = "completed"):
        """Log the end of an HTTP call with timing"""
        divider = "=" * 80
        duration = f" in {duration_ms:.2f}ms" if duration_ms is not None else ""
        self.logger.info(f"{Colors.MAGENTA}API CALL END - {method} {endpoint} "
                         f"[{request_id or '-'}] {status}{duration}{Colors.RESET}")
        self.logger.info(f"{Colors.MAGENTA}{divider}{Colors.RESET}")

    def log_llm_request(self, model: str, prompt: str, request_id: Optional[str] = None,
                        stage: Optional[str] = None, max_tokens: Optional[int] = None):
        """Log LLM request details"""
        divider = "-" * self.divider_length
        self.logger.info(f"{Colors.CYAN}{divider}{Colors.RESET}")
        self.logger.info(f"{Colors.CYAN}LLM REQUEST - {model} stage={stage or '-'} "
                         f"max_tokens={max_tokens or '-'} [{request_id or '-'}]{Colors.RESET}")
        self.logger.debug(f"{Colors.WHITE}{self._preview(prompt)}{Colors.RESET}")

    def log_llm_response(self, model: str, response: str, request_id: Optional[str] = None,
                         duration_ms: Optional[float] = None, stop_reason: Optional[str] = None):
        """Log LLM response details"""
        duration = f" in {duration_ms:.2f}ms" if duration_ms is not None else ""
        self.logger.info(f"{Colors.CYAN}LLM RESPONSE - {model} [{request_id or '-'}] "
                         f"{len(response)} chars, stop_reason={stop_reason or '-'}{duration}{Colors.RESET}")
        self.logger.debug(f"{Colors.WHITE}{self._preview(response)}{Colors.RESET}")
        self.logger.info(f"{Colors.CYAN}{'-' * self.divider_length}{Colors.RESET}")

    def log_llm_error(self, model: str, error: str, request_id: Optional[str] = None):
        """Log LLM error details"""
        divider = "-" * self.divider_length
        self.logger.error(f"{Colors.RED}LLM ERROR - {model} [{request_id or '-'}]: {error}{Colors.RESET}")
        self.logger.error(f"{Colors.RED}{divider}{Colors.RESET}")


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "detailed",
    log_file: Optional[Union[str, Path]] = None,
    enable_colors: bool = True
) -> logging.Logger:
    """
    Set up centralized logging configuration

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format style ('simple', 'detailed', 'json')
        log_file: Optional file path for logging
        enable_colors: Whether to enable colored output (terminal only)

    Returns:
        Configured root logger
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)

    use_colors = enable_colors and sys.stdout.isatty()
    formatter_class = ColoredFormatter if use_colors else logging.Formatter

    if log_format == "simple":
        formatter = formatter_class("%(levelname)s - %(message)s")
    elif log_format == "json":
        formatter = logging.Formatter(
            '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}'
        )
    else:
        formatter = formatter_class(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))
        root_logger.addHandler(file_handler)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the specified name"""
    return logging.getLogger(name)


def get_llm_logger(name: str) -> LLMLogger:
    """Get an LLM logger for the specified logger name"""
    return LLMLogger(logging.getLogger(name))


def configure_logging_from_settings(log_format: str = "detailed"):
    """Configure logging based on application settings"""
    from core.config import settings

    log_level = "DEBUG" if settings.debug else settings.log_level
    setup_logging(log_level=log_level, log_format=log_format, enable_colors=True)

    get_logger(__name__).info(f"Logging configured with level: {log_level}, format: {log_format}")
