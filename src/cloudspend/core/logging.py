"""Logging configuration for cloudspend"""

import json
import logging
import logging.handlers
import re
import sys
import threading
import traceback
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional


class StructuredFormatter(logging.Formatter):
    """JSON structured logging formatter"""

    EXTRA_FIELDS = ('task', 'budget', 'provider', 'service', 'channel', 'operation', 'duration')

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON"""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "thread_name": record.threadName,
        }

        for name in self.EXTRA_FIELDS:
            if hasattr(record, name):
                log_data[name] = getattr(record, name)

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': traceback.format_exception(*record.exc_info)
            }

        return json.dumps(log_data, default=str)


class SecurityFilter(logging.Filter):
    """Filter to redact sensitive information from logs"""

    SENSITIVE_PATTERNS = ['password', 'secret', 'token', 'webhook', 'api_key']
    SLACK_WEBHOOK = re.compile(r'https://hooks\.slack\.com/services/[^\s"\']+')

    def filter(self, record: logging.LogRecord) -> bool:
        """Redact sensitive information from log records"""
        if not isinstance(record.msg, str):
            return True

        message = record.msg
        if self.SLACK_WEBHOOK.search(message):
            message = self.SLACK_WEBHOOK.sub('https://hooks.slack.com/services/***REDACTED***', message)

        lowered = message.lower()
        for pattern in self.SENSITIVE_PATTERNS:
            if pattern in lowered:
                message = self._redact_message(message, pattern)

        record.msg = message
        return True

    def _redact_message(self, message: str, pattern: str) -> str:
        """Redact sensitive values in message"""
        patterns = [
            rf'{pattern}["\']?\s*[:=]\s*["\']?([^"\'\s,}}]+)',
            rf'"?{pattern}"?\s*:\s*"([^"]+)"',
        ]

        for p in patterns:
            message = re.sub(p, f'{pattern}=***REDACTED***', message, flags=re.IGNORECASE)

        return message


class PerformanceLogger:
    """Logger for analysis timings"""

    def __init__(self):
        self.logger = logging.getLogger('cloudspend.performance')
        self._timers = {}
        self._lock = threading.Lock()

    @contextmanager
    def timer(self, operation: str, **kwargs):
        """Context manager to time operations"""
        start_time = datetime.now(timezone.utc)
        timer_id = str(uuid.uuid4())

        with self._lock:
            self._timers[timer_id] = {'operation': operation, 'start_time': start_time, **kwargs}

        try:
            yield timer_id
        finally:
            duration = (datetime.now(timezone.utc) - start_time).total_seconds()

            with self._lock:
                self._timers.pop(timer_id, None)

            self.logger.debug(
                f"Performance: {operation} completed in {duration:.3f}s",
                extra={'operation': operation, 'duration': duration}
            )


class LoggerManager:
    """Centralized logger management"""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.loggers = {}
        self.performance_logger = PerformanceLogger()

    def setup_logging(self,
                      level: str = "INFO",
                      log_file: Optional[Path] = None,
                      structured: bool = False,
                      console: bool = True,
                      max_bytes: int = 10485760,
                      backup_count: int = 5,
                      handler: Optional[logging.Handler] = None):
        """Setup application-wide logging configuration"""
        root_logger = logging.getLogger()
        root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
        root_logger.handlers = []

        formatter = StructuredFormatter() if structured else logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

        if handler is not None:
            # e.g. a RichHandler supplied by the CLI
            handler.addFilter(SecurityFilter())
            root_logger.addHandler(handler)
        elif console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(formatter)
            console_handler.addFilter(SecurityFilter())
            root_logger.addHandler(console_handler)

        if log_file:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=max_bytes,
                backupCount=backup_count
            )
            file_handler.setFormatter(formatter)
            file_handler.addFilter(SecurityFilter())
            root_logger.addHandler(file_handler)

        logging.getLogger('httpx').setLevel(logging.WARNING)
        logging.getLogger('httpcore').setLevel(logging.WARNING)

    def get_logger(self, name: str) -> logging.Logger:
        """Get or create a logger"""
        if name not in self.loggers:
            self.loggers[name] = logging.getLogger(name)
        return self.loggers[name]


# Global logger manager instance
logger_manager = LoggerManager()


def setup_logging(**kwargs):
    """Setup logging for the application"""
    logger_manager.setup_logging(**kwargs)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance"""
    return logger_manager.get_logger(name)


def get_performance_logger() -> PerformanceLogger:
    """Get performance logger instance"""
    return logger_manager.performance_logger
