"""Structured logging configuration."""

import logging
import sys
import time
from typing import Any, Optional
from datetime import datetime, timezone
from contextlib import contextmanager

import structlog
from structlog.stdlib import LoggerFactory

from .config import settings


def configure_logging() -> None:
    """Configure structured logging for the application."""

    # Configure structlog
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if settings.environment == "production"
            else structlog.dev.ConsoleRenderer(colors=True),
        ],
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Configure standard library logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level.upper()),
    )

    # Set specific logger levels
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.log_level == "DEBUG" else logging.WARNING
    )
    logging.getLogger("audit").setLevel(logging.INFO)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return structlog.get_logger(name)



class PerformanceLogger:
    """Logger for tracking performance metrics."""

    def __init__(self, logger_name: str = "performance"):
        self.logger = get_logger(logger_name)

    @contextmanager
    def log_operation_time(
        self,
        operation: str,
        **context: Any
    ):
        """Context manager to log operation execution time.

        Args:
            operation: Name of the operation being timed
            **context: Additional context for logging
        """
        start_time = time.time()
        start_timestamp = datetime.now(timezone.utc)

        self.logger.debug(
            "Operation started",
            operation=operation,
            start_time=start_timestamp.isoformat(),
            **context
        )

        try:
            yield

            duration = time.time() - start_time

            self.logger.info(
                "Operation completed",
                operation=operation,
                duration_seconds=round(duration, 3),
                **context
            )

        except Exception as e:
            duration = time.time() - start_time

            self.logger.warning(
                "Operation failed",
                operation=operation,
                duration_seconds=round(duration, 3),
                error=str(e),
                error_type=type(e).__name__,
                **context
            )
            raise


class AuditLogger:
    """Logger for lifecycle transitions and admin actions on applications."""

    def __init__(self, logger_name: str = "audit"):
        self.logger = get_logger(logger_name)

    def log_transition(
        self,
        user_id: str,
        old_status: str,
        new_status: str,
        trigger: str,
        actor: Optional[str] = None,
        **context: Any
    ):
        """Log a public status transition."""
        self.logger.info(
            "Application status transition",
            user_id=user_id,
            old_status=old_status,
            new_status=new_status,
            trigger=trigger,
            actor=actor,
            **context
        )

    def log_admin_action(
        self,
        user_id: str,
        action: str,
        actor: Optional[str] = None,
        **context: Any
    ):
        """Log an admin-owned data change that does not move public status."""
        self.logger.info(
            "Admin action recorded",
            user_id=user_id,
            action=action,
            actor=actor,
            **context
        )


# Global logger instances
performance_logger = PerformanceLogger()
audit_logger = AuditLogger()
