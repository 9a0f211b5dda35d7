from __future__ import annotations

import logging
from typing import Iterable

from shared.constants import Environment
from shared.logging import configure_logging as _shared_configure_logging
from shared.logging import is_configured

from .config import settings


class RedactingFilter(logging.Filter):
    """Blank out whole messages that mention a sensitive pattern.

    The JSON formatter only redacts by key; this catches secrets that were
    interpolated into the message text itself.
    """

    def __init__(self, patterns: Iterable[str]):
        super().__init__()
        self.patterns = [p.lower() for p in patterns]

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        msg = record.getMessage().lower()
        if any(p in msg for p in self.patterns):
            record.msg = "[REDACTED SENSITIVE LOG CONTENT]"
            record.args = ()
        return True


def configure_logging(force: bool = False):
    if is_configured() and not force:
        return logging.getLogger()
    env = Environment.parse(settings.app_environment)
    root = _shared_configure_logging(
        service=settings.otel_service_name,
        level=env.effective_log_level(settings.app_log_level),
        environment=env.value,
        redaction_patterns=settings.app_log_redaction_patterns,
    )
    # Attach redaction filter at root so it applies to all handlers
    for h in root.handlers:
        h.addFilter(RedactingFilter(settings.app_log_redaction_patterns))
    return root


def get_logger(name: str) -> logging.Logger:
    """Get preconfigured structured logger"""
    logger = logging.getLogger(name)
    logger.propagate = True
    return logger
