"""
Logging setup for the storefront API and the terminal client.

Console output only; the hosting platform collects stdout. Bearer tokens,
API keys and emails are masked when LOG_MASK_SECRETS is enabled, since the
admin gate logs who was admitted or rejected.
"""

import logging
import re
from typing import List, Optional, Pattern, Tuple

from .config import Settings, load_settings


class SecretMaskingFilter(logging.Filter):
    """Replaces sensitive values in log records with [REDACTED_*] markers."""

    PATTERNS: List[Tuple[Pattern, str]] = [
        (re.compile(r'(Bearer\s+)([A-Za-z0-9_\-\.]+)', re.IGNORECASE), r'\1[REDACTED_BEARER_TOKEN]'),
        (re.compile(r'(api[_-]?key["\']?\s*[:=]\s*["\']?)([A-Za-z0-9_\-\.]{20,})(["\']?)', re.IGNORECASE), r'\1[REDACTED_API_KEY]\3'),
        (re.compile(r'(token["\']?\s*[:=]\s*["\']?)([A-Za-z0-9_\-\.:]{20,})(["\']?)', re.IGNORECASE), r'\1[REDACTED_TOKEN]\3'),
        (re.compile(r'\b([a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,})\b'), '[REDACTED_EMAIL]'),
    ]

    def _mask(self, text: str) -> str:
        for pattern, replacement in self.PATTERNS:
            text = pattern.sub(replacement, text)
        return text

    def filter(self, record: logging.LogRecord) -> bool:
        if record.msg:
            record.msg = self._mask(str(record.msg))
        if record.args:
            if isinstance(record.args, dict):
                record.args = {k: self._mask(v) if isinstance(v, str) else v for k, v in record.args.items()}
            else:
                record.args = tuple(self._mask(a) if isinstance(a, str) else a for a in record.args)
        return True


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Configure the root logger once at startup (API or CLI)."""
    settings = settings or load_settings()
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    formatter = logging.Formatter(
        fmt='%(asctime)s | %(name)-25s | %(levelname)-8s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)
    if settings.log_mask_secrets:
        console_handler.addFilter(SecretMaskingFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.addHandler(console_handler)

    logging.info(f"Logging initialized: Level={settings.log_level}, Masking={'ENABLED' if settings.log_mask_secrets else 'DISABLED'}")
