"""
Logging utilities with sensitive data masking.

Bearer tokens travel on every claim and cart request, so the transport logs
through these helpers and never emits raw headers or bodies.

Usage:
    from storefront_offers.logging import log_request, log_response

    logger = logging.getLogger(__name__)
    log_request(logger, "POST", "/api/offers/claim", headers, body)
    log_response(logger, 200, body, duration_ms)
"""
from __future__ import annotations

import json
import logging
import re
import sys
from typing import Any, Dict, Optional, Sequence

MASK_PATTERN = "***REDACTED***"
MAX_LOG_MESSAGE_LENGTH = 10000
MAX_BODY_LOG_LENGTH = 500

SENSITIVE_FIELDS = frozenset({
    "password",
    "secret",
    "token",
    "access_token",
    "accessToken",
    "refresh_token",
    "refreshToken",
    "authorization",
    "auth",
    "credential",
    "credentials",
    "cookie",
})

SENSITIVE_HEADERS = frozenset({
    "authorization",
    "cookie",
    "set-cookie",
    "x-auth-token",
})

_INLINE_PATTERNS = [
    (re.compile(r"(Bearer\s+)[a-zA-Z0-9._~+/=-]+", re.IGNORECASE), r"\1***"),
    (re.compile(r"\beyJ[a-zA-Z0-9_-]+\.eyJ[a-zA-Z0-9_-]+\.[a-zA-Z0-9_-]+\b"), "***JWT***"),
    (re.compile(r"(https?://)[^:/\s]+:[^@/\s]+@"), r"\1***:***@"),
]


def mask_value(value: str, show_chars: int = 4) -> str:
    """Mask a sensitive value, showing only its first and last characters."""
    if not value or len(value) <= show_chars * 2:
        return MASK_PATTERN
    return f"{value[:show_chars]}...{value[-show_chars:]}"


def is_sensitive_key(key: str) -> bool:
    """Check if a key name indicates sensitive data."""
    key_lower = key.lower().replace("-", "_")
    return key in SENSITIVE_FIELDS or key_lower in SENSITIVE_FIELDS or any(
        sensitive in key_lower for sensitive in ("secret", "password", "token", "credential")
    )


def mask_sensitive_data(
    data: Any,
    additional_fields: Optional[Sequence[str]] = None,
    _depth: int = 0,
    _max_depth: int = 10,
) -> Any:
    """Recursively mask sensitive data in a data structure.

    Args:
        data: The data structure to mask (dict, list, or scalar)
        additional_fields: Additional field names to mask

    Returns:
        Copy of data with sensitive values masked
    """
    if _depth > _max_depth:
        return data

    if isinstance(data, dict):
        result = {}
        for key, value in data.items():
            if is_sensitive_key(str(key)) or (additional_fields and key in additional_fields):
                result[key] = MASK_PATTERN
            else:
                result[key] = mask_sensitive_data(value, additional_fields, _depth + 1, _max_depth)
        return result

    if isinstance(data, (list, tuple)):
        return type(data)(
            mask_sensitive_data(item, additional_fields, _depth + 1, _max_depth)
            for item in data
        )

    if isinstance(data, str):
        return _mask_inline_patterns(data)

    return data


def _mask_inline_patterns(text: str) -> str:
    if len(text) > MAX_LOG_MESSAGE_LENGTH:
        text = text[:MAX_LOG_MESSAGE_LENGTH] + "...[truncated]"
    for pattern, replacement in _INLINE_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def mask_headers(headers: Dict[str, str]) -> Dict[str, str]:
    """Mask sensitive HTTP headers."""
    return {
        key: MASK_PATTERN if key.lower() in SENSITIVE_HEADERS else value
        for key, value in headers.items()
    }


def _body_for_log(body: Any) -> str:
    body_str = json.dumps(mask_sensitive_data(body), default=str)
    if len(body_str) > MAX_BODY_LOG_LENGTH:
        body_str = body_str[:MAX_BODY_LOG_LENGTH] + "..."
    return body_str


def log_request(
    logger: logging.Logger,
    method: str,
    url: str,
    headers: Optional[Dict[str, str]] = None,
    body: Optional[Any] = None,
) -> None:
    """Log an outgoing HTTP request at DEBUG."""
    log_data: Dict[str, Any] = {
        "direction": "request",
        "method": method,
        "url": _mask_inline_patterns(url),
    }
    if headers:
        log_data["headers"] = mask_headers(headers)
    if body is not None:
        log_data["body"] = _body_for_log(body)

    logger.debug(f"HTTP {method} {log_data['url']}", extra={"data": log_data})


def log_response(
    logger: logging.Logger,
    status_code: int,
    body: Optional[Any] = None,
    duration_ms: Optional[float] = None,
    error: Optional[str] = None,
) -> None:
    """Log an HTTP response; DEBUG for success, WARNING for 4xx/5xx."""
    log_data: Dict[str, Any] = {
        "direction": "response",
        "status_code": status_code,
    }
    if duration_ms is not None:
        log_data["duration_ms"] = duration_ms
    if error:
        log_data["error"] = error
    if body is not None:
        log_data["body"] = _body_for_log(body)

    message = f"HTTP {status_code}"
    if duration_ms is not None:
        message += f" ({duration_ms:.0f}ms)"

    level = logging.DEBUG if status_code < 400 else logging.WARNING
    logger.log(level, message, extra={"data": log_data})


class MaskingFilter(logging.Filter):
    """Scrub bearer tokens out of fully formatted messages."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = _mask_inline_patterns(record.getMessage())
        record.args = None
        return True


def configure_logging(level: int = logging.INFO, stream: Any = None) -> logging.Logger:
    """Attach a masked stream handler to the package logger.

    Idempotent: calling it again re-points the existing handler instead of
    adding another.
    """
    package_logger = logging.getLogger("storefront_offers")
    package_logger.setLevel(level)

    for handler in package_logger.handlers:
        if getattr(handler, "_storefront_handler", False):
            handler.setStream(stream or sys.stderr)
            break
    else:
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        handler.addFilter(MaskingFilter())
        handler._storefront_handler = True  # type: ignore[attr-defined]
        package_logger.addHandler(handler)

    return package_logger
