"""Logging utilities with JSON formatting, redaction, and request correlation.

Credentials travel through this service on every request (passwords in the
registration body, tokens and secret material in headers), so every handler
installed here carries a redaction filter. Redaction works on two levels:
known credential keys are masked wholesale, and any string value that looks
like a compact JWT is masked wherever it appears in the extras.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from logging import LogRecord
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterable, Mapping

from authgate.core.config import LogSettings, settings

REDACTED = "[REDACTED]"

_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

# Structured fields that must never reach a log sink in clear text
SENSITIVE_KEYS_DEFAULT: frozenset[str] = frozenset(
    {
        "password",
        "token",
        "authorization",
        "secret",
        "jwt_secret",
        "service_secret",
        "email",
        "cookie",
        "set-cookie",
        "api_key",
        "x-api-key",
        "database_url",
    }
)

# header.payload.signature, base64url; JOSE headers always start with "eyJ"
_JWT_PATTERN = re.compile(r"eyJ[\w-]*\.[\w-]*\.[\w-]*")

# Attributes every LogRecord carries; anything else on a record is an extra.
_RECORD_ATTRS = frozenset(
    LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}


def set_request_id(request_id: str | None) -> None:
    _request_id_var.set(request_id)


def get_request_id() -> str | None:
    return _request_id_var.get()


def clear_request_id() -> None:
    _request_id_var.set(None)


def hash_identity(value: str) -> str:
    """Short, stable fingerprint of an identity key for log correlation.

    Usernames are user-supplied and may be personal data, so logs carry this
    digest instead of the raw value.
    """

    return hashlib.sha256(value.encode("utf-8", errors="ignore")).hexdigest()[:16]


class Redactor:
    """Masks credential-bearing keys and JWT-shaped strings.

    Args:
        sensitive_keys: Case-insensitive keys whose values are always masked.
    """

    def __init__(self, sensitive_keys: Iterable[str] | None = None) -> None:
        keys = SENSITIVE_KEYS_DEFAULT if sensitive_keys is None else sensitive_keys
        self.sensitive_keys = frozenset(k.lower() for k in keys)

    def is_sensitive(self, key: str) -> bool:
        return key.lower() in self.sensitive_keys

    def scrub(self, value: Any) -> Any:
        if isinstance(value, str):
            return _JWT_PATTERN.sub(REDACTED, value)
        if isinstance(value, Mapping):
            return {
                k: REDACTED if self.is_sensitive(str(k)) else self.scrub(v)
                for k, v in value.items()
            }
        if isinstance(value, (list, tuple)):
            return type(value)(self.scrub(v) for v in value)
        return value

    def extras(self, record: LogRecord) -> dict[str, Any]:
        """Return the record's extra fields with sensitive values masked."""

        return {
            key: REDACTED if self.is_sensitive(key) else self.scrub(value)
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }


class RequestIdFilter(logging.Filter):
    """Attach request_id from context when absent on the record."""

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        if getattr(record, "request_id", None) is None:
            request_id = get_request_id()
            if request_id:
                record.request_id = request_id
        return True


class SensitiveDataFilter(logging.Filter):
    """Redact extras in place so every formatter sees masked values."""

    def __init__(self, sensitive_keys: Iterable[str] | None = None) -> None:
        super().__init__()
        self.redactor = Redactor(sensitive_keys)

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        for key, value in self.redactor.extras(record).items():
            setattr(record, key, value)
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per record: fixed envelope first, then masked extras."""

    def __init__(
        self,
        *,
        sensitive_keys: Iterable[str] | None = None,
        ensure_ascii: bool = True,
    ) -> None:
        super().__init__()
        self.redactor = Redactor(sensitive_keys)
        self.ensure_ascii = ensure_ascii

    def format(self, record: LogRecord) -> str:  # noqa: D401
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = getattr(record, "request_id", None) or get_request_id()
        if request_id:
            payload["request_id"] = request_id

        payload.update(self.redactor.extras(record))

        exc_type = record.exc_info[0] if record.exc_info else None
        if exc_type is not None:
            payload["exc_type"] = exc_type.__name__

        return json.dumps(payload, default=str, ensure_ascii=self.ensure_ascii)


def _build_handler(cfg: LogSettings) -> logging.Handler:
    if cfg.output != "file":
        return logging.StreamHandler(sys.stdout)

    file_path = Path(cfg.file_path or "logs/authgate.log")
    file_path.parent.mkdir(parents=True, exist_ok=True)
    if not cfg.max_bytes:
        return logging.FileHandler(file_path, encoding="utf-8")
    return RotatingFileHandler(
        file_path,
        maxBytes=cfg.max_bytes,
        backupCount=cfg.backup_count,
        encoding="utf-8",
    )


def configure_logging(log_settings: LogSettings | None = None) -> None:
    """Install a single redacting handler on the root logger.

    Args:
        log_settings: Optional log settings; defaults to global settings if omitted.
    """

    cfg = log_settings or settings.log

    handler = _build_handler(cfg)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())
    if cfg.format == "plain":
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
    else:
        handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, cfg.level.upper(), logging.INFO))

    # Avoid double logging from uvicorn if it gets re-configured
    logging.getLogger("uvicorn").propagate = False
    logging.getLogger("uvicorn.access").propagate = False
