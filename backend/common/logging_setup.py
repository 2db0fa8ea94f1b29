import logging
import sys
import json
import re
from typing import Any, Dict, Optional
from logging.handlers import QueueHandler, QueueListener
from queue import Queue
from backend.config.admin_config import admin_config
from backend.common.constants import request_id_ctx

ENV = getattr(admin_config, "ENV", "dev").lower()

SENSITIVE_PATTERNS = [
    "password", "secret", "token", "authorization", "api_key",
    "signature", "key_secret", "pwd_hash",
]

# attributes every LogRecord carries , anything else came in through extra=
_RECORD_ATTRS = frozenset((
    "name", "msg", "args", "levelname", "levelno", "pathname", "filename",
    "module", "exc_info", "exc_text", "stack_info", "lineno", "funcName",
    "created", "msecs", "relativeCreated", "thread", "threadName", "processName",
    "process", "taskName", "message", "asctime",
))

# partially masked outside dev
_MASKED_FIELDS = ("email", "shipping_email", "user_public_id")


def sanitize_message_text(msg: str) -> str:
    """Redact values that follow a sensitive key inside a text message (best-effort)."""
    out = msg
    for p in SENSITIVE_PATTERNS:
        out = re.sub(rf'("{p}"\s*:\s*")[^"]+(")', r'\1[REDACTED]\2', out, flags=re.IGNORECASE)
        out = re.sub(rf'({p}\s*[=:]\s*)[\w\-\./]+', r'\1[REDACTED]', out, flags=re.IGNORECASE)
    return out


def _mask(value: Any) -> str:
    val = str(value)
    if "@" in val:
        local, _, domain = val.partition("@")
        return local[:2] + "***@" + domain
    if len(val) > 12:
        return val[:8] + "..." + val[-4:]
    return val[:4] + "..."


class JSONFormatter(logging.Formatter):
    """Structured JSON lines for staging / prod"""
    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "env": ENV,
            "service": admin_config.SERVICE_NAME,
        }

        rid = request_id_ctx.get()
        if rid:
            log_data["request_id"] = rid

        for k, v in record.__dict__.items():
            if k in _RECORD_ATTRS or k.startswith("_"):
                continue
            if k in SENSITIVE_PATTERNS:
                v = "[REDACTED]"
            elif k in _MASKED_FIELDS and v is not None:
                v = _mask(v)
            log_data[k] = v

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        log_data["message"] = sanitize_message_text(log_data.get("message", ""))
        return json.dumps(log_data, default=str)


class SecurityFilter(logging.Filter):
    """Redacts sensitive values in the rendered message before it reaches a handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.args:
            record.msg = sanitize_message_text(record.getMessage())
            record.args = ()
        else:
            record.msg = sanitize_message_text(str(record.msg))
        return True


_queue_listener: Optional[QueueListener] = None


def setup_logging():
    """Install a non-blocking queue based root logger. Called once from the app lifespan."""
    global _queue_listener

    if _queue_listener is not None:
        return logging.getLogger("pashmiya.app")

    log_level = logging.INFO if ENV in ("prod", "staging") else logging.DEBUG

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)

    q: Queue = Queue(-1)
    qh = QueueHandler(q)

    console_handler = logging.StreamHandler(sys.stdout)
    if ENV != "dev":
        console_handler.setFormatter(JSONFormatter())
        console_handler.addFilter(SecurityFilter())
    else:
        console_handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)8s] %(name)s:%(funcName)s:%(lineno)d | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))

    root.setLevel(log_level)
    root.addHandler(qh)

    _queue_listener = QueueListener(q, console_handler, respect_handler_level=True)
    _queue_listener.start()

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING if ENV != "dev" else logging.INFO)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    return logging.getLogger("pashmiya.app")


def shutdown_logging():
    global _queue_listener
    if _queue_listener is not None:
        _queue_listener.stop()
        _queue_listener = None


class ContextLogger:
    """stdlib logger wrapper that stamps the current request id onto every record."""

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, msg: str, *args, **kwargs):
        extra = dict(kwargs.pop("extra", None) or {})
        rid = request_id_ctx.get()
        if rid:
            extra.setdefault("request_id", rid)
        kwargs["extra"] = extra
        self._logger.log(level, msg, *args, **kwargs)

    def debug(self, msg: str, *args, **kwargs):
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        self._log(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs):
        kwargs.setdefault("exc_info", True)
        self._log(logging.ERROR, msg, *args, **kwargs)


def get_logger(name: str = "pashmiya.app") -> ContextLogger:
    return ContextLogger(name)
