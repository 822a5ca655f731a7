import contextvars
import logging
import logging.config
import os
import sys
import time
import uuid
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

_request_id_ctx: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")


class RequestContextFilter(logging.Filter):
  """Injects the request id into log records so the format never raises KeyError."""

  def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
    setattr(record, "request_id", _request_id_ctx.get())
    return True


def generate_request_id(header_value: str | None = None) -> str:
  if header_value:
    return header_value.strip()[:128] or str(uuid.uuid4())
  return str(uuid.uuid4())


def set_request_id(request_id: str) -> None:
  _request_id_ctx.set(request_id)


def _build_text_formatter() -> logging.Formatter:
  fmt = "%(asctime)s %(levelname)s %(name)s:%(funcName)s [req=%(request_id)s] - %(message)s"
  datefmt = "%Y-%m-%dT%H:%M:%S%z"
  return logging.Formatter(fmt=fmt, datefmt=datefmt)


def _build_json_formatter() -> logging.Formatter:
  return jsonlogger.JsonFormatter(
    '%(asctime)s %(levelname)s %(name)s %(funcName)s %(message)s %(request_id)s',
    json_ensure_ascii=False,
  )


def setup_logging(app_debug: bool | None = None) -> None:
  """Configure root logging for the labeling service.

	Environment variables:
	- WELD_LABELING_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default INFO; DEBUG if app_debug True)
	- WELD_LABELING_LOG_JSON: 1 to enable JSON logs (default 0)
	- WELD_LABELING_LOG_FILE: path to log file (optional; stdout by default)
	"""
  level_name = os.getenv("WELD_LABELING_LOG_LEVEL")
  if not level_name and app_debug:
    level_name = "DEBUG"
  level = getattr(logging, (level_name or "INFO").upper(), logging.INFO)

  use_json = os.getenv("WELD_LABELING_LOG_JSON", "0").strip() in ("1", "true", "TRUE")
  log_file = os.getenv("WELD_LABELING_LOG_FILE")

  filters: Dict[str, Dict[str, Any]] = {
    "request_context": {
      "()": RequestContextFilter
    },
  }
  if use_json:
    formatters: Dict[str, Dict[str, Any]] = {"json": {"()": _build_json_formatter}}
    formatter_name = "json"
  else:
    formatters = {"text": {"()": _build_text_formatter}}
    formatter_name = "text"

  handlers: Dict[str, Dict[str, Any]] = {}
  if log_file:
    handlers["file"] = {
      "class": "logging.handlers.RotatingFileHandler",
      "filename": log_file,
      "maxBytes": 10 * 1024 * 1024,
      "backupCount": 3,
      "formatter": formatter_name,
      "filters": ["request_context"],
      "encoding": "utf-8",
    }
    root_handlers = ["file"]
  else:
    handlers["stdout"] = {
      "class": "logging.StreamHandler",
      "stream": sys.stdout,
      "formatter": formatter_name,
      "filters": ["request_context"],
    }
    root_handlers = ["stdout"]

  config: Dict[str, Any] = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": filters,
    "formatters": formatters,
    "handlers": handlers,
    "root": {
      "level": level,
      "handlers": root_handlers,
    },
    "loggers": {
      "werkzeug": {
        "level": "WARNING" if level > logging.DEBUG else "INFO"
      },
      # connection pool chatter from requests
      "urllib3": {
        "level": "WARNING"
      },
    },
  }

  logging.config.dictConfig(config)


def install_flask_request_hooks(app) -> None:
  """Attach Flask hooks for request correlation and access logging.

	- Assigns a request_id at the start of each request (from X-Request-Id or generated)
	- Logs a concise access line at INFO on completion
	"""
  from flask import g, request

  access_log = logging.getLogger("weld_labeling.access")

  @app.before_request
  def _start_request_timer():
    g._start_time = time.perf_counter()
    set_request_id(generate_request_id(request.headers.get("X-Request-Id")))

  @app.after_request
  def _log_access(response):
    start = getattr(g, "_start_time", None)
    duration_ms = int((time.perf_counter() - start) * 1000) if start is not None else None
    access_log.info(
      "%s %s -> %s (%sms)",
      request.method,
      request.full_path if request.query_string else request.path,
      response.status_code,
      str(duration_ms) if duration_ms is not None else "-",
    )
    response.headers.setdefault("X-Request-Id", _request_id_ctx.get())
    return response
