#!/usr/bin/env python3
"""
Labeling session service for the weld-defect dataset tool.
Flask application exposing labeling sessions to the browser front-end.
"""

from __future__ import annotations

import argparse
import logging
from typing import Optional

from flask import Flask, jsonify

from .api import create_labeling_api
from .clients.custom_defects import CustomDefectsClient
from .config import Settings
from .logging_setup import install_flask_request_hooks, setup_logging
from .services.active_learning_service import ActiveLearningService
from .services.defect_registry import DefectTypeRegistryService
from .services.sample_store import HttpSampleStore
from .services.session_registry import SessionRegistry
from .services.upload_service import ImageUploadService

logger = logging.getLogger("weld_labeling.app")


def create_app(settings: Optional[Settings] = None, client: Optional[CustomDefectsClient] = None) -> Flask:
  settings = settings or Settings.from_env()
  client = client or CustomDefectsClient(base_url=settings.api_url, timeout=settings.api_timeout_s)

  app = Flask(__name__)
  app.config["MAX_CONTENT_LENGTH"] = settings.max_upload_bytes + 1024 * 1024
  app.config["WELD_LABELING_SETTINGS"] = settings
  install_flask_request_hooks(app)

  api_bp = create_labeling_api(
    registry=DefectTypeRegistryService(client),
    sample_store=HttpSampleStore(client),
    queue=ActiveLearningService(client),
    uploads=ImageUploadService(max_bytes=settings.max_upload_bytes),
    sessions=SessionRegistry(max_sessions=settings.max_sessions, idle_ttl_s=settings.session_ttl_s),
  )
  app.register_blueprint(api_bp)

  @app.route("/healthz")
  def healthz():
    return jsonify({"ok": True, "backend": settings.api_url})

  return app


def main(argv=None) -> None:
  parser = argparse.ArgumentParser(description="Weld-defect dataset labeling service")
  parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
  parser.add_argument("--port", type=int, default=5000, help="Port to bind to")
  parser.add_argument("--debug", action="store_true", help="Enable debug mode")
  parser.add_argument("--api-url", default=None, help="Inspection backend base URL (overrides WELD_LABELING_API_URL)")
  parser.add_argument("--api-timeout", type=float, default=None, help="Backend request timeout in seconds")
  args = parser.parse_args(argv)

  setup_logging(app_debug=bool(args.debug))
  settings = Settings.from_env().with_overrides(api_url=args.api_url, api_timeout_s=args.api_timeout)
  app = create_app(settings)
  logger.info("Weld labeling service")
  logger.info("%s", "=" * 40)
  logger.info("Starting web server at http://%s:%s (backend %s)", args.host, args.port, settings.api_url)
  app.run(host=args.host, port=args.port, debug=args.debug)


if __name__ == "__main__":
  main()
