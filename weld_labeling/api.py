from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from flask import Blueprint, jsonify, request
from pydantic import ValidationError

from .clients.custom_defects import BackendError
from .core.errors import CommitFailed, InvalidTransition, LabelingError, RegistryReloadFailed
from .core.geometry import BoxDrawer, Viewport
from .core.labeling_session import LabelingSession, SessionMode
from .dto import (
  AcquireSuggestionRequest,
  AddAnnotationRequest,
  CreateSessionRequest,
  DrawAnnotationRequest,
  ErrorResponse,
  SelectClassRequest,
  SelectModeRequest,
)
from .services.active_learning_service import ActiveLearningService
from .services.defect_registry import DefectTypeRegistryService
from .services.sample_store import HttpSampleStore
from .services.session_registry import SessionRegistry
from .services.upload_service import ImageRejected, ImageUploadService


def _error(code: str, message: str, status: int, details: Optional[Dict[str, Any]] = None):
  err = ErrorResponse(code=code, message=message, details=details)
  return jsonify(err.model_dump()), status


def _labeling_error(e: LabelingError):
  if isinstance(e, InvalidTransition):
    return _error(e.code, str(e), 409)
  if isinstance(e, CommitFailed):
    return _error(e.code, "Failed to save annotations", 502, {"index": e.index, "error": str(e.cause)})
  if isinstance(e, RegistryReloadFailed):
    return _error(e.code, str(e), 502)
  return _error(e.code, str(e), 422)


def create_labeling_api(registry: DefectTypeRegistryService,
                        sample_store: HttpSampleStore,
                        queue: ActiveLearningService,
                        uploads: ImageUploadService,
                        sessions: Optional[SessionRegistry] = None,
                        name: str = "labeling_api") -> Blueprint:
  bp = Blueprint(name, __name__)
  log = logging.getLogger(f"weld_labeling.api.{name}")
  # One session per labeling surface, memory-only
  sessions = sessions if sessions is not None else SessionRegistry()

  @bp.before_request
  def _bp_log_request():
    log.debug("request %s %s qs=%s", request.method, request.path, request.query_string)

  def _payload(session_key: str, session: LabelingSession, **extra) -> Dict[str, Any]:
    body: Dict[str, Any] = {
      "session_key": session_key,
      "session": session.snapshot().to_dict(),
      "selected_class_id": session.selected_class_id,
    }
    body.update(extra)
    return body

  # -------------------- defect types & suggestions --------------------

  @bp.route("/api/defect-types", methods=["GET"])
  def api_list_defect_types():
    active_only = str(request.args.get("active_only", "1")).lower() in ("1", "true", "yes")
    try:
      types = registry.list(active_only=active_only)
      items = [dict(t.model_dump(), is_ready=t.is_ready, progress=t.progress) for t in types]
      return jsonify({"defect_types": items, "stats": registry.stats()})
    except RegistryReloadFailed as e:
      return _error("defect_types_error", "Failed to load defect types", 502, {"error": str(e)})

  @bp.route("/api/defect-types/reload", methods=["POST"])
  def api_reload_defect_types():
    try:
      types = registry.reload()
    except RegistryReloadFailed as e:
      return _error("defect_types_error", "Failed to reload defect types", 502, {"error": str(e)})
    for s in sessions.values():
      s.sync_selection(types)
    return jsonify({"reloaded": len(types), "stats": registry.stats()})

  @bp.route("/api/stats", methods=["GET"])
  def api_stats():
    try:
      return jsonify({"labeling": registry.stats(), "backend": registry.backend_stats().model_dump()})
    except RegistryReloadFailed as e:
      return _error("stats_error", "Failed to load statistics", 502, {"error": str(e)})

  @bp.route("/api/suggestions", methods=["GET"])
  def api_list_suggestions():
    try:
      limit = int(request.args.get("limit", "50"))
    except ValueError as e:
      return _error("bad_request", "limit must be an integer", 400, {"error": str(e)})
    try:
      suggestions = queue.list_suggestions(limit=limit)
      return jsonify([dict(s.model_dump(), image_id=s.image_id) for s in suggestions])
    except BackendError as e:
      return _error("suggestions_error", "Failed to load suggestions", 502, {"error": str(e), "detail": e.detail})

  # -------------------- sessions --------------------

  @bp.route("/api/sessions", methods=["POST"])
  def api_create_session():
    try:
      req = CreateSessionRequest.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
      return _error("bad_request", "Invalid session payload", 400, {"error": str(e)})
    session = LabelingSession(sample_store, registry, queue, mode=SessionMode(req.mode))
    try:
      session.sync_selection(registry.list(active_only=True))
    except RegistryReloadFailed:
      log.warning("defect types unavailable; session starts without a selected class", exc_info=True)
    key = sessions.add(session)
    log.info("session created key=%s mode=%s", key, req.mode)
    return jsonify(_payload(key, session)), 201

  @bp.route("/api/sessions/<session_key>", methods=["GET"])
  def api_get_session(session_key: str):
    session = sessions.get(session_key)
    if session is None:
      return _error("not_found", "Session not found", 404)
    return jsonify(_payload(session_key, session))

  @bp.route("/api/sessions/<session_key>", methods=["DELETE"])
  def api_close_session(session_key: str):
    if sessions.pop(session_key) is None:
      return _error("not_found", "Session not found", 404)
    return jsonify({"deleted": True})

  @bp.route("/api/sessions/<session_key>/mode", methods=["POST"])
  def api_select_mode(session_key: str):
    session = sessions.get(session_key)
    if session is None:
      return _error("not_found", "Session not found", 404)
    try:
      req = SelectModeRequest.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
      return _error("bad_request", "Invalid mode", 400, {"error": str(e)})
    session.select_mode(SessionMode(req.mode))
    return jsonify(_payload(session_key, session))

  @bp.route("/api/sessions/<session_key>/class", methods=["POST"])
  def api_select_class(session_key: str):
    session = sessions.get(session_key)
    if session is None:
      return _error("not_found", "Session not found", 404)
    try:
      req = SelectClassRequest.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
      return _error("bad_request", "class_id is required", 400, {"error": str(e)})
    try:
      session.select_class(req.class_id)
    except LabelingError as e:
      return _labeling_error(e)
    return jsonify(_payload(session_key, session))

  @bp.route("/api/sessions/<session_key>/image", methods=["POST"])
  def api_acquire_image(session_key: str):
    """Load an image into the session.

    Manual mode: multipart upload with a `file` part.
    Active-learning mode: JSON `{suggestion_id}`; the image comes from the
    suggestion feed unless `image_path` is supplied.
    """
    session = sessions.get(session_key)
    if session is None:
      return _error("not_found", "Session not found", 404)
    extra: Dict[str, Any] = {}
    try:
      upload = request.files.get("file")
      if upload is not None:
        img = uploads.from_bytes(upload.read(), filename=upload.filename, content_type=upload.mimetype)
        session.acquire_image(img.image_ref, img.image_id)
        extra["image"] = {"width": img.width, "height": img.height, "content_type": img.content_type}
      else:
        req = AcquireSuggestionRequest.model_validate(request.get_json(silent=True) or {})
        if req.image_path:
          ref, image_id, sid = req.image_path, f"al_{req.suggestion_id}", req.suggestion_id
        else:
          ref, image_id, sid = queue.image_for(queue.get(req.suggestion_id))
        session.acquire_image(ref, image_id, suggestion_id=sid)
    except ValidationError as e:
      return _error("bad_request", "Provide a file upload or a suggestion_id", 400, {"error": str(e)})
    except ImageRejected as e:
      return _error("image_rejected", str(e), 422)
    except KeyError as e:
      return _error("not_found", "Suggestion not found", 404, {"error": str(e)})
    except BackendError as e:
      return _error("suggestions_error", "Failed to load suggestion", 502, {"error": str(e), "detail": e.detail})
    except LabelingError as e:
      return _labeling_error(e)
    except ValueError as e:
      return _error("bad_request", str(e), 400)
    return jsonify(_payload(session_key, session, **extra))

  @bp.route("/api/sessions/<session_key>/annotations", methods=["POST"])
  def api_add_annotation(session_key: str):
    """Add a box, either normalized (`bbox`) or as a canvas drag (`start`/`end` + viewport)."""
    session = sessions.get(session_key)
    if session is None:
      return _error("not_found", "Session not found", 404)
    payload = request.get_json(silent=True) or {}
    try:
      if "bbox" in payload:
        bbox = AddAnnotationRequest.model_validate(payload).bbox
      else:
        req = DrawAnnotationRequest.model_validate(payload)
        vp = Viewport(req.canvas_width, req.canvas_height, req.image_width, req.image_height, req.scale,
                      req.offset_x, req.offset_y)
        drawer = BoxDrawer()
        drawer.begin(vp.to_normalized(*req.start))
        drawer.move(vp.to_normalized(*req.end))
        bbox = drawer.finish()
      idx = session.add_annotation(bbox)
    except ValidationError as e:
      return _error("bad_request", "Invalid annotation payload", 400, {"error": str(e)})
    except LabelingError as e:
      return _labeling_error(e)
    return jsonify(_payload(session_key, session, index=idx)), 201

  @bp.route("/api/sessions/<session_key>/annotations/<int:index>", methods=["DELETE"])
  def api_remove_annotation(session_key: str, index: int):
    session = sessions.get(session_key)
    if session is None:
      return _error("not_found", "Session not found", 404)
    try:
      removed = session.remove_annotation(index)
    except LabelingError as e:
      return _labeling_error(e)
    return jsonify(_payload(session_key, session, removed=removed))

  @bp.route("/api/sessions/<session_key>/save", methods=["POST"])
  def api_save(session_key: str):
    session = sessions.get(session_key)
    if session is None:
      return _error("not_found", "Session not found", 404)
    try:
      result = session.save()
    except LabelingError as e:
      log.warning("save failed key=%s: %s", session_key, e)
      return _labeling_error(e)
    return jsonify(_payload(session_key, session, committed=result.committed,
                            registry_reloaded=result.registry_reloaded))

  @bp.route("/api/sessions/<session_key>/skip", methods=["POST"])
  def api_skip(session_key: str):
    session = sessions.get(session_key)
    if session is None:
      return _error("not_found", "Session not found", 404)
    try:
      session.skip()
    except LabelingError as e:
      return _labeling_error(e)
    return jsonify(_payload(session_key, session))

  return bp
