from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from ..config import DEFAULT_API_TIMEOUT_S, DEFAULT_API_URL

API_PREFIX = "/api/xai-qc/custom-defects"


class BackendError(Exception):
  """Raised when the inspection backend cannot be reached or answers with an error."""

  def __init__(self, message: str, status: Optional[int] = None, detail: Any = None):
    super().__init__(message)
    self.status = status
    self.detail = detail


class CustomDefectsClient:
  """HTTP client for the custom defect types, samples and active-learning endpoints."""

  def __init__(self,
               base_url: str = DEFAULT_API_URL,
               timeout: float = DEFAULT_API_TIMEOUT_S,
               session: Optional[requests.Session] = None):
    self.base_url = base_url.rstrip("/")
    self.timeout = timeout
    self._http = session or requests.Session()
    self._http.headers.setdefault("Accept", "application/json")
    self._log = logging.getLogger("weld_labeling.client.CustomDefectsClient")

  def _url(self, path: str) -> str:
    return f"{self.base_url}{API_PREFIX}{path}"

  def _request(self, method: str, path: str, **kwargs) -> Any:
    url = self._url(path)
    self._log.debug("%s %s", method, url)
    try:
      resp = self._http.request(method, url, timeout=self.timeout, **kwargs)
    except requests.RequestException as e:
      raise BackendError(f"{method} {path} failed: {e}") from e
    if resp.status_code >= 400:
      detail: Any = None
      try:
        body = resp.json()
        detail = body.get("detail") if isinstance(body, dict) else body
      except ValueError:
        detail = resp.text or None
      self._log.warning("%s %s -> %s detail=%s", method, path, resp.status_code, detail)
      raise BackendError(f"{method} {path} returned {resp.status_code}", status=resp.status_code, detail=detail)
    if not resp.content:
      return None
    try:
      return resp.json()
    except ValueError as e:
      raise BackendError(f"{method} {path} returned invalid JSON", status=resp.status_code) from e

  # -------------------- defect types --------------------

  def list_defect_types(self, active_only: bool = False) -> List[Dict[str, Any]]:
    return self._request("GET", "/types", params={"active_only": str(bool(active_only)).lower()}) or []

  def get_defect_type(self, defect_type_id: int) -> Dict[str, Any]:
    return self._request("GET", f"/types/{int(defect_type_id)}")

  # -------------------- training samples --------------------

  def add_training_sample(self, fields: Dict[str, str]) -> Dict[str, Any]:
    """POST a sample as multipart/form-data (one text part per field)."""
    files = {k: (None, v) for k, v in fields.items()}
    return self._request("POST", "/samples", files=files)

  # -------------------- active learning --------------------

  def list_suggestions(self, limit: int = 50) -> List[Dict[str, Any]]:
    return self._request("GET", "/active-learning/suggestions", params={"limit": int(limit)}) or []

  def skip_suggestion(self, suggestion_id: int) -> None:
    self._request("POST", f"/active-learning/suggestions/{int(suggestion_id)}/skip")

  def accept_suggestion(self, suggestion_id: int) -> None:
    self._request("POST", f"/active-learning/suggestions/{int(suggestion_id)}/accept")

  # -------------------- statistics --------------------

  def get_statistics(self) -> Dict[str, Any]:
    return self._request("GET", "/stats/summary") or {}
