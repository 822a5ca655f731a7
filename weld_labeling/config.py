from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Optional

DEFAULT_API_URL = "http://localhost:8000"
# Training-related backend calls can be slow
DEFAULT_API_TIMEOUT_S = 60.0
DEFAULT_MAX_UPLOAD_MB = 10
DEFAULT_MAX_SESSIONS = 64
DEFAULT_SESSION_TTL_S = 3600.0


@dataclass(frozen=True)
class Settings:
  """Runtime configuration, read from WELD_LABELING_* environment variables."""

  api_url: str = DEFAULT_API_URL
  api_timeout_s: float = DEFAULT_API_TIMEOUT_S
  max_upload_mb: int = DEFAULT_MAX_UPLOAD_MB
  max_sessions: int = DEFAULT_MAX_SESSIONS
  session_ttl_s: float = DEFAULT_SESSION_TTL_S

  @property
  def max_upload_bytes(self) -> int:
    return int(self.max_upload_mb) * 1024 * 1024

  @classmethod
  def from_env(cls) -> "Settings":
    api_url = os.getenv("WELD_LABELING_API_URL") or DEFAULT_API_URL
    try:
      timeout = float(os.getenv("WELD_LABELING_API_TIMEOUT", DEFAULT_API_TIMEOUT_S))
    except ValueError:
      timeout = DEFAULT_API_TIMEOUT_S
    try:
      max_mb = int(os.getenv("WELD_LABELING_MAX_UPLOAD_MB", DEFAULT_MAX_UPLOAD_MB))
    except ValueError:
      max_mb = DEFAULT_MAX_UPLOAD_MB
    try:
      max_sessions = max(1, int(os.getenv("WELD_LABELING_MAX_SESSIONS", DEFAULT_MAX_SESSIONS)))
    except ValueError:
      max_sessions = DEFAULT_MAX_SESSIONS
    try:
      ttl = float(os.getenv("WELD_LABELING_SESSION_TTL", DEFAULT_SESSION_TTL_S))
    except ValueError:
      ttl = DEFAULT_SESSION_TTL_S
    return cls(api_url=api_url.rstrip("/"), api_timeout_s=timeout, max_upload_mb=max_mb, max_sessions=max_sessions,
               session_ttl_s=ttl)

  def with_overrides(self, api_url: Optional[str] = None, api_timeout_s: Optional[float] = None) -> "Settings":
    s = self
    if api_url:
      s = replace(s, api_url=api_url.rstrip("/"))
    if api_timeout_s is not None:
      s = replace(s, api_timeout_s=float(api_timeout_s))
    return s
