"""
Core labeling session components.
"""

from .geometry import BoundingBox, BoxDrawer, Viewport, hit_test
from .labeling_session import (
  Annotation,
  LabelingSession,
  SaveResult,
  SessionMode,
  SessionSnapshot,
  SessionState,
)

__all__ = [
  "Annotation",
  "BoundingBox",
  "BoxDrawer",
  "LabelingSession",
  "SaveResult",
  "SessionMode",
  "SessionSnapshot",
  "SessionState",
  "Viewport",
  "hit_test",
]
