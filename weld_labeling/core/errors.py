from __future__ import annotations

from typing import Optional


class LabelingError(Exception):
  """Base class for labeling session errors."""

  code = "labeling_error"


class NoClassSelected(LabelingError):
  code = "no_class_selected"


class BoxTooSmall(LabelingError):
  code = "box_too_small"


class InvalidBoundingBox(LabelingError, ValueError):
  code = "invalid_bbox"


class EmptyAnnotationSet(LabelingError):
  code = "empty_annotation_set"


class InvalidTransition(LabelingError):
  """Operation not allowed in the current session state."""

  code = "invalid_transition"


class SessionBusy(InvalidTransition):
  """A save is in flight; acquire, edits, save and skip are rejected until it settles."""

  code = "session_busy"


class UnknownDefectType(LabelingError):
  code = "unknown_defect_type"


class RegistryReloadFailed(LabelingError):
  code = "registry_reload_failed"


class CommitFailed(LabelingError):
  """A sample commit failed. `index` is the first failing annotation."""

  code = "commit_failed"

  def __init__(self, index: int, cause: Optional[BaseException] = None):
    self.index = index
    self.cause = cause
    super().__init__(f"commit failed at annotation {index}: {cause}")
