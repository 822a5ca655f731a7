"""
Labeling session for one annotation pass over one image.

The session owns the transient state of the labeling tool: which acquisition
mode is active, the image currently loaded, and the ordered list of drawn
boxes. It is memory-only and mutated exclusively through the operations below.
Views observe it through immutable snapshots delivered to subscribers.

States:
  - empty: mode set, no image (initial, and after every save/skip)
  - image_loaded: image acquired, annotations possibly empty
  - saving: sample commits in flight
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .collaborators import ActiveLearningQueue, DefectTypeLike, DefectTypeRegistry, SampleStore
from .errors import (
  BoxTooSmall,
  CommitFailed,
  EmptyAnnotationSet,
  InvalidTransition,
  NoClassSelected,
  SessionBusy,
  UnknownDefectType,
)
from .geometry import MIN_BOX_SIZE, BoundingBox


class SessionMode(str, Enum):
  MANUAL = "manual"
  ACTIVE_LEARNING = "active_learning"


class SessionState(str, Enum):
  EMPTY = "empty"
  IMAGE_LOADED = "image_loaded"
  SAVING = "saving"


@dataclass(frozen=True)
class Annotation:
  bbox: BoundingBox
  class_id: int
  class_name: str

  def to_dict(self) -> Dict[str, Any]:
    return {"bbox": self.bbox.as_list(), "class_id": self.class_id, "class_name": self.class_name}


@dataclass(frozen=True)
class SessionSnapshot:
  mode: SessionMode
  state: SessionState = SessionState.EMPTY
  image_ref: Optional[str] = None
  image_id: Optional[str] = None
  suggestion_id: Optional[int] = None
  annotations: Tuple[Annotation, ...] = field(default_factory=tuple)

  @classmethod
  def empty(cls, mode: SessionMode) -> "SessionSnapshot":
    return cls(mode=mode)

  def to_dict(self) -> Dict[str, Any]:
    return {
      "mode": self.mode.value,
      "state": self.state.value,
      "image_ref": self.image_ref,
      "image_id": self.image_id,
      "suggestion_id": self.suggestion_id,
      "annotations": [a.to_dict() for a in self.annotations],
    }


@dataclass(frozen=True)
class SaveResult:
  committed: int
  registry_reloaded: bool


Listener = Callable[[SessionSnapshot], None]


class LabelingSession:
  """Single-threaded labeling state machine driven by user actions."""

  def __init__(self,
               sample_store: SampleStore,
               registry: DefectTypeRegistry,
               queue: Optional[ActiveLearningQueue] = None,
               mode: SessionMode = SessionMode.MANUAL):
    self._store = sample_store
    self._registry = registry
    self._queue = queue
    self._mode = SessionMode(mode)
    self._state = SessionState.EMPTY
    self._image_ref: Optional[str] = None
    self._image_id: Optional[str] = None
    self._suggestion_id: Optional[int] = None
    self._annotations: List[Annotation] = []
    self._selected_class_id: Optional[int] = None
    self._listeners: List[Listener] = []
    self._log = logging.getLogger("weld_labeling.core.LabelingSession")

  # ---------------- observation ----------------

  @property
  def mode(self) -> SessionMode:
    return self._mode

  @property
  def state(self) -> SessionState:
    return self._state

  @property
  def selected_class_id(self) -> Optional[int]:
    return self._selected_class_id

  @property
  def annotations(self) -> Tuple[Annotation, ...]:
    return tuple(self._annotations)

  def snapshot(self) -> SessionSnapshot:
    return SessionSnapshot(
      mode=self._mode,
      state=self._state,
      image_ref=self._image_ref,
      image_id=self._image_id,
      suggestion_id=self._suggestion_id,
      annotations=tuple(self._annotations),
    )

  def subscribe(self, listener: Listener) -> Callable[[], None]:
    """Register a listener called with a fresh snapshot after every change."""
    self._listeners.append(listener)

    def _unsubscribe() -> None:
      try:
        self._listeners.remove(listener)
      except ValueError:
        pass

    return _unsubscribe

  def _notify(self) -> None:
    snap = self.snapshot()
    for listener in list(self._listeners):
      try:
        listener(snap)
      except Exception:
        self._log.warning("session listener failed", exc_info=True)

  # ---------------- transitions ----------------

  def select_mode(self, mode: SessionMode) -> None:
    """Switch acquisition mode. A loaded image and its annotations are kept."""
    mode = SessionMode(mode)
    if mode == self._mode:
      return
    self._log.debug("select_mode %s -> %s state=%s", self._mode.value, mode.value, self._state.value)
    self._mode = mode
    if mode != SessionMode.ACTIVE_LEARNING:
      # suggestion ids only exist in active-learning mode
      self._suggestion_id = None
    self._notify()

  def acquire_image(self, image_ref: str, image_id: Optional[str] = None, suggestion_id: Optional[int] = None) -> None:
    self._reject_if_saving("acquire_image")
    if self._state != SessionState.EMPTY:
      raise InvalidTransition("an image is already loaded; save or skip it first")
    if not image_ref:
      raise ValueError("image_ref is required")
    if self._mode == SessionMode.ACTIVE_LEARNING and suggestion_id is None:
      raise InvalidTransition("suggestion_id is required in active_learning mode")
    if self._mode == SessionMode.MANUAL and suggestion_id is not None:
      raise InvalidTransition("suggestion_id is not allowed in manual mode")
    self._image_ref = image_ref
    self._image_id = image_id
    self._suggestion_id = int(suggestion_id) if suggestion_id is not None else None
    self._annotations = []
    self._state = SessionState.IMAGE_LOADED
    self._log.info("image acquired image_id=%s mode=%s suggestion_id=%s", image_id, self._mode.value,
                   self._suggestion_id)
    self._notify()

  def select_class(self, class_id: int) -> None:
    self._find_defect_type(class_id)
    self._selected_class_id = int(class_id)

  def add_annotation(self, bbox: Sequence[float]) -> int:
    """Append a box for the selected class and return its index."""
    self._require_image_loaded("add_annotation")
    if self._selected_class_id is None:
      raise NoClassSelected("select a defect class first")
    box = bbox if isinstance(bbox, BoundingBox) else BoundingBox.from_sequence(bbox)
    if not box.meets_min_size(MIN_BOX_SIZE):
      raise BoxTooSmall(f"box {box.width!r}x{box.height!r} is below the minimum size {MIN_BOX_SIZE} per axis")
    defect = self._find_defect_type(self._selected_class_id)
    self._annotations.append(Annotation(bbox=box, class_id=int(defect.id), class_name=defect.name))
    self._notify()
    return len(self._annotations) - 1

  def remove_annotation(self, index: int) -> bool:
    """Remove by position; an out-of-range index is ignored."""
    self._require_image_loaded("remove_annotation")
    if index < 0 or index >= len(self._annotations):
      return False
    del self._annotations[index]
    self._notify()
    return True

  def save(self) -> SaveResult:
    """Commit every annotation to the sample store, in order.

    Commits are sequential and stop at the first failure, which raises
    CommitFailed carrying that annotation's index. Samples committed before
    the failure stay in the store; the session returns to image_loaded with
    all annotations so the user can retry or skip.
    """
    self._reject_if_saving("save")
    if self._state != SessionState.IMAGE_LOADED:
      raise InvalidTransition("no image loaded")
    if not self._annotations:
      raise EmptyAnnotationSet("add at least one annotation before saving")

    pending = list(self._annotations)
    image_ref, image_id = self._image_ref, self._image_id
    source = self._mode.value
    suggestion_id = self._suggestion_id
    self._state = SessionState.SAVING
    self._notify()

    for idx, ann in enumerate(pending):
      try:
        self._store.add_sample(
          class_id=ann.class_id,
          image_ref=image_ref,
          image_id=image_id,
          bbox=ann.bbox.as_list(),
          class_name=ann.class_name,
          format="bbox",
          source=source,
        )
      except Exception as e:
        self._log.warning("sample commit failed idx=%s image_id=%s: %s", idx, image_id, e)
        self._state = SessionState.IMAGE_LOADED
        self._notify()
        raise CommitFailed(idx, e) from e

    self._log.info("saved %d annotation(s) image_id=%s source=%s", len(pending), image_id, source)
    self._reset()
    if source == SessionMode.ACTIVE_LEARNING.value and suggestion_id is not None:
      self._notify_queue("mark_accepted", suggestion_id)
    reloaded = self.refresh_defect_types()
    return SaveResult(committed=len(pending), registry_reloaded=reloaded)

  def skip(self) -> None:
    """Discard the current image and annotations."""
    self._reject_if_saving("skip")
    if self._state != SessionState.IMAGE_LOADED:
      raise InvalidTransition("no image loaded")
    suggestion_id = self._suggestion_id
    discarded = len(self._annotations)
    self._reset()
    self._log.info("skipped image discarded=%d suggestion_id=%s", discarded, suggestion_id)
    if self._mode == SessionMode.ACTIVE_LEARNING and suggestion_id is not None:
      self._notify_queue("mark_skipped", suggestion_id)

  def refresh_defect_types(self) -> bool:
    """Reload the registry and keep the class selection valid. Never raises."""
    try:
      types = self._registry.reload()
    except Exception:
      self._log.warning("defect type registry reload failed", exc_info=True)
      return False
    self.sync_selection(types)
    return True

  def sync_selection(self, types: Sequence[DefectTypeLike]) -> None:
    active = [t for t in types if getattr(t, "is_active", True)]
    if self._selected_class_id is not None and not any(int(t.id) == self._selected_class_id for t in active):
      self._selected_class_id = None
    if self._selected_class_id is None and active:
      self._selected_class_id = int(active[0].id)

  # ---------------- helpers ----------------

  def _reset(self) -> None:
    self._state = SessionState.EMPTY
    self._image_ref = None
    self._image_id = None
    self._suggestion_id = None
    self._annotations = []
    self._notify()

  def _reject_if_saving(self, op: str) -> None:
    if self._state == SessionState.SAVING:
      raise SessionBusy(f"{op} rejected: save in progress")

  def _require_image_loaded(self, op: str) -> None:
    self._reject_if_saving(op)
    if self._state != SessionState.IMAGE_LOADED:
      raise InvalidTransition(f"{op} requires a loaded image")

  def _find_defect_type(self, class_id: int) -> DefectTypeLike:
    for t in self._registry.list(active_only=True):
      if int(t.id) == int(class_id) and getattr(t, "is_active", True):
        return t
    raise UnknownDefectType(f"no active defect type with id {class_id}")

  def _notify_queue(self, method: str, suggestion_id: int) -> None:
    if self._queue is None:
      return
    try:
      getattr(self._queue, method)(suggestion_id)
    except Exception:
      self._log.warning("active learning %s failed suggestion_id=%s", method, suggestion_id, exc_info=True)
