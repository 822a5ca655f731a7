"""
Interfaces the labeling session depends on.

Concrete HTTP-backed implementations live in `weld_labeling.services`; tests
substitute mocks.
"""

from __future__ import annotations

from typing import List, Optional, Protocol, Sequence


class DefectTypeLike(Protocol):
  id: int
  name: str
  is_active: bool


class SampleStore(Protocol):

  def add_sample(self,
                 class_id: int,
                 image_ref: str,
                 image_id: Optional[str],
                 bbox: List[float],
                 class_name: str,
                 format: str = "bbox",
                 source: str = "manual") -> None:
    """Persist one annotated training sample; raise on failure."""
    ...


class DefectTypeRegistry(Protocol):

  def list(self, active_only: bool = True) -> Sequence[DefectTypeLike]:
    ...

  def reload(self) -> Sequence[DefectTypeLike]:
    ...


class ActiveLearningQueue(Protocol):

  def mark_skipped(self, suggestion_id: int) -> None:
    ...

  def mark_accepted(self, suggestion_id: int) -> None:
    ...
