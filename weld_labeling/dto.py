from __future__ import annotations

from typing import Optional, Dict, Any, List, Literal

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


class ErrorResponse(BaseModel):
  code: str
  message: str
  details: Optional[Dict[str, Any]] = None


# ---------------- backend payloads ----------------


class DefectType(BaseModel):
  """Custom defect class as served by the inspection backend."""

  model_config = ConfigDict(extra="ignore")

  id: int
  name: str
  code: str
  description: Optional[str] = None
  severity_default: Literal["low", "medium", "high", "critical"] = "medium"
  color: Optional[str] = None
  is_active: bool = True
  min_samples_required: int = 0
  current_sample_count: int = 0
  compliance_standards: Optional[List[str]] = None

  @property
  def is_ready(self) -> bool:
    return self.current_sample_count >= self.min_samples_required

  @property
  def progress(self) -> float:
    if self.min_samples_required <= 0:
      return 1.0
    return self.current_sample_count / self.min_samples_required


class Suggestion(BaseModel):
  """Active-learning queue item, ranked by the backend."""

  model_config = ConfigDict(extra="ignore")

  id: int
  analysis_id: Optional[int] = None
  uncertainty_score: float = 0.0
  priority_score: float = 0.0
  suggested_defect_types: List[str] = []
  image_path: Optional[str] = None

  @property
  def image_id(self) -> str:
    return f"al_{self.id}"


class TrainingSample(BaseModel):
  model_config = ConfigDict(extra="ignore")

  id: int
  defect_type_id: int
  image_path: str
  image_id: Optional[str] = None
  annotations: Optional[Dict[str, Any]] = None
  annotation_format: str = "bbox"
  source: Literal["manual", "review", "active_learning"] = "manual"
  used_in_training: bool = False
  created_at: Optional[str] = None


class DefectStatistics(BaseModel):
  model_config = ConfigDict(extra="ignore")

  total_custom_types: int = 0
  active_custom_types: int = 0
  total_training_samples: int = 0
  avg_samples_per_type: float = 0.0
  types_needing_samples: int = 0
  types_ready_for_training: int = 0


# ---------------- labeling API requests ----------------


class CreateSessionRequest(BaseModel):
  mode: Literal["manual", "active_learning"] = "manual"


class SelectModeRequest(BaseModel):
  mode: Literal["manual", "active_learning"]

  @field_validator("mode", mode="before")
  def _normalize_mode(cls, v):
    return v.strip().lower() if isinstance(v, str) else v


class SelectClassRequest(BaseModel):
  class_id: int


class AcquireSuggestionRequest(BaseModel):
  suggestion_id: int
  image_path: Optional[str] = None


class AddAnnotationRequest(BaseModel):
  bbox: List[float]

  @field_validator("bbox")
  def _four_coordinates(cls, v):
    if len(v) != 4:
      raise ValueError("bbox must have exactly 4 values [x1, y1, x2, y2]")
    return v


class DrawAnnotationRequest(BaseModel):
  """Box given as two canvas points plus the viewport they were drawn in."""

  start: List[float]
  end: List[float]
  canvas_width: float
  canvas_height: float
  image_width: float
  image_height: float
  scale: float = 1.0
  offset_x: float = 0.0
  offset_y: float = 0.0

  @model_validator(mode="after")
  def _validate_points(self):
    if len(self.start) != 2 or len(self.end) != 2:
      raise ValueError("start and end must be [x, y] points")
    if self.image_width <= 0 or self.image_height <= 0 or self.scale <= 0:
      raise ValueError("image dimensions and scale must be positive")
    return self
