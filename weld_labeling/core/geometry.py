"""
Canvas geometry for drawing bounding boxes over a scaled, panned image.

All boxes handled by the labeling session are normalized to the unit square
relative to the image dimensions. The viewport maps between canvas pixels
(mouse positions) and that normalized space.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Optional, Sequence, Tuple

from .errors import InvalidBoundingBox

# Minimum box size per normalized axis (0.5% of the image)
MIN_BOX_SIZE = 0.005
# Absorbs float error from subtracting normalized corners
SIZE_TOLERANCE = 1e-9

MIN_SCALE = 0.1
MAX_SCALE = 5.0
ZOOM_STEP = 1.2
FIT_MARGIN = 0.9


def _clamp01(v: float) -> float:
  return max(0.0, min(1.0, v))


@dataclass(frozen=True)
class BoundingBox:
  x1: float
  y1: float
  x2: float
  y2: float

  @classmethod
  def from_corners(cls, a: Tuple[float, float], b: Tuple[float, float]) -> "BoundingBox":
    """Build a box from two corners given in any order."""
    return cls(min(a[0], b[0]), min(a[1], b[1]), max(a[0], b[0]), max(a[1], b[1]))

  @classmethod
  def from_sequence(cls, values: Sequence[float]) -> "BoundingBox":
    """Parse `[x1, y1, x2, y2]`, ordering the corners and checking the unit range."""
    try:
      x1, y1, x2, y2 = (float(v) for v in values)
    except (TypeError, ValueError) as e:
      raise InvalidBoundingBox(f"bbox must be four numbers, got {values!r}") from e
    for v in (x1, y1, x2, y2):
      if not 0.0 <= v <= 1.0:
        raise InvalidBoundingBox(f"bbox coordinates must be within [0, 1], got {values!r}")
    return cls.from_corners((x1, y1), (x2, y2))

  @property
  def width(self) -> float:
    return self.x2 - self.x1

  @property
  def height(self) -> float:
    return self.y2 - self.y1

  def meets_min_size(self, min_size: float = MIN_BOX_SIZE) -> bool:
    return self.width >= min_size - SIZE_TOLERANCE and self.height >= min_size - SIZE_TOLERANCE

  def contains(self, x: float, y: float) -> bool:
    return self.x1 <= x <= self.x2 and self.y1 <= y <= self.y2

  def as_list(self) -> list:
    return [self.x1, self.y1, self.x2, self.y2]


@dataclass(frozen=True)
class Viewport:
  """Image placement on the canvas: centered, scaled, then panned by the offset."""

  canvas_width: float
  canvas_height: float
  image_width: float
  image_height: float
  scale: float = 1.0
  offset_x: float = 0.0
  offset_y: float = 0.0

  @classmethod
  def fit(cls, canvas_width: float, canvas_height: float, image_width: float,
          image_height: float) -> "Viewport":
    """Scale the image down to fit the canvas with a margin; never upscale."""
    if image_width <= 0 or image_height <= 0:
      raise ValueError("image dimensions must be positive")
    scale = min(canvas_width / image_width, canvas_height / image_height, 1.0) * FIT_MARGIN
    return cls(canvas_width, canvas_height, image_width, image_height, scale=scale)

  @property
  def scaled_width(self) -> float:
    return self.image_width * self.scale

  @property
  def scaled_height(self) -> float:
    return self.image_height * self.scale

  def origin(self) -> Tuple[float, float]:
    return (
      (self.canvas_width - self.scaled_width) / 2 + self.offset_x,
      (self.canvas_height - self.scaled_height) / 2 + self.offset_y,
    )

  def to_normalized(self, mouse_x: float, mouse_y: float) -> Tuple[float, float]:
    ox, oy = self.origin()
    return (
      _clamp01((mouse_x - ox) / self.scaled_width),
      _clamp01((mouse_y - oy) / self.scaled_height),
    )

  def to_canvas_rect(self, bbox: BoundingBox) -> Tuple[float, float, float, float]:
    """Return `(x, y, width, height)` in canvas pixels for rendering a box."""
    ox, oy = self.origin()
    return (
      ox + bbox.x1 * self.scaled_width,
      oy + bbox.y1 * self.scaled_height,
      bbox.width * self.scaled_width,
      bbox.height * self.scaled_height,
    )

  def zoom_in(self) -> "Viewport":
    return replace(self, scale=min(self.scale * ZOOM_STEP, MAX_SCALE))

  def zoom_out(self) -> "Viewport":
    return replace(self, scale=max(self.scale / ZOOM_STEP, MIN_SCALE))

  def pan(self, dx: float, dy: float) -> "Viewport":
    return replace(self, offset_x=self.offset_x + dx, offset_y=self.offset_y + dy)

  def reset(self) -> "Viewport":
    return replace(self, scale=1.0, offset_x=0.0, offset_y=0.0)


class BoxDrawer:
  """Tracks one drag gesture in normalized coordinates."""

  def __init__(self):
    self._start: Optional[Tuple[float, float]] = None
    self._current: Optional[BoundingBox] = None

  @property
  def active(self) -> bool:
    return self._start is not None

  @property
  def current(self) -> Optional[BoundingBox]:
    return self._current

  def begin(self, point: Tuple[float, float]) -> None:
    self._start = point
    self._current = BoundingBox(point[0], point[1], point[0], point[1])

  def move(self, point: Tuple[float, float]) -> Optional[BoundingBox]:
    if self._start is None:
      return None
    self._current = BoundingBox.from_corners(self._start, point)
    return self._current

  def finish(self) -> Optional[BoundingBox]:
    box = self._current if self._start is not None else None
    self._start = None
    self._current = None
    return box

  def cancel(self) -> None:
    self._start = None
    self._current = None


def hit_test(boxes: Iterable[BoundingBox], point: Tuple[float, float]) -> Optional[int]:
  """Index of the first box containing the normalized point, else None."""
  for idx, box in enumerate(boxes):
    if box.contains(point[0], point[1]):
      return idx
  return None
