"""
Tests for canvas geometry helpers.
"""

import pytest

from weld_labeling.core.errors import InvalidBoundingBox
from weld_labeling.core.geometry import (
  MAX_SCALE,
  MIN_SCALE,
  BoundingBox,
  BoxDrawer,
  Viewport,
  hit_test,
)


class TestBoundingBox:
  """Test BoundingBox construction and checks."""

  def test_from_corners_orders_points(self):
    """Corners given bottom-right first still produce x1 <= x2, y1 <= y2."""
    box = BoundingBox.from_corners((0.6, 0.8), (0.2, 0.1))

    assert box == BoundingBox(0.2, 0.1, 0.6, 0.8)

  @pytest.mark.parametrize("values", [
    [0.1, 0.2, 0.3],
    [0.1, 0.2, 0.3, 0.4, 0.5],
    ["a", 0.2, 0.3, 0.4],
    None,
  ])
  def test_from_sequence_rejects_malformed(self, values):
    with pytest.raises(InvalidBoundingBox):
      BoundingBox.from_sequence(values)

  def test_from_sequence_rejects_out_of_range(self):
    with pytest.raises(InvalidBoundingBox):
      BoundingBox.from_sequence([-0.1, 0.0, 0.5, 0.5])

  def test_invalid_bbox_is_value_error(self):
    assert issubclass(InvalidBoundingBox, ValueError)

  def test_min_size(self):
    assert BoundingBox(0.0, 0.0, 0.005, 0.005).meets_min_size()
    assert not BoundingBox(0.0, 0.0, 0.004, 0.5).meets_min_size()
    assert not BoundingBox(0.0, 0.0, 0.5, 0.004).meets_min_size()

  @pytest.mark.parametrize("x1, x2", [(0.1, 0.105), (0.2, 0.205), (0.33, 0.335), (0.995, 1.0)])
  def test_min_size_exact_threshold_away_from_origin(self, x1, x2):
    """A 0.005 box still qualifies when the subtraction rounds below 0.005."""
    assert BoundingBox(x1, x1, x2, x2).meets_min_size()

  def test_contains_includes_edges(self):
    box = BoundingBox(0.2, 0.2, 0.4, 0.4)

    assert box.contains(0.2, 0.4)
    assert box.contains(0.3, 0.3)
    assert not box.contains(0.41, 0.3)


class TestViewport:
  """Test canvas <-> normalized mapping."""

  def test_fit_never_upscales(self):
    vp = Viewport.fit(1000, 800, 200, 100)

    assert vp.scale == pytest.approx(0.9)

  def test_fit_scales_down_large_image(self):
    vp = Viewport.fit(500, 500, 1000, 2000)

    assert vp.scale == pytest.approx(0.25 * 0.9)

  def test_fit_rejects_empty_image(self):
    with pytest.raises(ValueError):
      Viewport.fit(500, 500, 0, 100)

  def test_to_normalized_centered_image(self):
    vp = Viewport(canvas_width=300, canvas_height=200, image_width=100, image_height=100)

    # image occupies x in [100, 200], y in [50, 150]
    assert vp.to_normalized(100, 50) == (0.0, 0.0)
    assert vp.to_normalized(150, 100) == (0.5, 0.5)
    assert vp.to_normalized(200, 150) == (1.0, 1.0)

  def test_to_normalized_clamps_outside_points(self):
    vp = Viewport(canvas_width=300, canvas_height=200, image_width=100, image_height=100)

    assert vp.to_normalized(0, 0) == (0.0, 0.0)
    assert vp.to_normalized(299, 199) == (1.0, 1.0)

  def test_pan_and_scale_affect_mapping(self):
    vp = Viewport(canvas_width=300, canvas_height=200, image_width=100, image_height=100).pan(10, -10)
    vp = vp.zoom_in()

    ox, oy = vp.origin()
    assert ox == pytest.approx((300 - 120) / 2 + 10)
    assert oy == pytest.approx((200 - 120) / 2 - 10)
    nx, ny = vp.to_normalized(ox + 60, oy + 30)
    assert nx == pytest.approx(0.5)
    assert ny == pytest.approx(0.25)

  def test_to_canvas_rect(self):
    vp = Viewport(canvas_width=300, canvas_height=200, image_width=100, image_height=100, scale=2.0)

    x, y, w, h = vp.to_canvas_rect(BoundingBox(0.0, 0.5, 0.5, 1.0))

    assert (x, y, w, h) == (50.0, 100.0, 100.0, 100.0)

  def test_zoom_is_clamped(self):
    vp = Viewport(100, 100, 100, 100, scale=MAX_SCALE)
    assert vp.zoom_in().scale == MAX_SCALE

    vp = Viewport(100, 100, 100, 100, scale=MIN_SCALE)
    assert vp.zoom_out().scale == MIN_SCALE

  def test_reset(self):
    vp = Viewport(100, 100, 100, 100, scale=2.5, offset_x=5, offset_y=7).reset()

    assert (vp.scale, vp.offset_x, vp.offset_y) == (1.0, 0.0, 0.0)


class TestBoxDrawer:
  """Test drag gesture tracking."""

  def test_drag_produces_ordered_box(self):
    drawer = BoxDrawer()

    drawer.begin((0.7, 0.6))
    drawer.move((0.5, 0.5))
    box = drawer.move((0.2, 0.1))

    assert box == BoundingBox(0.2, 0.1, 0.7, 0.6)
    assert drawer.finish() == box
    assert not drawer.active
    assert drawer.current is None

  def test_move_without_begin(self):
    drawer = BoxDrawer()

    assert drawer.move((0.5, 0.5)) is None
    assert drawer.finish() is None

  def test_click_without_drag_is_degenerate(self):
    drawer = BoxDrawer()
    drawer.begin((0.3, 0.3))

    box = drawer.finish()

    assert box.width == 0 and box.height == 0
    assert not box.meets_min_size()

  def test_cancel(self):
    drawer = BoxDrawer()
    drawer.begin((0.1, 0.1))
    drawer.move((0.4, 0.4))

    drawer.cancel()

    assert drawer.finish() is None


def test_hit_test_returns_first_match():
  boxes = [BoundingBox(0.0, 0.0, 0.5, 0.5), BoundingBox(0.25, 0.25, 0.75, 0.75)]

  assert hit_test(boxes, (0.3, 0.3)) == 0
  assert hit_test(boxes, (0.6, 0.6)) == 1
  assert hit_test(boxes, (0.9, 0.9)) is None
