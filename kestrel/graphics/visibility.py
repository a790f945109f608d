# kestrel/graphics/visibility.py
from __future__ import annotations

from typing import Iterable, List

from kestrel.graphics.batcher import Batch
from kestrel.graphics.camera import CameraState
from kestrel.graphics.draw_key import DrawKey
from kestrel.settings import PipelineSettings
from kestrel.world.time import hour_of_day


def in_time_window(key: DrawKey, hour: int) -> bool:
    """
    Whether a time-gated key is shown at `hour`. Ungated keys always are.
    A window that wraps midnight (on > off) hides the item only while
    off < hour < on.
    """
    if not key.time_gated:
        return True
    on, off = key.time_on, key.time_off
    if on < off and (hour < on or hour > off):
        return False
    if off < on and (hour < on and hour > off):
        return False
    return True


class VisibilityEvaluator:
    """Per-frame culling of batches: time of day, draw distance, frustum."""

    def __init__(self, settings: PipelineSettings = PipelineSettings()) -> None:
        self.settings = settings

    def hour(self, elapsed: float) -> int:
        return hour_of_day(elapsed, self.settings.time_factor)

    def is_visible(self, batch: Batch, camera: CameraState, elapsed: float) -> bool:
        if not in_time_window(batch.key, self.hour(elapsed)):
            return False

        bounds = batch.bounds
        if bounds is None:
            return False

        frustum = camera.frustum
        if batch.key.draw_distance is not None:
            center, radius = batch.bounding_sphere()
            limit = radius + self.settings.distance_cull_factor * batch.key.draw_distance
            if frustum.distance_to_near(center) > limit:
                return False

        return frustum.intersects_aabb(bounds)

    def visible_batches(
        self, batches: Iterable[Batch], camera: CameraState, elapsed: float
    ) -> List[Batch]:
        return [b for b in batches if self.is_visible(b, camera, elapsed)]
