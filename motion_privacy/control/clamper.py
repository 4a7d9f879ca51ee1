"""Bound privatized positions around the true position and above the ground."""

from __future__ import annotations

import logging
import math

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_GROUND_BUFFER_M = 0.1


class GroundQuery:
    """Base interface for ground height lookup at a horizontal position."""

    def height_at(self, position: np.ndarray) -> float | None:
        """Ground height (y) below position, or None when unknown."""
        raise NotImplementedError


class FlatGroundQuery(GroundQuery):
    """Infinite horizontal plane at a fixed height."""

    def __init__(self, height: float = 0.0):
        self.height = float(height)

    def height_at(self, position: np.ndarray) -> float | None:  # noqa: ARG002
        return self.height


def clamp_displacement(
    noisy: np.ndarray, original: np.ndarray, max_displacement: float
) -> np.ndarray:
    original = np.asarray(original, dtype=np.float64).reshape(3)
    if max_displacement <= 0.0:
        return original.copy()
    d = np.asarray(noisy, dtype=np.float64).reshape(3) - original
    if not np.isfinite(d).all():
        return original.copy()
    mag = float(np.linalg.norm(d))
    if mag > max_displacement:
        d = d / mag * max_displacement
    return original + d


def _query_ground(ground_query: GroundQuery, position: np.ndarray) -> float | None:
    try:
        h = ground_query.height_at(position)
    except Exception:  # noqa: BLE001
        logger.debug("[GROUND] query failed, skipping ground correction", exc_info=True)
        return None
    if h is None:
        return None
    h = float(h)
    if not math.isfinite(h):
        return None
    return h


def clamp_position(
    noisy: np.ndarray,
    original: np.ndarray,
    max_displacement: float,
    ground_query: GroundQuery | None = None,
    ground_buffer: float = DEFAULT_GROUND_BUFFER_M,
) -> np.ndarray:
    """Displacement clamp, then ground snap.

    The ground snap runs once on the already clamped point and is not
    re-clamped, so the result may exceed max_displacement only vertically
    when the truth itself sits below ground + buffer.
    """
    clamped = clamp_displacement(noisy, original, max_displacement)
    if ground_query is None:
        return clamped
    h = _query_ground(ground_query, clamped)
    if h is None:
        return clamped
    floor = h + float(ground_buffer)
    if clamped[1] < floor:
        clamped[1] = floor
    return clamped
