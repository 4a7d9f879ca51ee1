"""Coordinate helpers for gaze yaw/pitch in degrees."""

from __future__ import annotations

import math

import numpy as np


def vec_to_yaw_pitch_deg(v: np.ndarray) -> tuple[float, float]:
    """
    Gaze angle convention (x right, y up, z forward):
      yaw:   atan2(x, z)  => 0=forward, +90=right
      pitch: atan2(y, sqrt(x^2+z^2)) => +90=up
    """
    x, y, z = float(v[0]), float(v[1]), float(v[2])
    yaw = math.degrees(math.atan2(x, z))
    pitch = math.degrees(math.atan2(y, math.sqrt(x * x + z * z) + 1e-12))
    return yaw, pitch


def yaw_pitch_to_vec(yaw_deg: float, pitch_deg: float) -> np.ndarray:
    yaw = math.radians(yaw_deg)
    pitch = math.radians(pitch_deg)
    x = math.sin(yaw) * math.cos(pitch)
    y = math.sin(pitch)
    z = math.cos(yaw) * math.cos(pitch)
    return np.array([x, y, z], dtype=np.float64)


def normalize_or(v: np.ndarray, fallback: np.ndarray, eps2: float = 1e-8) -> np.ndarray:
    """Unit vector along v, or a copy of fallback when |v|^2 < eps2."""
    v = np.asarray(v, dtype=np.float64).reshape(3)
    n2 = float(np.dot(v, v))
    if n2 < eps2 or not math.isfinite(n2):
        return np.asarray(fallback, dtype=np.float64).reshape(3).copy()
    return v / math.sqrt(n2)
