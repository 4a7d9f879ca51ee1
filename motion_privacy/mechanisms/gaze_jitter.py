"""Small random rotations applied to gaze directions."""

from __future__ import annotations

import numpy as np

from ..math3d.quaternion import q_rotate_vec, rotation_vector_to_q
from .base import NoiseMechanism, ZeroNoiseMixin

# Radians of maximum jitter per unit strength (strength 100 -> ~11.5 deg).
DEFAULT_ANGLE_SCALE = 0.002


class GazeJitterMechanism(ZeroNoiseMixin, NoiseMechanism):
    name = "gaze-jitter"

    def __init__(
        self,
        angle_scale: float = DEFAULT_ANGLE_SCALE,
        seed: int | None = None,
        rng: np.random.Generator | None = None,
    ):
        super().__init__(seed=seed, rng=rng)
        self.angle_scale = float(max(0.0, angle_scale))

    def magnitude(self, strength: float) -> float:
        return max(0.0, float(strength)) * self.angle_scale

    def _unit_ball_sample(self) -> np.ndarray:
        while True:
            v = self.rng.uniform(-1.0, 1.0, size=3)
            if float(np.dot(v, v)) <= 1.0:
                return v

    def jitter_direction(self, direction: np.ndarray, strength: float) -> np.ndarray:
        d = np.asarray(direction, dtype=np.float64).reshape(3)
        mag = self.magnitude(strength)
        if mag <= 0.0:
            return d.copy()
        rv = self._unit_ball_sample() * mag
        return q_rotate_vec(rotation_vector_to_q(rv), d)
