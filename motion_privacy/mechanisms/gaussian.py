"""Gaussian positional noise via the Box-Muller transform."""

from __future__ import annotations

import numpy as np

from ..control.pose import JointCategory
from .base import NoiseMechanism

# Std dev per unit strength (meters). Eye/head smallest, body largest.
DEFAULT_EYE_SCALE = 0.005
DEFAULT_HAND_SCALE = 0.01
DEFAULT_BODY_SCALE = 0.015


class GaussianNoiseMechanism(NoiseMechanism):
    name = "gaussian"

    def __init__(
        self,
        eye_scale: float = DEFAULT_EYE_SCALE,
        hand_scale: float = DEFAULT_HAND_SCALE,
        body_scale: float = DEFAULT_BODY_SCALE,
        mean: float = 0.0,
        seed: int | None = None,
        rng: np.random.Generator | None = None,
    ):
        super().__init__(seed=seed, rng=rng)
        self.scales = {
            JointCategory.EYE: float(max(0.0, eye_scale)),
            JointCategory.HAND: float(max(0.0, hand_scale)),
            JointCategory.BODY: float(max(0.0, body_scale)),
        }
        self.mean = float(mean)

    def sigma(self, category: JointCategory, strength: float) -> float:
        return max(0.0, float(strength)) * self.scales[category]

    def _box_muller(self, size) -> np.ndarray:
        # 1 - U[0,1) keeps u1 in (0, 1] so log(u1) is finite.
        u1 = 1.0 - self.rng.random(size)
        u2 = 1.0 - self.rng.random(size)
        return np.sqrt(-2.0 * np.log(u1)) * np.sin(2.0 * np.pi * u2)

    def sample(self, category: JointCategory, strength: float, count: int = 1) -> np.ndarray:
        """Draw ``count`` independent 3D displacements, shape (count, 3)."""
        z = self._box_muller((int(count), 3))
        return self.mean + self.sigma(category, strength) * z

    def generate_eye_noise(self, strength: float) -> np.ndarray:
        return self.sample(JointCategory.EYE, strength)[0]

    def generate_hand_noise(self, strength: float) -> np.ndarray:
        return self.sample(JointCategory.HAND, strength)[0]

    def generate_body_noise(self, strength: float) -> np.ndarray:
        return self.sample(JointCategory.BODY, strength)[0]
