"""Grid quantization of local positions."""

from __future__ import annotations

import numpy as np

from ..control.pose import JointCategory
from .base import NoiseMechanism, ZeroNoiseMixin

# Grid step per unit strength (meters).
DEFAULT_EYE_STEP = 0.0005
DEFAULT_HAND_STEP = 0.001
DEFAULT_BODY_STEP = 0.0015


def quantize(position: np.ndarray, step: float) -> np.ndarray:
    """Round each axis to the nearest multiple of step. step <= 0 is a no-op."""
    p = np.asarray(position, dtype=np.float64).reshape(3)
    if not step > 0.0:
        return p.copy()
    return np.round(p / step) * step


class QuantizationMechanism(ZeroNoiseMixin, NoiseMechanism):
    """Snaps positions to a grid whose step grows with strength.

    Deterministic; the random generator is unused but kept for interface parity.
    """

    name = "quantization"

    def __init__(
        self,
        eye_step: float = DEFAULT_EYE_STEP,
        hand_step: float = DEFAULT_HAND_STEP,
        body_step: float = DEFAULT_BODY_STEP,
        seed: int | None = None,
        rng: np.random.Generator | None = None,
    ):
        super().__init__(seed=seed, rng=rng)
        self.steps = {
            JointCategory.EYE: float(eye_step),
            JointCategory.HAND: float(hand_step),
            JointCategory.BODY: float(body_step),
        }

    def step(self, category: JointCategory, strength: float) -> float:
        return max(0.0, float(strength)) * self.steps[category]

    def perturb_position(
        self, local_position: np.ndarray, category: JointCategory, strength: float
    ) -> np.ndarray:
        return quantize(local_position, self.step(category, strength))
