"""Noise mechanism interface.

A mechanism maps a privacy strength to a local-space displacement per joint
category, and may also perturb gaze directions. Every instance owns its own
random generator so seeded instances reproduce exactly.
"""

from __future__ import annotations

import numpy as np

from ..control.pose import JointCategory


def make_rng(seed: int | None = None, rng: np.random.Generator | None = None) -> np.random.Generator:
    if rng is not None:
        return rng
    return np.random.default_rng(seed)


class NoiseMechanism:
    """Base interface for privacy mechanisms."""

    name: str = "base"

    def __init__(self, seed: int | None = None, rng: np.random.Generator | None = None):
        self.rng = make_rng(seed, rng)

    def generate_eye_noise(self, strength: float) -> np.ndarray:
        raise NotImplementedError

    def generate_hand_noise(self, strength: float) -> np.ndarray:
        raise NotImplementedError

    def generate_body_noise(self, strength: float) -> np.ndarray:
        raise NotImplementedError

    def generate_noise(self, category: JointCategory, strength: float) -> np.ndarray:
        if category is JointCategory.EYE:
            return self.generate_eye_noise(strength)
        if category is JointCategory.HAND:
            return self.generate_hand_noise(strength)
        if category is JointCategory.BODY:
            return self.generate_body_noise(strength)
        raise ValueError(f"unknown joint category: {category!r}")

    def perturb_position(
        self, local_position: np.ndarray, category: JointCategory, strength: float
    ) -> np.ndarray:
        p = np.asarray(local_position, dtype=np.float64).reshape(3)
        return p + self.generate_noise(category, strength)

    def jitter_direction(self, direction: np.ndarray, strength: float) -> np.ndarray:  # noqa: ARG002
        return np.asarray(direction, dtype=np.float64).reshape(3).copy()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class ZeroNoiseMixin:
    """Mechanisms that do not add displacement."""

    def generate_eye_noise(self, strength: float) -> np.ndarray:  # noqa: ARG002
        return np.zeros(3, dtype=np.float64)

    def generate_hand_noise(self, strength: float) -> np.ndarray:  # noqa: ARG002
        return np.zeros(3, dtype=np.float64)

    def generate_body_noise(self, strength: float) -> np.ndarray:  # noqa: ARG002
        return np.zeros(3, dtype=np.float64)
