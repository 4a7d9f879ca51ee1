"""Privacy mechanism implementations."""

from __future__ import annotations

from .base import NoiseMechanism
from .gaussian import GaussianNoiseMechanism
from .gaze_jitter import GazeJitterMechanism
from .passthrough import NoMechanism
from .quantization import QuantizationMechanism, quantize

MECHANISMS: dict[str, type[NoiseMechanism]] = {
    GaussianNoiseMechanism.name: GaussianNoiseMechanism,
    NoMechanism.name: NoMechanism,
    QuantizationMechanism.name: QuantizationMechanism,
    GazeJitterMechanism.name: GazeJitterMechanism,
}


def build_mechanism(name: str, seed: int | None = None, **params) -> NoiseMechanism:
    """Instantiate a mechanism by registry name. Extra params go to its constructor."""
    try:
        cls = MECHANISMS[name]
    except KeyError:
        raise ValueError(
            f"unknown mechanism {name!r}; expected one of {'|'.join(MECHANISMS)}"
        ) from None
    return cls(seed=seed, **params)


__all__ = [
    "GaussianNoiseMechanism",
    "GazeJitterMechanism",
    "MECHANISMS",
    "NoMechanism",
    "NoiseMechanism",
    "QuantizationMechanism",
    "build_mechanism",
    "quantize",
]
