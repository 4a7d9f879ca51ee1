"""Explicit no-privacy mechanism."""

from __future__ import annotations

from .base import NoiseMechanism, ZeroNoiseMixin


class NoMechanism(ZeroNoiseMixin, NoiseMechanism):
    """Zero displacement. A selectable "no privacy" choice, distinct from a missing mechanism."""

    name = "none"
