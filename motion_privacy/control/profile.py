"""Privacy profiles and application-context selection."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Mapping, Union

from ..mechanisms import NoiseMechanism, NoMechanism

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT_MULTIPLIERS = {
    "competitive": 1.5,
    "casual": 0.5,
}


class ApplicationContext(enum.Enum):
    COMPETITIVE = "competitive"
    CASUAL = "casual"


@dataclass(frozen=True, slots=True)
class PrivacyProfile:
    strength: float
    mechanism: NoiseMechanism

    def __post_init__(self) -> None:
        object.__setattr__(self, "strength", max(0.0, float(self.strength)))


@dataclass(frozen=True, slots=True)
class ProfileSet:
    """Active profiles for one frame. ``head`` also governs eye gaze."""

    head: PrivacyProfile
    hand: PrivacyProfile

    @classmethod
    def disabled(cls) -> "ProfileSet":
        off = PrivacyProfile(strength=0.0, mechanism=NoMechanism())
        return cls(head=off, hand=off)

    @classmethod
    def uniform(cls, mechanism: NoiseMechanism, strength: float) -> "ProfileSet":
        profile = PrivacyProfile(strength=strength, mechanism=mechanism)
        return cls(head=profile, hand=profile)


# Either one mechanism for every joint, or {"head": m, "hand": m}.
MechanismChoice = Union[NoiseMechanism, Mapping[str, NoiseMechanism]]


class ProfileSelector:
    """Maps {application context, strength percent} to a concrete ProfileSet."""

    def __init__(
        self,
        mechanisms: Mapping[ApplicationContext, MechanismChoice | None],
        multipliers: Mapping[ApplicationContext, float] | None = None,
    ):
        self.mechanisms = dict(mechanisms)
        if multipliers is None:
            multipliers = {
                ctx: DEFAULT_CONTEXT_MULTIPLIERS[ctx.value] for ctx in ApplicationContext
            }
        self.multipliers = {ctx: max(0.0, float(m)) for ctx, m in multipliers.items()}
        self._fallback = NoMechanism()

    def _resolve(
        self, context: ApplicationContext, choice: MechanismChoice | None, part: str
    ) -> NoiseMechanism:
        if isinstance(choice, NoiseMechanism):
            return choice
        if choice is not None:
            mech = choice.get(part)
            if isinstance(mech, NoiseMechanism):
                return mech
        logger.warning(
            "[PROFILE] no privacy mechanism configured for context=%s (%s); "
            "falling back to passthrough",
            context.value,
            part,
        )
        return self._fallback

    def select(self, context: ApplicationContext, strength_percent: float) -> ProfileSet:
        percent = min(100.0, max(0.0, float(strength_percent)))
        multiplier = self.multipliers.get(context, 1.0)
        strength = percent * multiplier
        choice = self.mechanisms.get(context)
        profiles = ProfileSet(
            head=PrivacyProfile(strength=strength, mechanism=self._resolve(context, choice, "head")),
            hand=PrivacyProfile(strength=strength, mechanism=self._resolve(context, choice, "hand")),
        )
        logger.info(
            "[PROFILE] context=%s strength=%.1f%% x%.2f -> %.3f head=%s hand=%s",
            context.value,
            percent,
            multiplier,
            strength,
            profiles.head.mechanism.name,
            profiles.hand.mechanism.name,
        )
        return profiles
