"""Per-frame output events delivered to pose consumers."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .pose import Pose6D, TrackedJoint


def _frozen_pose(pose: Pose6D) -> Pose6D:
    p = np.array(pose.position, dtype=np.float64, copy=True).reshape(3)
    q = np.array(pose.quaternion, dtype=np.float64, copy=True).reshape(4)
    p.setflags(write=False)
    q.setflags(write=False)
    return Pose6D(position=p, quaternion=q)


@dataclass(frozen=True, slots=True)
class PrivatizedPoseEvent:
    """Raw/privatized pair for one joint in one frame.

    Pose arrays are copied and marked read-only on construction.
    ``restored`` is set on events emitted by a restore-on-disable.
    """

    joint: TrackedJoint
    raw_pose: Pose6D
    privatized_pose: Pose6D
    frame_index: int
    mechanism: str
    restored: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "raw_pose", _frozen_pose(self.raw_pose))
        object.__setattr__(self, "privatized_pose", _frozen_pose(self.privatized_pose))

    @property
    def displacement(self) -> float:
        d = self.privatized_pose.position - self.raw_pose.position
        return float(np.linalg.norm(d))
