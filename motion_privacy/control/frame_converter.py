"""World <-> rig-local pose conversion.

Privacy mechanisms run in the local frame so their output does not depend on
where the rig origin sits in the world.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ..math3d.quaternion import euler_yaw_pitch_roll_to_q, q_conj, q_mul, q_normalize, q_rotate_vec
from .pose import Pose6D, identity_pose


@dataclass(frozen=True, slots=True)
class ReferenceFrame:
    origin: Pose6D

    @classmethod
    def identity(cls) -> "ReferenceFrame":
        return cls(origin=identity_pose())

    @classmethod
    def from_position_yaw(cls, position: np.ndarray, yaw_deg: float) -> "ReferenceFrame":
        return cls(
            origin=Pose6D(
                position=np.asarray(position, dtype=np.float64).reshape(3).copy(),
                quaternion=euler_yaw_pitch_roll_to_q(yaw_deg, 0.0, 0.0),
            )
        )


def to_local_point(frame: ReferenceFrame, world_position: np.ndarray) -> np.ndarray:
    q0 = q_normalize(frame.origin.quaternion)
    rel = np.asarray(world_position, dtype=np.float64).reshape(3) - frame.origin.position
    return q_rotate_vec(q_conj(q0), rel)


def to_world_point(frame: ReferenceFrame, local_position: np.ndarray) -> np.ndarray:
    q0 = q_normalize(frame.origin.quaternion)
    return frame.origin.position + q_rotate_vec(q0, np.asarray(local_position, dtype=np.float64))


def to_local(frame: ReferenceFrame, world_pose: Pose6D) -> Pose6D:
    q0 = q_normalize(frame.origin.quaternion)
    return Pose6D(
        position=to_local_point(frame, world_pose.position),
        quaternion=q_normalize(q_mul(q_conj(q0), world_pose.quaternion)),
    )


def to_world(frame: ReferenceFrame, local_pose: Pose6D) -> Pose6D:
    q0 = q_normalize(frame.origin.quaternion)
    return Pose6D(
        position=to_world_point(frame, local_pose.position),
        quaternion=q_normalize(q_mul(q0, local_pose.quaternion)),
    )
