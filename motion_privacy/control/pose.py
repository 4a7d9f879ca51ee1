"""Pose data structures for tracked joints."""

from __future__ import annotations

import enum
from dataclasses import dataclass

import numpy as np

from ..math3d.quaternion import q_normalize


class TrackedJoint(enum.Enum):
    HEAD = "head"
    LEFT_HAND = "left_hand"
    RIGHT_HAND = "right_hand"
    # Direction only; position is taken from the head.
    EYE_GAZE = "eye_gaze"


class JointCategory(enum.Enum):
    """Noise scale categories, smallest displacement for EYE."""

    EYE = "eye"
    HAND = "hand"
    BODY = "body"


POSITIONAL_JOINTS = (TrackedJoint.HEAD, TrackedJoint.LEFT_HAND, TrackedJoint.RIGHT_HAND)
ALL_JOINTS = POSITIONAL_JOINTS + (TrackedJoint.EYE_GAZE,)


@dataclass(slots=True)
class Pose6D:
    """Joint pose in world space.

    position:
      3D translation [x, y, z], meters.
    quaternion:
      Orientation quaternion [w, x, y, z], unit length.
    """

    position: np.ndarray
    quaternion: np.ndarray


def identity_pose() -> Pose6D:
    return Pose6D(
        position=np.zeros(3, dtype=np.float64),
        quaternion=np.array([1.0, 0.0, 0.0, 0.0], dtype=np.float64),
    )


def copy_pose(pose: Pose6D) -> Pose6D:
    return Pose6D(
        position=np.array(pose.position, dtype=np.float64, copy=True).reshape(3),
        quaternion=np.array(pose.quaternion, dtype=np.float64, copy=True).reshape(4),
    )


def is_valid_pose(pose: Pose6D | None) -> bool:
    """Finite 3-vector position and finite, non-zero 4-vector quaternion."""
    if pose is None:
        return False
    try:
        p = np.asarray(pose.position, dtype=np.float64).reshape(-1)
        q = np.asarray(pose.quaternion, dtype=np.float64).reshape(-1)
    except (TypeError, ValueError):
        return False
    if p.size != 3 or q.size != 4:
        return False
    if not np.isfinite(p).all() or not np.isfinite(q).all():
        return False
    return float(np.dot(q, q)) > 1e-24


def normalized_pose(pose: Pose6D) -> Pose6D:
    """Copy of a valid pose with unit quaternion."""
    return Pose6D(
        position=np.array(pose.position, dtype=np.float64, copy=True).reshape(3),
        quaternion=q_normalize(np.asarray(pose.quaternion, dtype=np.float64).reshape(4)),
    )
