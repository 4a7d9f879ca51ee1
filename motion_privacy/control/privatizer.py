"""Per-joint privatization transforms.

These functions receive copies of the reference pose and return new arrays.
They hold no handle on the reference cache, so privatized output cannot be
written back as a reference.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ..math3d.coords import normalize_or
from ..math3d.quaternion import FORWARD, look_rotation_to_q, q_rotate_vec
from .clamper import DEFAULT_GROUND_BUFFER_M, GroundQuery, clamp_displacement, clamp_position
from .frame_converter import ReferenceFrame, to_local_point
from .pose import JointCategory, Pose6D
from .profile import PrivacyProfile

MIN_GAZE_PROJECT_DISTANCE_M = 0.01


def privatize_pose(
    original: Pose6D,
    frame: ReferenceFrame,
    profile: PrivacyProfile,
    category: JointCategory,
    max_displacement: float,
    ground_query: GroundQuery | None = None,
    ground_buffer: float = DEFAULT_GROUND_BUFFER_M,
) -> Pose6D:
    """world -> local -> mechanism -> world offset -> clamp. Orientation passes through.

    Only the mechanism's local displacement is rotated back to world space and
    added to the original, so a zero displacement returns the original exactly.
    """
    local_position = to_local_point(frame, original.position)
    noisy_local = profile.mechanism.perturb_position(local_position, category, profile.strength)
    offset = _local_offset_to_world(frame, noisy_local - local_position)
    position = clamp_position(
        original.position + offset,
        original.position,
        max_displacement,
        ground_query=ground_query,
        ground_buffer=ground_buffer,
    )
    return Pose6D(position=position, quaternion=np.array(original.quaternion, dtype=np.float64))


def _local_offset_to_world(frame: ReferenceFrame, local_offset: np.ndarray) -> np.ndarray:
    local_offset = np.asarray(local_offset, dtype=np.float64).reshape(3)
    if not local_offset.any():
        return np.zeros(3, dtype=np.float64)
    return q_rotate_vec(frame.origin.quaternion, local_offset)


def gaze_direction(orientation: np.ndarray) -> np.ndarray:
    return normalize_or(q_rotate_vec(orientation, FORWARD), FORWARD)


@dataclass(slots=True)
class GazeResult:
    raw_direction: np.ndarray
    privatized_direction: np.ndarray
    raw_quaternion: np.ndarray
    privatized_quaternion: np.ndarray


def privatize_gaze(
    head_position: np.ndarray,
    gaze_orientation: np.ndarray,
    frame: ReferenceFrame,
    profile: PrivacyProfile,
    max_displacement: float,
    project_distance: float,
) -> GazeResult:
    """Privatize a gaze direction by perturbing a point projected ahead of the head.

    The projected point goes through the same local-space mechanism and
    displacement clamp as a positional joint (no ground snap). A direction that
    collapses to near zero after noise falls back to the pre-noise direction,
    and an unperturbed point keeps the raw direction exactly.
    """
    head = np.asarray(head_position, dtype=np.float64).reshape(3)
    raw_dir = gaze_direction(gaze_orientation)
    d = max(MIN_GAZE_PROJECT_DISTANCE_M, float(project_distance))
    point = head + raw_dir * d

    local_point = to_local_point(frame, point)
    noisy_local = profile.mechanism.perturb_position(local_point, JointCategory.EYE, profile.strength)
    offset = clamp_displacement(
        _local_offset_to_world(frame, noisy_local - local_point), np.zeros(3), max_displacement
    )

    priv_dir = raw_dir.copy()
    if offset.any():
        priv_dir = normalize_or(raw_dir * d + offset, raw_dir)
    jittered = profile.mechanism.jitter_direction(priv_dir, profile.strength)
    if not np.array_equal(jittered, priv_dir):
        priv_dir = normalize_or(jittered, raw_dir)
    return GazeResult(
        raw_direction=raw_dir,
        privatized_direction=priv_dir,
        raw_quaternion=look_rotation_to_q(raw_dir),
        privatized_quaternion=look_rotation_to_q(priv_dir),
    )
