"""Drift-free store of the true (raw) pose per tracked joint.

Only raw tracking samples are written here. Privatized output is produced
from copies returned by ``get`` and never flows back, so noise cannot
accumulate across frames.
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass

from .pose import Pose6D, TrackedJoint, copy_pose, is_valid_pose, normalized_pose

logger = logging.getLogger(__name__)


class JointState(enum.Enum):
    NO_RECORD = "no-record"
    TRACKING = "tracking"


@dataclass(slots=True)
class OriginalPoseRecord:
    pose: Pose6D
    # Frame index of the first valid sample since the last reset.
    valid_since: int
    last_update_frame: int


class PoseReferenceCache:
    def __init__(self, glitch_log_interval_s: float = 2.0):
        self._records: dict[TrackedJoint, OriginalPoseRecord] = {}
        self._glitch_log_interval_s = max(0.0, float(glitch_log_interval_s))
        self._last_glitch_log_t: dict[TrackedJoint, float] = {}
        self._glitch_counts: dict[TrackedJoint, int] = {}

    def update(self, joint: TrackedJoint, candidate: Pose6D | None, frame_index: int) -> bool:
        """Store candidate if valid. Returns True when the stored pose changed.

        ``None`` means untracked this frame and keeps the prior pose silently.
        An invalid sample (NaN/Inf, zero quaternion) is a tracking glitch: it is
        dropped and the prior pose is retained.
        """
        if candidate is None:
            return False
        if not is_valid_pose(candidate):
            self._note_glitch(joint)
            return False

        pose = normalized_pose(candidate)
        record = self._records.get(joint)
        if record is None:
            self._records[joint] = OriginalPoseRecord(
                pose=pose, valid_since=frame_index, last_update_frame=frame_index
            )
            logger.info("[POSE] %s tracking (frame=%d)", joint.value, frame_index)
        else:
            record.pose = pose
            record.last_update_frame = frame_index
        return True

    def _note_glitch(self, joint: TrackedJoint) -> None:
        self._glitch_counts[joint] = self._glitch_counts.get(joint, 0) + 1
        now = time.monotonic()
        last = self._last_glitch_log_t.get(joint)
        if last is not None and (now - last) < self._glitch_log_interval_s:
            return
        self._last_glitch_log_t[joint] = now
        logger.warning(
            "[POSE] dropped invalid %s sample (glitches=%d), keeping previous pose",
            joint.value,
            self._glitch_counts[joint],
        )

    def get(self, joint: TrackedJoint) -> Pose6D | None:
        record = self._records.get(joint)
        if record is None:
            return None
        return copy_pose(record.pose)

    def record(self, joint: TrackedJoint) -> OriginalPoseRecord | None:
        record = self._records.get(joint)
        if record is None:
            return None
        return OriginalPoseRecord(
            pose=copy_pose(record.pose),
            valid_since=record.valid_since,
            last_update_frame=record.last_update_frame,
        )

    def state(self, joint: TrackedJoint) -> JointState:
        return JointState.TRACKING if joint in self._records else JointState.NO_RECORD

    def tracked_joints(self) -> list[TrackedJoint]:
        return list(self._records)

    def glitch_count(self, joint: TrackedJoint) -> int:
        return self._glitch_counts.get(joint, 0)

    def reset(self, joint: TrackedJoint | None = None) -> None:
        """Recalibration: forget the reference so the next valid sample replaces it."""
        if joint is None:
            self._records.clear()
            logger.info("[POSE] reference poses reset for all joints")
            return
        if self._records.pop(joint, None) is not None:
            logger.info("[POSE] reference pose reset for %s", joint.value)
