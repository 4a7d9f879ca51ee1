"""Deterministic synthetic motion for demos and headless runs."""

from __future__ import annotations

import logging
import math
import time

import numpy as np

from ..control.pose import Pose6D, TrackedJoint
from ..control.tracking_source import TrackingSource
from ..math3d.quaternion import euler_yaw_pitch_roll_to_q

logger = logging.getLogger(__name__)


class SyntheticTrackingSource(TrackingSource):
    """Standing user: swaying head, hands tracing circles, gaze scanning left/right.

    ``dropout`` is the per-joint probability of an untracked (None) sample,
    drawn from a generator owned by this source.
    """

    def __init__(
        self,
        frame_hz: float = 72.0,
        head_height: float = 1.6,
        max_frames: int = 0,
        dropout: float = 0.0,
        seed: int | None = None,
        realtime: bool = True,
    ):
        self.frame_hz = max(1.0, float(frame_hz))
        self.head_height = float(head_height)
        self.max_frames = max(0, int(max_frames))
        self.dropout = min(1.0, max(0.0, float(dropout)))
        self.realtime = bool(realtime)
        self._rng = np.random.default_rng(seed)
        self._t = 0.0
        self._frame = 0
        self._closed = False
        self._status_text = ""

    @property
    def t(self) -> float:
        return self._t

    def advance(self) -> None:
        self._frame += 1
        self._t = self._frame / self.frame_hz

    def _dropped(self) -> bool:
        return self.dropout > 0.0 and float(self._rng.random()) < self.dropout

    def get_pose(self, joint: TrackedJoint) -> Pose6D | None:
        if self._dropped():
            return None
        t = self._t
        sway_yaw = 20.0 * math.sin(0.5 * t)
        head_q = euler_yaw_pitch_roll_to_q(sway_yaw, 5.0 * math.sin(0.3 * t), 0.0)
        head_p = np.array(
            [0.05 * math.sin(0.5 * t), self.head_height + 0.01 * math.sin(2.0 * t), 0.0],
            dtype=np.float64,
        )
        if joint is TrackedJoint.HEAD:
            return Pose6D(position=head_p, quaternion=head_q)
        if joint is TrackedJoint.EYE_GAZE:
            scan = sway_yaw + 15.0 * math.sin(1.3 * t)
            return Pose6D(
                position=head_p,
                quaternion=euler_yaw_pitch_roll_to_q(scan, -10.0, 0.0),
            )
        side = -1.0 if joint is TrackedJoint.LEFT_HAND else 1.0
        phase = 0.0 if side < 0.0 else math.pi
        hand_p = np.array(
            [
                side * 0.25 + 0.08 * math.cos(t + phase),
                self.head_height - 0.55 + 0.08 * math.sin(t + phase),
                0.3,
            ],
            dtype=np.float64,
        )
        return Pose6D(position=hand_p, quaternion=euler_yaw_pitch_roll_to_q(0.0, -30.0, side * 10.0))

    def set_status(self, text: str) -> None:
        self._status_text = text

    def run(self, on_tick):
        logger.info(
            "[POSE] source=synthetic (frame_hz=%.1f, max_frames=%s, dropout=%.2f)",
            self.frame_hz,
            self.max_frames or "unbounded",
            self.dropout,
        )
        period = 1.0 / self.frame_hz
        while not self._closed:
            start = time.monotonic()
            on_tick()
            self.advance()
            if self.max_frames and self._frame >= self.max_frames:
                break
            if self.realtime:
                time.sleep(max(0.0, period - (time.monotonic() - start)))

    def stop(self) -> None:
        self._closed = True

    def close(self) -> None:
        self._closed = True
