"""Pose consumers: analytics logging, live terminal panel, displacement stats."""

from __future__ import annotations

import logging
import sys
import time
from dataclasses import dataclass

import numpy as np

from ..math3d.coords import vec_to_yaw_pitch_deg
from ..math3d.quaternion import FORWARD, q_rotate_vec
from .events import PrivatizedPoseEvent
from .pose import ALL_JOINTS, TrackedJoint
from .tracking_source import TrackingSource

logger = logging.getLogger(__name__)


class PoseConsumerBase:
    """Base consumer interface. Instances are subscribed as callables."""

    def __call__(self, event: PrivatizedPoseEvent) -> None:
        self.consume(event)

    def consume(self, event: PrivatizedPoseEvent) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass


def _fmt_vec(v: np.ndarray, digits: int = 3) -> str:
    return "[" + ", ".join(f"{float(x): .{digits}f}" for x in v) + "]"


def _gaze_yaw_pitch(q: np.ndarray) -> tuple[float, float]:
    return vec_to_yaw_pitch_deg(q_rotate_vec(q, FORWARD))


def _event_line(event: PrivatizedPoseEvent) -> str:
    if event.joint is TrackedJoint.EYE_GAZE:
        ry, rp = _gaze_yaw_pitch(event.raw_pose.quaternion)
        py, pp = _gaze_yaw_pitch(event.privatized_pose.quaternion)
        return (
            f"{event.joint.value:<10} raw yaw/pitch=({ry: .2f}, {rp: .2f}) deg  "
            f"private=({py: .2f}, {pp: .2f}) deg"
        )
    return (
        f"{event.joint.value:<10} raw={_fmt_vec(event.raw_pose.position)}  "
        f"private={_fmt_vec(event.privatized_pose.position)}  "
        f"|d|={event.displacement:.4f} m"
    )


class LoggingAnalyticsConsumer(PoseConsumerBase):
    """Logs raw vs privatized values per joint, every ``every_n`` frames."""

    def __init__(self, every_n: int = 1, level: int = logging.INFO):
        self.every_n = max(1, int(every_n))
        self.level = level

    def consume(self, event: PrivatizedPoseEvent) -> None:
        if not event.restored and event.frame_index % self.every_n != 0:
            return
        logger.log(
            self.level,
            "[POSE] frame=%d mech=%s%s %s",
            event.frame_index,
            event.mechanism,
            " restored" if event.restored else "",
            _event_line(event),
        )


@dataclass(slots=True)
class JointDisplacement:
    count: int = 0
    total: float = 0.0
    maximum: float = 0.0

    @property
    def mean(self) -> float:
        return self.total / self.count if self.count else 0.0


class DisplacementStats(PoseConsumerBase):
    """Running positional displacement statistics per joint."""

    def __init__(self):
        self.joints: dict[TrackedJoint, JointDisplacement] = {}

    def consume(self, event: PrivatizedPoseEvent) -> None:
        if event.joint is TrackedJoint.EYE_GAZE or event.restored:
            return
        stats = self.joints.setdefault(event.joint, JointDisplacement())
        d = event.displacement
        stats.count += 1
        stats.total += d
        stats.maximum = max(stats.maximum, d)

    def summary_lines(self) -> list[str]:
        return [
            f"{joint.value:<10} n={s.count} mean={s.mean:.4f} m max={s.maximum:.4f} m"
            for joint, s in self.joints.items()
        ]


class _CliStatsSink:
    def __init__(self, mode: str):
        self.mode = "live" if mode == "live" else "scroll"
        self._is_tty = bool(getattr(sys.stderr, "isatty", lambda: False)())
        self._live_enabled = self.mode == "live" and self._is_tty
        self._line_count = 0

    def emit(self, lines: list[str], scroll_line: str) -> None:
        if not self._live_enabled:
            logger.info(scroll_line)
            return

        out = sys.stderr
        if self._line_count > 0:
            out.write(f"\x1b[{self._line_count}F")

        max_lines = max(self._line_count, len(lines))
        for i in range(max_lines):
            line = lines[i] if i < len(lines) else ""
            out.write("\x1b[2K")
            out.write(line)
            out.write("\n")
        out.flush()
        self._line_count = len(lines)


class TuiPoseConsumer(PoseConsumerBase):
    """Terminal panel refreshed at most ``display_hz`` times per second.

    Renders whole frames only: after the frame's gaze event (always emitted
    last), or when the first event of a later frame shows the previous one
    is complete.
    """

    def __init__(
        self,
        tracking_source: TrackingSource | None = None,
        cli_output: str = "live",
        display_hz: float = 5.0,
    ):
        self.tracking_source = tracking_source
        self.cli_sink = _CliStatsSink(cli_output)
        self.display_interval = (1.0 / display_hz) if display_hz > 0.0 else 0.0
        self.last_display_t = 0.0
        self._latest: dict[TrackedJoint, PrivatizedPoseEvent] = {}
        self._pending: PrivatizedPoseEvent | None = None

    def consume(self, event: PrivatizedPoseEvent) -> None:
        pending = self._pending
        if pending is not None and (
            event.frame_index != pending.frame_index or event.restored != pending.restored
        ):
            self._frame_done(pending)
        self._latest[event.joint] = event
        self._pending = event
        if event.joint is TrackedJoint.EYE_GAZE:
            self._frame_done(event)

    def _frame_done(self, event: PrivatizedPoseEvent) -> None:
        self._pending = None
        if self.display_interval <= 0.0:
            return
        now = time.time()
        if event.restored or (now - self.last_display_t) >= self.display_interval:
            self._render(event)
            self.last_display_t = now

    def close(self) -> None:
        if self._pending is not None:
            self._frame_done(self._pending)

    def _render(self, event: PrivatizedPoseEvent) -> None:
        joint_lines = [_event_line(self._latest[j]) for j in ALL_JOINTS if j in self._latest]
        if self.tracking_source is not None:
            self.tracking_source.set_status("\n".join(joint_lines))
        self.cli_sink.emit(
            lines=[
                "Motion Privacy Live",
                f"frame         = {event.frame_index}",
                f"mechanism     = {event.mechanism}",
                *joint_lines,
            ],
            scroll_line="[POSE] frame=%d %s" % (event.frame_index, " | ".join(joint_lines)),
        )
