import logging

import numpy as np
import pytest

from motion_privacy.control.consumers import (
    DisplacementStats,
    LoggingAnalyticsConsumer,
    TuiPoseConsumer,
)
from motion_privacy.control.events import PrivatizedPoseEvent
from motion_privacy.control.pose import Pose6D, TrackedJoint


def _pose(x: float, y: float, z: float) -> Pose6D:
    return Pose6D(
        position=np.array([x, y, z], dtype=np.float64),
        quaternion=np.array([1.0, 0.0, 0.0, 0.0], dtype=np.float64),
    )


def _event(joint, raw, private, frame_index=0, restored=False):
    return PrivatizedPoseEvent(
        joint=joint,
        raw_pose=raw,
        privatized_pose=private,
        frame_index=frame_index,
        mechanism="gaussian",
        restored=restored,
    )


def test_event_arrays_are_read_only_copies():
    raw = _pose(0.3, 1.0, 0.2)
    event = _event(TrackedJoint.LEFT_HAND, raw, _pose(0.3, 1.0, 0.25))
    raw.position[0] = 9.0
    assert event.raw_pose.position[0] == 0.3
    with pytest.raises(ValueError):
        event.privatized_pose.position[0] = 1.0
    assert event.displacement == pytest.approx(0.05)


def test_displacement_stats_skip_gaze_and_restored_events():
    stats = DisplacementStats()
    stats(_event(TrackedJoint.LEFT_HAND, _pose(0, 1, 0), _pose(0.03, 1, 0)))
    stats(_event(TrackedJoint.LEFT_HAND, _pose(0, 1, 0), _pose(0, 1, 0.05), frame_index=1))
    stats(_event(TrackedJoint.EYE_GAZE, _pose(0, 1.6, 0), _pose(0, 1.6, 0)))
    stats(_event(TrackedJoint.LEFT_HAND, _pose(0, 1, 0), _pose(0, 1, 0), restored=True))

    assert set(stats.joints) == {TrackedJoint.LEFT_HAND}
    hand = stats.joints[TrackedJoint.LEFT_HAND]
    assert hand.count == 2
    assert hand.mean == pytest.approx(0.04)
    assert hand.maximum == pytest.approx(0.05)
    assert stats.summary_lines()[0].startswith("left_hand")


def test_logging_consumer_respects_every_n(caplog):
    consumer = LoggingAnalyticsConsumer(every_n=2)
    with caplog.at_level(logging.INFO):
        for i in range(4):
            consumer(_event(TrackedJoint.HEAD, _pose(0, 1.6, 0), _pose(0, 1.6, 0), frame_index=i))
    lines = [r.getMessage() for r in caplog.records if r.getMessage().startswith("[POSE] frame=")]
    assert len(lines) == 2
    assert "frame=0" in lines[0] and "frame=2" in lines[1]


def test_logging_consumer_formats_gaze(caplog):
    consumer = LoggingAnalyticsConsumer()
    with caplog.at_level(logging.INFO):
        consumer(_event(TrackedJoint.EYE_GAZE, _pose(0, 1.6, 0), _pose(0, 1.6, 0)))
    assert "yaw/pitch" in caplog.text


class _StatusSink:
    def __init__(self):
        self.status = ""

    def set_status(self, text):
        self.status = text


def test_tui_consumer_pushes_status_to_tracking_source():
    sink = _StatusSink()
    consumer = TuiPoseConsumer(tracking_source=sink, cli_output="scroll", display_hz=1000.0)
    consumer(_event(TrackedJoint.RIGHT_HAND, _pose(-0.3, 1, 0.2), _pose(-0.3, 1, 0.21)))
    consumer(_event(TrackedJoint.EYE_GAZE, _pose(0, 1.6, 0), _pose(0, 1.6, 0)))
    assert "right_hand" in sink.status
    assert "eye_gaze" in sink.status


def test_tui_consumer_renders_only_complete_frames():
    sink = _StatusSink()
    consumer = TuiPoseConsumer(tracking_source=sink, cli_output="scroll", display_hz=1000.0)
    consumer(_event(TrackedJoint.HEAD, _pose(0, 1.6, 0), _pose(0, 1.6, 0), frame_index=0))
    consumer(_event(TrackedJoint.LEFT_HAND, _pose(0.3, 1, 0.2), _pose(0.3, 1, 0.2), frame_index=0))
    consumer(_event(TrackedJoint.EYE_GAZE, _pose(0, 1.6, 0), _pose(0, 1.6, 0), frame_index=0))
    assert "0.300" in sink.status

    # Head of the next frame alone must not redraw with stale hand data.
    sink.status = ""
    consumer(_event(TrackedJoint.HEAD, _pose(0, 1.7, 0), _pose(0, 1.7, 0), frame_index=1))
    assert sink.status == ""
    consumer(_event(TrackedJoint.LEFT_HAND, _pose(0.4, 1, 0.2), _pose(0.4, 1, 0.2), frame_index=1))
    assert sink.status == ""
    consumer.last_display_t = 0.0
    consumer(_event(TrackedJoint.EYE_GAZE, _pose(0, 1.7, 0), _pose(0, 1.7, 0), frame_index=1))
    assert "1.700" in sink.status
    assert "0.400" in sink.status


def test_tui_consumer_renders_gazeless_frame_when_next_frame_starts():
    sink = _StatusSink()
    consumer = TuiPoseConsumer(tracking_source=sink, cli_output="scroll", display_hz=1000.0)
    consumer(_event(TrackedJoint.LEFT_HAND, _pose(0.3, 1, 0.2), _pose(0.3, 1, 0.2), frame_index=0))
    assert sink.status == ""
    consumer.last_display_t = 0.0
    consumer(_event(TrackedJoint.LEFT_HAND, _pose(0.5, 1, 0.2), _pose(0.5, 1, 0.2), frame_index=1))
    assert "0.300" in sink.status
    assert "0.500" not in sink.status
    consumer.last_display_t = 0.0
    consumer.close()
    assert "0.500" in sink.status


def test_tui_consumer_disabled_display_renders_nothing():
    sink = _StatusSink()
    consumer = TuiPoseConsumer(tracking_source=sink, cli_output="scroll", display_hz=0.0)
    consumer(_event(TrackedJoint.RIGHT_HAND, _pose(-0.3, 1, 0.2), _pose(-0.3, 1, 0.21)))
    assert sink.status == ""
