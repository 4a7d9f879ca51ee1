import numpy as np

from motion_privacy.app import (
    build_consumers,
    build_pipeline,
    build_synthetic_source,
    build_tracking_source,
    main,
    wait_until_ready,
)
from motion_privacy.config import AppConfig
from motion_privacy.control.consumers import LoggingAnalyticsConsumer, TuiPoseConsumer
from motion_privacy.control.pose import JointCategory, TrackedJoint
from motion_privacy.control.tracking_source import TrackingSource
from motion_privacy.tracking_sources import SyntheticTrackingSource


class _NeverReady(TrackingSource):
    def is_ready(self):
        return False


def test_pipeline_from_config_privatizes_synthetic_frames():
    cfg = AppConfig(context="competitive", strength_percent=60.0, seed=5, max_displacement=0.05)
    source = build_synthetic_source(cfg)
    received = []
    pipeline = build_pipeline(cfg, source, consumers=[received.append])

    assert pipeline.head_category is JointCategory.EYE
    for _ in range(20):
        pipeline.tick()
        source.advance()

    assert {e.joint for e in received} == set(TrackedJoint)
    assert all(e.mechanism == "gaussian" for e in received)
    assert max(e.displacement for e in received) <= 0.05 + 1e-9
    assert pipeline.profiles.hand.strength == 90.0


def test_seeded_runs_are_reproducible():
    cfg = AppConfig(seed=3, dropout=0.2)

    def run():
        source = build_synthetic_source(cfg)
        out = []
        pipeline = build_pipeline(cfg, source, consumers=[out.append])
        for _ in range(10):
            pipeline.tick()
            source.advance()
        return [(e.joint, e.privatized_pose.position.copy()) for e in out]

    a, b = run(), run()
    assert [j for j, _ in a] == [j for j, _ in b]
    for (_, pa), (_, pb) in zip(a, b):
        np.testing.assert_array_equal(pa, pb)


def test_wait_until_ready_times_out():
    assert wait_until_ready(_NeverReady(), timeout_s=0.0) is False
    assert wait_until_ready(SyntheticTrackingSource(), timeout_s=0.0) is True


def test_build_consumers_by_display_mode():
    source = SyntheticTrackingSource()
    assert build_consumers(AppConfig(display="none"), source) == []
    (log,) = build_consumers(AppConfig(display="log", frame_hz=60.0, display_hz=10.0), source)
    assert isinstance(log, LoggingAnalyticsConsumer)
    assert log.every_n == 6
    (tui,) = build_consumers(AppConfig(display="tui"), source)
    assert isinstance(tui, TuiPoseConsumer)


def test_build_tracking_source_synthetic():
    source = build_tracking_source(AppConfig(tracking_source="synthetic"), [None])
    assert isinstance(source, SyntheticTrackingSource)


def test_main_runs_bounded_synthetic_session(caplog):
    with caplog.at_level("INFO"):
        main(["--max-frames", "5", "--frame-hz", "200", "--display", "none", "--seed", "1"])
    assert "[PRIVACY] displacement head" in caplog.text
