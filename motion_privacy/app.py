"""
Motion privacy runtime:
- Tracking source (synthetic / UDP device bridge / Tk sliders) drives frames
- Pose reference cache keeps the true pose per joint (no noise feedback)
- Rig-local privacy mechanism (gaussian / quantization / gaze-jitter / none)
- Displacement clamp + ground correction
- (raw, privatized) events delivered to consumers (TUI / log / stats)

Deps:
  uv add numpy pyyaml
"""

from __future__ import annotations

import logging
import time

import numpy as np

from .config import AppConfig, parse_args
from .control.clamper import FlatGroundQuery, GroundQuery
from .control.consumers import DisplacementStats, LoggingAnalyticsConsumer, TuiPoseConsumer
from .control.frame_converter import ReferenceFrame
from .control.pipeline import PrivatizationPipeline
from .control.pose import JointCategory
from .control.profile import ApplicationContext, ProfileSelector
from .control.tracking_source import TrackingSource
from .mechanisms import GaussianNoiseMechanism, GazeJitterMechanism, NoiseMechanism, build_mechanism
from .tracking_sources.synthetic import SyntheticTrackingSource

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_mechanism_from_config(cfg: AppConfig, name: str, seed: int | None) -> NoiseMechanism:
    if name == GaussianNoiseMechanism.name:
        return build_mechanism(
            name,
            seed=seed,
            eye_scale=cfg.eye_scale,
            hand_scale=cfg.hand_scale,
            body_scale=cfg.body_scale,
        )
    if name == GazeJitterMechanism.name:
        return build_mechanism(name, seed=seed, angle_scale=cfg.gaze_jitter_scale)
    return build_mechanism(name, seed=seed)


def build_profile_selector(cfg: AppConfig) -> ProfileSelector:
    # Independent generators per context, derived from one seed when given.
    seeds = [None, None] if cfg.seed is None else [cfg.seed, cfg.seed + 1]
    selector = ProfileSelector(
        mechanisms={
            ApplicationContext.COMPETITIVE: build_mechanism_from_config(
                cfg, cfg.competitive_mechanism, seeds[0]
            ),
            ApplicationContext.CASUAL: build_mechanism_from_config(
                cfg, cfg.casual_mechanism, seeds[1]
            ),
        },
        multipliers={
            ApplicationContext.COMPETITIVE: cfg.competitive_multiplier,
            ApplicationContext.CASUAL: cfg.casual_multiplier,
        },
    )
    logger.info(
        "[PROFILE] competitive=%s (x%.2f) casual=%s (x%.2f)",
        cfg.competitive_mechanism,
        cfg.competitive_multiplier,
        cfg.casual_mechanism,
        cfg.casual_multiplier,
    )
    return selector


def build_ground_query(cfg: AppConfig) -> GroundQuery | None:
    if cfg.ground == "none":
        return None
    if cfg.ground == "flat":
        logger.info(
            "[GROUND] flat floor at y=%.3f m (buffer=%.3f m)", cfg.ground_height, cfg.ground_buffer
        )
        return FlatGroundQuery(cfg.ground_height)
    raise RuntimeError(f"Unsupported ground mode: {cfg.ground}")


def build_reference_frame(cfg: AppConfig) -> ReferenceFrame:
    return ReferenceFrame.from_position_yaw(
        np.array([cfg.rig_x, cfg.rig_y, cfg.rig_z], dtype=np.float64), cfg.rig_yaw_deg
    )


def build_synthetic_source(cfg: AppConfig) -> SyntheticTrackingSource:
    return SyntheticTrackingSource(
        frame_hz=cfg.frame_hz,
        max_frames=cfg.max_frames,
        dropout=cfg.dropout,
        seed=None if cfg.seed is None else cfg.seed + 2,
    )


def build_tracking_source(cfg: AppConfig, pipeline_ref: list) -> TrackingSource:
    """``pipeline_ref`` is filled in after construction; the Tk panel calls into it."""
    if cfg.tracking_source == "synthetic":
        return build_synthetic_source(cfg)

    try:
        if cfg.tracking_source == "udp":
            from .tracking_sources.udp_bridge import UdpBridgeTrackingSource

            return UdpBridgeTrackingSource(
                host=cfg.udp_host,
                port=cfg.udp_port,
                poll_ms=cfg.poll_ms,
            )

        if cfg.tracking_source == "toy":
            from .tracking_sources.toy_tk import ToyTkTrackingSource

            def on_profile_change(context: str, strength: float) -> None:
                pipeline_ref[0].select_profile(ApplicationContext(context), strength)

            return ToyTkTrackingSource(
                title="Motion Privacy - Toy Tracking",
                on_profile_change=on_profile_change,
                on_enabled_change=lambda enabled: pipeline_ref[0].set_enabled(enabled),
                on_recalibrate=lambda: pipeline_ref[0].recalibrate(),
                initial_context=cfg.context,
                initial_strength=cfg.strength_percent,
            )
        raise RuntimeError(f"Unsupported tracking source: {cfg.tracking_source}")
    except (ImportError, RuntimeError, OSError):
        logger.exception("[POSE] failed to init requested tracking source")
        logger.warning("[POSE] fallback to synthetic motion")
        return build_synthetic_source(cfg)


def wait_until_ready(source: TrackingSource, timeout_s: float, poll_s: float = 0.05) -> bool:
    """Block until the source reports ready or timeout_s elapses."""
    deadline = time.monotonic() + max(0.0, timeout_s)
    while True:
        if source.is_ready():
            return True
        if time.monotonic() >= deadline:
            return False
        time.sleep(poll_s)


def build_consumers(cfg: AppConfig, source: TrackingSource) -> list:
    if cfg.display == "tui":
        return [TuiPoseConsumer(tracking_source=source, cli_output=cfg.cli_output, display_hz=cfg.display_hz)]
    if cfg.display == "log":
        every_n = max(1, int(round(cfg.frame_hz / cfg.display_hz))) if cfg.display_hz > 0.0 else 1
        return [LoggingAnalyticsConsumer(every_n=every_n)]
    return []


def build_pipeline(cfg: AppConfig, source: TrackingSource, consumers=()) -> PrivatizationPipeline:
    selector = build_profile_selector(cfg)
    pipeline = PrivatizationPipeline(
        tracking_source=source,
        profile_selector=selector,
        reference_frame=build_reference_frame(cfg),
        max_displacement=cfg.max_displacement,
        ground_query=build_ground_query(cfg),
        ground_buffer=cfg.ground_buffer,
        gaze_project_distance=cfg.gaze_project_distance,
        head_category=JointCategory(cfg.head_noise),
        consumers=consumers,
        enabled=cfg.privacy_enabled,
    )
    pipeline.select_profile(ApplicationContext(cfg.context), cfg.strength_percent)
    logger.info(
        "[PRIVACY] max_displacement=%.3f m gaze_distance=%.2f m head_noise=%s enabled=%s",
        cfg.max_displacement,
        cfg.gaze_project_distance,
        cfg.head_noise,
        cfg.privacy_enabled,
    )
    return pipeline


def main(argv=None):
    cfg = parse_args(argv)
    configure_logging(cfg.log_level)

    pipeline_ref: list = [None]
    source = build_tracking_source(cfg, pipeline_ref)
    if not wait_until_ready(source, cfg.ready_timeout_s):
        logger.warning(
            "[POSE] tracking source not ready after %.1fs; joints stay untracked until samples arrive",
            cfg.ready_timeout_s,
        )

    stats = DisplacementStats()
    consumers = build_consumers(cfg, source)
    pipeline = build_pipeline(cfg, source, consumers=[*consumers, stats])
    pipeline_ref[0] = pipeline

    try:
        source.run(pipeline.tick)
    except KeyboardInterrupt:
        logger.info("[FRAME] interrupted")
    finally:
        try:
            pipeline.set_enabled(False)
        finally:
            for consumer in consumers:
                consumer.close()
            source.close()
        for line in stats.summary_lines():
            logger.info("[PRIVACY] displacement %s", line)


if __name__ == "__main__":
    main()
