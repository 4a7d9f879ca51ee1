"""Per-frame pose privatization pipeline."""

from __future__ import annotations

import logging
from typing import Callable, Iterable

import numpy as np

from ..math3d.quaternion import look_rotation_to_q
from .clamper import DEFAULT_GROUND_BUFFER_M, GroundQuery
from .events import PrivatizedPoseEvent
from .frame_converter import ReferenceFrame
from .pose import (
    ALL_JOINTS,
    POSITIONAL_JOINTS,
    JointCategory,
    Pose6D,
    TrackedJoint,
    copy_pose,
)
from .privatizer import gaze_direction, privatize_gaze, privatize_pose
from .profile import ApplicationContext, ProfileSelector, ProfileSet
from .reference_cache import JointState, PoseReferenceCache
from .tracking_source import TrackingSource

logger = logging.getLogger(__name__)

PoseConsumer = Callable[[PrivatizedPoseEvent], None]

_UNSET = object()


class PrivatizationPipeline:
    """Drives one privatization pass per frame.

    All mutable state is owned here and touched only from ``tick`` and the
    queueing setters. Profile, reference frame and enabled-state changes are
    queued and applied together at the start of the next frame, so a single
    joint's transform chain never sees a half-applied swap.
    """

    def __init__(
        self,
        tracking_source: TrackingSource,
        profiles: ProfileSet | None = None,
        profile_selector: ProfileSelector | None = None,
        reference_frame: ReferenceFrame | None = None,
        max_displacement: float = 0.1,
        ground_query: GroundQuery | None = None,
        ground_buffer: float = DEFAULT_GROUND_BUFFER_M,
        gaze_project_distance: float = 1.0,
        head_category: JointCategory = JointCategory.EYE,
        consumers: Iterable[PoseConsumer] = (),
        enabled: bool = True,
        cache: PoseReferenceCache | None = None,
    ):
        self.tracking_source = tracking_source
        self.profile_selector = profile_selector
        self.max_displacement = float(max_displacement)
        self.ground_query = ground_query
        self.ground_buffer = float(ground_buffer)
        self.gaze_project_distance = float(gaze_project_distance)
        self.head_category = head_category
        self.cache = cache or PoseReferenceCache()

        self._passthrough = ProfileSet.disabled()
        self._profiles = profiles or self._passthrough
        self._frame = reference_frame or ReferenceFrame.identity()
        self._enabled = bool(enabled)
        self._pending_profiles: ProfileSet | None = None
        self._pending_frame: ReferenceFrame | None = None
        self._pending_enabled: object = _UNSET

        self._consumers: list[PoseConsumer] = list(consumers)
        self._outputs: dict[TrackedJoint, Pose6D] = {}
        self.frame_index = 0

    # Consumers

    def subscribe(self, consumer: PoseConsumer) -> None:
        if consumer not in self._consumers:
            self._consumers.append(consumer)

    def unsubscribe(self, consumer: PoseConsumer) -> None:
        try:
            self._consumers.remove(consumer)
        except ValueError:
            pass

    def _emit(self, event: PrivatizedPoseEvent) -> None:
        self._outputs[event.joint] = copy_pose(event.privatized_pose)
        for consumer in list(self._consumers):
            try:
                consumer(event)
            except Exception:  # noqa: BLE001
                logger.exception(
                    "[CONSUMER] %r failed on %s event (frame=%d)",
                    consumer,
                    event.joint.value,
                    event.frame_index,
                )

    # Queued configuration

    @property
    def profiles(self) -> ProfileSet:
        return self._profiles

    @property
    def reference_frame(self) -> ReferenceFrame:
        return self._frame

    @property
    def enabled(self) -> bool:
        return self._enabled

    def set_profiles(self, profiles: ProfileSet) -> None:
        self._pending_profiles = profiles

    def select_profile(self, context: ApplicationContext, strength_percent: float) -> ProfileSet:
        if self.profile_selector is None:
            raise RuntimeError("select_profile requires a ProfileSelector")
        profiles = self.profile_selector.select(context, strength_percent)
        self.set_profiles(profiles)
        return profiles

    def set_reference_frame(self, frame: ReferenceFrame) -> None:
        self._pending_frame = frame

    def recalibrate(self, joint: TrackedJoint | None = None) -> None:
        """Return joint(s) to NO_RECORD; the next valid sample becomes the reference."""
        self.cache.reset(joint)
        if joint is None:
            self._outputs.clear()
        else:
            self._outputs.pop(joint, None)

    def set_enabled(self, enabled: bool) -> None:
        """Enable/disable privatization.

        Disabling restores every tracked joint to its cached original pose
        right away, instead of leaving consumers on the last noisy pose.
        """
        enabled = bool(enabled)
        if enabled:
            self._pending_enabled = True
            return
        self._pending_enabled = _UNSET
        was_enabled = self._enabled
        self._enabled = False
        if was_enabled:
            logger.info("[PRIVACY] disabled, restoring original poses")
        self.restore()

    def restore(self) -> list[PrivatizedPoseEvent]:
        events = []
        for joint in ALL_JOINTS:
            original = self._original_for_output(joint)
            if original is None:
                continue
            event = PrivatizedPoseEvent(
                joint=joint,
                raw_pose=original,
                privatized_pose=original,
                frame_index=self.frame_index,
                mechanism="restore",
                restored=True,
            )
            self._emit(event)
            events.append(event)
        return events

    def _original_for_output(self, joint: TrackedJoint) -> Pose6D | None:
        if joint is not TrackedJoint.EYE_GAZE:
            return self.cache.get(joint)
        head = self.cache.get(TrackedJoint.HEAD)
        if head is None:
            return None
        direction = gaze_direction(self._raw_gaze_orientation(head))
        return Pose6D(position=head.position, quaternion=look_rotation_to_q(direction))

    def current_output(self, joint: TrackedJoint) -> Pose6D | None:
        out = self._outputs.get(joint)
        return None if out is None else copy_pose(out)

    def joint_state(self, joint: TrackedJoint) -> JointState:
        return self.cache.state(joint)

    # Frame loop

    def _apply_pending(self) -> None:
        if self._pending_frame is not None:
            self._frame = self._pending_frame
            self._pending_frame = None
            logger.info("[FRAME] reference frame updated (frame=%d)", self.frame_index)
        if self._pending_profiles is not None:
            self._profiles = self._pending_profiles
            self._pending_profiles = None
        if self._pending_enabled is not _UNSET:
            if not self._enabled:
                logger.info("[PRIVACY] enabled")
            self._enabled = bool(self._pending_enabled)
            self._pending_enabled = _UNSET

    def _category(self, joint: TrackedJoint) -> JointCategory:
        if joint in (TrackedJoint.LEFT_HAND, TrackedJoint.RIGHT_HAND):
            return JointCategory.HAND
        if joint is TrackedJoint.HEAD:
            return self.head_category
        return JointCategory.EYE

    def _raw_gaze_orientation(self, head: Pose6D) -> np.ndarray:
        eye = self.cache.get(TrackedJoint.EYE_GAZE)
        if eye is not None:
            return eye.quaternion
        return head.quaternion

    def _read_sources(self) -> None:
        for joint in ALL_JOINTS:
            raw = self.tracking_source.get_pose(joint)
            self.cache.update(joint, raw, self.frame_index)

    def tick(self) -> list[PrivatizedPoseEvent]:
        """Run one frame. Returns the events emitted this frame."""
        self._apply_pending()
        # Snapshot for this frame; swaps queued during delivery wait a frame.
        frame = self._frame
        profiles = self._profiles if self._enabled else self._passthrough

        self._read_sources()

        events: list[PrivatizedPoseEvent] = []
        for joint in POSITIONAL_JOINTS:
            original = self.cache.get(joint)
            if original is None:
                continue
            profile = profiles.head if joint is TrackedJoint.HEAD else profiles.hand
            privatized = privatize_pose(
                original,
                frame,
                profile,
                self._category(joint),
                self.max_displacement,
                ground_query=self.ground_query,
                ground_buffer=self.ground_buffer,
            )
            events.append(
                PrivatizedPoseEvent(
                    joint=joint,
                    raw_pose=original,
                    privatized_pose=privatized,
                    frame_index=self.frame_index,
                    mechanism=profile.mechanism.name,
                )
            )

        head = self.cache.get(TrackedJoint.HEAD)
        if head is not None:
            gaze = privatize_gaze(
                head.position,
                self._raw_gaze_orientation(head),
                frame,
                profiles.head,
                self.max_displacement,
                self.gaze_project_distance,
            )
            events.append(
                PrivatizedPoseEvent(
                    joint=TrackedJoint.EYE_GAZE,
                    raw_pose=Pose6D(position=head.position, quaternion=gaze.raw_quaternion),
                    privatized_pose=Pose6D(
                        position=head.position, quaternion=gaze.privatized_quaternion
                    ),
                    frame_index=self.frame_index,
                    mechanism=profiles.head.mechanism.name,
                )
            )

        for event in events:
            self._emit(event)
        self.frame_index += 1
        return events
