"""Tracking source interface for raw joint poses."""

from __future__ import annotations

from typing import Callable

from .pose import Pose6D, TrackedJoint


class TrackingSource:
    """Base interface for raw pose sources.

    Implementations may be synthetic (demo motion) or fed by a device bridge.
    A source also owns the frame clock: ``run`` calls ``on_tick`` once per frame.
    """

    def get_pose(self, joint: TrackedJoint) -> Pose6D | None:
        """Latest raw world pose, or None when the joint is untracked.

        For EYE_GAZE only the orientation is meaningful.
        """
        raise NotImplementedError

    def is_ready(self) -> bool:
        """Whether the underlying device/bridge is up and delivering samples."""
        return True

    def set_status(self, text: str) -> None:
        # Optional UI hook.
        pass

    def run(self, on_tick: Callable[[], None]) -> None:
        """Run the source's frame loop and call on_tick once per frame."""
        raise NotImplementedError

    def stop(self) -> None:
        pass

    def close(self) -> None:
        pass
