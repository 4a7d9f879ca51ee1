import numpy as np

from motion_privacy.control.pose import Pose6D, TrackedJoint
from motion_privacy.control.reference_cache import JointState, PoseReferenceCache


def _pose(x: float, y: float, z: float, q=(1.0, 0.0, 0.0, 0.0)) -> Pose6D:
    return Pose6D(
        position=np.array([x, y, z], dtype=np.float64),
        quaternion=np.array(q, dtype=np.float64),
    )


def test_get_is_none_until_first_valid_sample():
    cache = PoseReferenceCache()
    assert cache.get(TrackedJoint.HEAD) is None
    assert cache.state(TrackedJoint.HEAD) is JointState.NO_RECORD

    assert cache.update(TrackedJoint.HEAD, None, frame_index=0) is False
    assert cache.get(TrackedJoint.HEAD) is None

    assert cache.update(TrackedJoint.HEAD, _pose(0.0, 1.6, 0.0), frame_index=1) is True
    assert cache.state(TrackedJoint.HEAD) is JointState.TRACKING
    np.testing.assert_allclose(cache.get(TrackedJoint.HEAD).position, [0.0, 1.6, 0.0])
    assert cache.record(TrackedJoint.HEAD).valid_since == 1


def test_invalid_samples_are_dropped_and_previous_pose_kept():
    cache = PoseReferenceCache()
    cache.update(TrackedJoint.LEFT_HAND, _pose(0.3, 1.0, 0.2), frame_index=0)

    assert not cache.update(TrackedJoint.LEFT_HAND, _pose(np.nan, 1.0, 0.2), frame_index=1)
    assert not cache.update(TrackedJoint.LEFT_HAND, _pose(0.0, np.inf, 0.0), frame_index=2)
    assert not cache.update(
        TrackedJoint.LEFT_HAND, _pose(0.0, 0.0, 0.0, q=(0.0, 0.0, 0.0, 0.0)), frame_index=3
    )
    assert not cache.update(
        TrackedJoint.LEFT_HAND, _pose(0.0, 0.0, 0.0, q=(np.nan, 0.0, 0.0, 1.0)), frame_index=4
    )

    np.testing.assert_allclose(cache.get(TrackedJoint.LEFT_HAND).position, [0.3, 1.0, 0.2])
    assert cache.state(TrackedJoint.LEFT_HAND) is JointState.TRACKING
    assert cache.glitch_count(TrackedJoint.LEFT_HAND) == 4


def test_stored_quaternion_is_normalized():
    cache = PoseReferenceCache()
    cache.update(TrackedJoint.HEAD, _pose(0.0, 0.0, 0.0, q=(2.0, 0.0, 0.0, 0.0)), frame_index=0)
    np.testing.assert_allclose(cache.get(TrackedJoint.HEAD).quaternion, [1.0, 0.0, 0.0, 0.0])


def test_get_returns_copy_that_cannot_mutate_reference():
    cache = PoseReferenceCache()
    cache.update(TrackedJoint.HEAD, _pose(0.0, 1.6, 0.0), frame_index=0)
    out = cache.get(TrackedJoint.HEAD)
    out.position += 10.0
    np.testing.assert_allclose(cache.get(TrackedJoint.HEAD).position, [0.0, 1.6, 0.0])


def test_update_keeps_valid_since_and_refreshes_pose():
    cache = PoseReferenceCache()
    cache.update(TrackedJoint.HEAD, _pose(0.0, 1.6, 0.0), frame_index=3)
    cache.update(TrackedJoint.HEAD, _pose(0.1, 1.6, 0.0), frame_index=4)
    record = cache.record(TrackedJoint.HEAD)
    assert record.valid_since == 3
    assert record.last_update_frame == 4
    np.testing.assert_allclose(record.pose.position, [0.1, 1.6, 0.0])


def test_reset_returns_joint_to_no_record():
    cache = PoseReferenceCache()
    cache.update(TrackedJoint.HEAD, _pose(0.0, 1.6, 0.0), frame_index=0)
    cache.update(TrackedJoint.RIGHT_HAND, _pose(0.3, 1.0, 0.2), frame_index=0)

    cache.reset(TrackedJoint.HEAD)
    assert cache.state(TrackedJoint.HEAD) is JointState.NO_RECORD
    assert cache.state(TrackedJoint.RIGHT_HAND) is JointState.TRACKING

    cache.reset()
    assert cache.tracked_joints() == []
