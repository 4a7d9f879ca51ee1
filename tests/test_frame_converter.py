import numpy as np

from motion_privacy.control.frame_converter import (
    ReferenceFrame,
    to_local,
    to_local_point,
    to_world,
    to_world_point,
)
from motion_privacy.control.pose import Pose6D
from motion_privacy.math3d.quaternion import euler_yaw_pitch_roll_to_q, q_angle_between


def _pose(x: float, y: float, z: float, yaw: float = 0.0, pitch: float = 0.0, roll: float = 0.0) -> Pose6D:
    return Pose6D(
        position=np.array([x, y, z], dtype=np.float64),
        quaternion=euler_yaw_pitch_roll_to_q(yaw, pitch, roll),
    )


def test_identity_frame_keeps_pose():
    p = _pose(0.3, 1.2, -0.4, yaw=20.0)
    local = to_local(ReferenceFrame.identity(), p)
    np.testing.assert_allclose(local.position, p.position)
    assert q_angle_between(local.quaternion, p.quaternion) < 1e-6


def test_yawed_frame_expresses_position_in_rig_axes():
    frame = ReferenceFrame.from_position_yaw(np.array([1.0, 0.0, 2.0]), 90.0)
    # One meter along world +x from the origin is the rig's forward (+z).
    local = to_local_point(frame, np.array([2.0, 0.0, 2.0]))
    np.testing.assert_allclose(local, [0.0, 0.0, 1.0], atol=1e-9)


def test_round_trip_recovers_pose_for_many_frames():
    rng = np.random.default_rng(7)
    for _ in range(200):
        origin = _pose(*rng.uniform(-5.0, 5.0, size=3), *rng.uniform(-180.0, 180.0, size=3))
        frame = ReferenceFrame(origin=origin)
        p = _pose(*rng.uniform(-3.0, 3.0, size=3), *rng.uniform(-180.0, 180.0, size=3))
        back = to_world(frame, to_local(frame, p))
        assert np.linalg.norm(back.position - p.position) < 1e-4
        assert q_angle_between(back.quaternion, p.quaternion) < 1e-4


def test_point_round_trip():
    frame = ReferenceFrame(origin=_pose(0.5, 0.0, -1.0, yaw=-35.0, pitch=5.0))
    point = np.array([0.1, 1.7, 0.4])
    np.testing.assert_allclose(to_world_point(frame, to_local_point(frame, point)), point, atol=1e-9)
