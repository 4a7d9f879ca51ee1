import json
import socket
import time

import numpy as np

from motion_privacy.control.pose import TrackedJoint, is_valid_pose
from motion_privacy.control.reference_cache import PoseReferenceCache
from motion_privacy.tracking_sources.udp_bridge import (
    UdpBridgeTrackingSource,
    _parse_frame_packet,
    _parse_joint_payload,
)


def test_parse_joint_payload_accepts_valid_schema():
    parsed = _parse_joint_payload(
        {
            "tracked": True,
            "position_m": [0.1, -0.2, 1.5],
            "quaternion_wxyz": [1.0, 0.0, 0.0, 0.0],
        }
    )
    assert parsed is not None
    np.testing.assert_allclose(parsed.position, np.array([0.1, -0.2, 1.5], dtype=np.float64))
    np.testing.assert_allclose(parsed.quaternion, np.array([1.0, 0.0, 0.0, 0.0], dtype=np.float64))


def test_parse_joint_payload_untracked_is_none():
    assert (
        _parse_joint_payload(
            {"tracked": False, "position_m": [0.0, 1.0, 2.0], "quaternion_wxyz": [1.0, 0.0, 0.0, 0.0]}
        )
        is None
    )


def test_parse_joint_payload_rejects_bad_vector_lengths():
    assert (
        _parse_joint_payload(
            {"position_m": [0.0, 1.0], "quaternion_wxyz": [1.0, 0.0, 0.0, 0.0]}
        )
        is None
    )
    assert (
        _parse_joint_payload(
            {"position_m": [0.0, 1.0, 2.0], "quaternion_wxyz": [1.0, 0.0, 0.0]}
        )
        is None
    )
    assert _parse_joint_payload({"position_m": [0.0, 1.0, 2.0]}) is None
    assert _parse_joint_payload("head") is None


def test_parse_joint_payload_gaze_without_position():
    parsed = _parse_joint_payload(
        {"quaternion_wxyz": [0.9239, 0.0, 0.3827, 0.0]}, direction_only=True
    )
    assert parsed is not None
    np.testing.assert_allclose(parsed.position, np.zeros(3))


def test_parse_joint_payload_positional_joint_requires_position():
    assert _parse_joint_payload({"quaternion_wxyz": [1.0, 0.0, 0.0, 0.0]}) is None


def test_head_packet_without_position_keeps_cached_head():
    cache = PoseReferenceCache()
    first = _parse_frame_packet(
        b'{"joints": {"head": {"position_m": [0.0, 1.6, 0.0], "quaternion_wxyz": [1, 0, 0, 0]}}}'
    )
    cache.update(TrackedJoint.HEAD, first[TrackedJoint.HEAD], frame_index=0)

    second = _parse_frame_packet(b'{"joints": {"head": {"quaternion_wxyz": [1, 0, 0, 0]}}}')
    assert second[TrackedJoint.HEAD] is None
    cache.update(TrackedJoint.HEAD, second[TrackedJoint.HEAD], frame_index=1)
    np.testing.assert_allclose(cache.get(TrackedJoint.HEAD).position, [0.0, 1.6, 0.0])


def test_parse_joint_payload_tracked_must_be_json_boolean():
    pose = {"position_m": [0.0, 1.0, 2.0], "quaternion_wxyz": [1.0, 0.0, 0.0, 0.0]}
    for tracked in ("false", "true", 0, 1, None):
        assert _parse_joint_payload({**pose, "tracked": tracked}) is None
    assert _parse_joint_payload({**pose, "tracked": True}) is not None


def test_parse_frame_packet_rejects_invalid_json():
    assert _parse_frame_packet(b"{not-json") is None
    assert _parse_frame_packet(b"[1, 2, 3]") is None
    assert _parse_frame_packet(b'{"head": {}}') is None


def test_parse_frame_packet_keeps_non_finite_values_for_the_cache():
    packet = (
        b'{"joints": {"head": {"position_m": [NaN, 1.6, 0.0], '
        b'"quaternion_wxyz": [1.0, 0.0, 0.0, 0.0]}}}'
    )
    frame = _parse_frame_packet(packet)
    assert set(frame) == {TrackedJoint.HEAD}
    assert frame[TrackedJoint.HEAD] is not None
    assert not is_valid_pose(frame[TrackedJoint.HEAD])


def test_parse_frame_packet_maps_joint_names():
    packet = json.dumps(
        {
            "joints": {
                "head": {"position_m": [0.0, 1.6, 0.0], "quaternion_wxyz": [1, 0, 0, 0]},
                "left_hand": {"tracked": False},
                "eye_gaze": {"quaternion_wxyz": [1, 0, 0, 0]},
                "tail": {"position_m": [0, 0, 0], "quaternion_wxyz": [1, 0, 0, 0]},
            }
        }
    ).encode("utf-8")
    frame = _parse_frame_packet(packet)
    assert set(frame) == {TrackedJoint.HEAD, TrackedJoint.LEFT_HAND, TrackedJoint.EYE_GAZE}
    assert frame[TrackedJoint.LEFT_HAND] is None


def test_udp_source_receives_latest_frame():
    source = UdpBridgeTrackingSource(host="127.0.0.1", port=0, stale_after_s=0.0)
    addr = source._receiver.sock.getsockname()
    sender = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        assert source.get_pose(TrackedJoint.HEAD) is None
        packet = {
            "joints": {"head": {"position_m": [0.0, 1.6, 0.0], "quaternion_wxyz": [1, 0, 0, 0]}}
        }
        sender.sendto(json.dumps(packet).encode("utf-8"), addr)

        deadline = time.monotonic() + 2.0
        while not source.is_ready() and time.monotonic() < deadline:
            time.sleep(0.01)

        assert source.is_ready()
        head = source.get_pose(TrackedJoint.HEAD)
        np.testing.assert_allclose(head.position, [0.0, 1.6, 0.0])
        assert source.get_pose(TrackedJoint.RIGHT_HAND) is None
    finally:
        sender.close()
        source.close()
