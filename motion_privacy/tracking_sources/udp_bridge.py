"""Tracking source fed by an external device bridge over UDP.

This source intentionally avoids direct XR runtime bindings. It consumes
per-frame joint packets from localhost UDP JSON so a separate bridge process
(OpenXR, SteamVR, vendor SDK) can own device access.
"""

from __future__ import annotations

import json
import logging
import socket
import time
from typing import Optional

import numpy as np

from ..control.pose import Pose6D, TrackedJoint
from ..control.tracking_source import TrackingSource

logger = logging.getLogger(__name__)

_JOINT_KEYS = {
    "head": TrackedJoint.HEAD,
    "left_hand": TrackedJoint.LEFT_HAND,
    "right_hand": TrackedJoint.RIGHT_HAND,
    "eye_gaze": TrackedJoint.EYE_GAZE,
}


def _parse_joint_payload(payload: dict, direction_only: bool = False) -> Optional[Pose6D]:
    """Parse one joint entry. Returns None for untracked or malformed entries.

    ``tracked`` must be a JSON boolean when present. Only a direction-only
    joint (eye gaze) may omit its position.

    Non-finite numbers are passed through on purpose; the reference cache
    rejects them as tracking glitches.
    """
    if not isinstance(payload, dict):
        return None
    if payload.get("tracked", True) is not True:
        return None
    position = payload.get("position_m", payload.get("position"))
    quaternion = payload.get("quaternion_wxyz", payload.get("quaternion"))
    if quaternion is None:
        return None
    if position is None:
        if not direction_only:
            return None
        position = [0.0, 0.0, 0.0]

    try:
        p = np.asarray(position, dtype=np.float64).reshape(-1)
        q = np.asarray(quaternion, dtype=np.float64).reshape(-1)
    except (TypeError, ValueError):
        return None
    if p.size != 3 or q.size != 4:
        return None
    return Pose6D(position=p, quaternion=q)


def _parse_frame_payload(payload: dict) -> Optional[dict[TrackedJoint, Optional[Pose6D]]]:
    joints = payload.get("joints")
    if not isinstance(joints, dict):
        return None
    frame: dict[TrackedJoint, Optional[Pose6D]] = {}
    for key, joint in _JOINT_KEYS.items():
        if key in joints:
            frame[joint] = _parse_joint_payload(
                joints[key], direction_only=joint is TrackedJoint.EYE_GAZE
            )
    return frame


def _parse_frame_packet(data: bytes) -> Optional[dict[TrackedJoint, Optional[Pose6D]]]:
    try:
        # NaN/Infinity literals are accepted and left for the cache to reject.
        payload = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    if not isinstance(payload, dict):
        return None
    return _parse_frame_payload(payload)


class _UdpFrameReceiver:
    def __init__(self, host: str, port: int):
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.sock.bind((host, int(port)))
        self.sock.setblocking(False)

    def recv_latest(self) -> Optional[dict[TrackedJoint, Optional[Pose6D]]]:
        latest = None
        while True:
            try:
                data, _ = self.sock.recvfrom(65535)
            except BlockingIOError:
                break
            except OSError:
                break
            parsed = _parse_frame_packet(data)
            if parsed is not None:
                latest = parsed
        return latest

    def close(self) -> None:
        self.sock.close()


class UdpBridgeTrackingSource(TrackingSource):
    """Joint poses from bridge packets over UDP.

    Expected JSON packet schema:
    {
      "joints": {
        "head":       {"tracked": true, "position_m": [x, y, z], "quaternion_wxyz": [w, x, y, z]},
        "left_hand":  {...},
        "right_hand": {...},
        "eye_gaze":   {"quaternion_wxyz": [w, x, y, z]}
      }
    }

    A joint missing from a packet, or marked untracked, reads as None for
    that frame.
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 24568,
        poll_ms: int = 11,
        stale_after_s: float = 0.5,
    ):
        self.host = str(host)
        self.port = int(port)
        self.poll_s = max(0.001, float(poll_ms) / 1000.0)
        self.stale_after_s = max(0.0, float(stale_after_s))

        self._receiver = _UdpFrameReceiver(self.host, self.port)

        self._closed = False
        self._on_tick = None
        self._status_text = ""
        self._latest: dict[TrackedJoint, Optional[Pose6D]] = {}
        self._last_warn_t = 0.0
        self._last_recv_t = 0.0
        self._recv_count = 0

        logger.info(
            "[POSE] source=udp-bridge (host=%s, port=%s, poll_ms=%.1f)",
            self.host,
            self.port,
            self.poll_s * 1000.0,
        )

    def get_pose(self, joint: TrackedJoint) -> Pose6D | None:
        if self._recv_count == 0:
            return None
        if self.stale_after_s > 0.0 and (time.time() - self._last_recv_t) > self.stale_after_s:
            return None
        return self._latest.get(joint)

    def is_ready(self) -> bool:
        self._poll_once()
        return self._recv_count > 0

    def set_status(self, text: str) -> None:
        self._status_text = text

    def _poll_once(self) -> None:
        sample = self._receiver.recv_latest()
        if sample is None:
            now = time.time()
            # Only log if we have not received any packet recently.
            if (now - self._last_recv_t) > 2.0 and (now - self._last_warn_t) > 2.0:
                logger.info(
                    "[POSE] waiting for bridge packets on %s:%s", self.host, self.port
                )
                self._last_warn_t = now
            return

        self._last_recv_t = time.time()
        self._recv_count += 1
        if self._recv_count == 1:
            logger.info("[POSE] first bridge packet received on %s:%s", self.host, self.port)
        self._latest = sample

    def run(self, on_tick):
        self._on_tick = on_tick
        while not self._closed:
            self._poll_once()
            if self._on_tick is not None:
                self._on_tick()
            time.sleep(self.poll_s)
        self.close()

    def stop(self) -> None:
        self._closed = True

    def close(self) -> None:
        self._closed = True
        try:
            self._receiver.close()
        except OSError:
            pass
