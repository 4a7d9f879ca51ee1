"""Quaternion utilities for right-handed coordinates.

Quaternions are stored as [w, x, y, z].
"""

from __future__ import annotations

import math

import numpy as np

FORWARD = np.array([0.0, 0.0, 1.0], dtype=np.float64)
UP = np.array([0.0, 1.0, 0.0], dtype=np.float64)


def q_identity() -> np.ndarray:
    return np.array([1.0, 0.0, 0.0, 0.0], dtype=np.float64)


def q_normalize(q: np.ndarray) -> np.ndarray:
    q = np.asarray(q, dtype=np.float64)
    n = float(np.linalg.norm(q))
    if n < 1e-12:
        return q_identity()
    return q / n


def q_conj(q: np.ndarray) -> np.ndarray:
    return np.array([q[0], -q[1], -q[2], -q[3]], dtype=np.float64)


def q_mul(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    aw, ax, ay, az = a
    bw, bx, by, bz = b
    return np.array(
        [
            aw * bw - ax * bx - ay * by - az * bz,
            aw * bx + ax * bw + ay * bz - az * by,
            aw * by - ax * bz + ay * bw + az * bx,
            aw * bz + ax * by - ay * bx + az * bw,
        ],
        dtype=np.float64,
    )


def q_rotate_vec(q: np.ndarray, v: np.ndarray) -> np.ndarray:
    """Rotate vector v by unit quaternion q: v' = q*(0,v)*q^{-1}."""
    q = q_normalize(q)
    vq = np.array([0.0, float(v[0]), float(v[1]), float(v[2])], dtype=np.float64)
    return q_mul(q_mul(q, vq), q_conj(q))[1:]


def q_angle_between(a: np.ndarray, b: np.ndarray) -> float:
    """Smallest rotation angle (radians) taking a to b, sign-insensitive."""
    d = abs(float(np.dot(q_normalize(a), q_normalize(b))))
    return 2.0 * math.acos(min(1.0, d))


def axis_angle_to_q(axis: np.ndarray, angle_rad: float) -> np.ndarray:
    axis = np.asarray(axis, dtype=np.float64)
    axis = axis / (np.linalg.norm(axis) + 1e-12)
    s = math.sin(angle_rad / 2.0)
    return q_normalize(
        np.array(
            [math.cos(angle_rad / 2.0), axis[0] * s, axis[1] * s, axis[2] * s],
            dtype=np.float64,
        )
    )


def rotation_vector_to_q(rv: np.ndarray) -> np.ndarray:
    """Axis * angle (radians) -> quaternion. Zero vector gives identity."""
    rv = np.asarray(rv, dtype=np.float64).reshape(3)
    angle = float(np.linalg.norm(rv))
    if angle < 1e-12:
        return q_identity()
    return axis_angle_to_q(rv / angle, angle)


def euler_yaw_pitch_roll_to_q(
    yaw_deg: float, pitch_deg: float, roll_deg: float
) -> np.ndarray:
    """
    Right-handed coordinates:
      x: right, y: up, z: forward
    Euler:
      yaw around +y, pitch around +x, roll around +z
    Composition: q = q_yaw * q_pitch * q_roll
    """
    yaw = math.radians(yaw_deg)
    pitch = math.radians(pitch_deg)
    roll = math.radians(roll_deg)
    q_yaw = axis_angle_to_q(np.array([0.0, 1.0, 0.0]), yaw)
    q_pitch = axis_angle_to_q(np.array([1.0, 0.0, 0.0]), pitch)
    q_roll = axis_angle_to_q(np.array([0.0, 0.0, 1.0]), roll)
    return q_normalize(q_mul(q_mul(q_yaw, q_pitch), q_roll))


def look_rotation_to_q(forward: np.ndarray, up: np.ndarray = UP) -> np.ndarray:
    """Orientation whose +z axis points along forward, +y as close to up as possible.

    Falls back to an alternate up axis when forward is parallel to up.
    """
    f = np.asarray(forward, dtype=np.float64).reshape(3)
    fn = float(np.linalg.norm(f))
    if fn < 1e-12:
        return q_identity()
    f = f / fn
    u = np.asarray(up, dtype=np.float64).reshape(3)
    r = np.cross(u, f)
    if float(np.dot(r, r)) < 1e-12:
        r = np.cross(np.array([0.0, 0.0, -1.0]) if abs(f[1]) > 0.5 else UP, f)
    r = r / np.linalg.norm(r)
    u = np.cross(f, r)
    # Columns are the rotated basis vectors (x right, y up, z forward).
    R = np.column_stack([r, u, f])
    return rotmat_to_q(R)


def rotmat_to_q(R: np.ndarray) -> np.ndarray:
    """Convert 3x3 rotation matrix to unit quaternion [w, x, y, z]."""
    R = np.asarray(R, dtype=np.float64)
    if R.shape != (3, 3):
        raise ValueError(f"Expected 3x3 rotation matrix, got {R.shape}")

    trace = float(R[0, 0] + R[1, 1] + R[2, 2])
    if trace > 0.0:
        s = math.sqrt(trace + 1.0) * 2.0
        qw = 0.25 * s
        qx = (R[2, 1] - R[1, 2]) / s
        qy = (R[0, 2] - R[2, 0]) / s
        qz = (R[1, 0] - R[0, 1]) / s
    elif R[0, 0] > R[1, 1] and R[0, 0] > R[2, 2]:
        s = math.sqrt(1.0 + R[0, 0] - R[1, 1] - R[2, 2]) * 2.0
        qw = (R[2, 1] - R[1, 2]) / s
        qx = 0.25 * s
        qy = (R[0, 1] + R[1, 0]) / s
        qz = (R[0, 2] + R[2, 0]) / s
    elif R[1, 1] > R[2, 2]:
        s = math.sqrt(1.0 + R[1, 1] - R[0, 0] - R[2, 2]) * 2.0
        qw = (R[0, 2] - R[2, 0]) / s
        qx = (R[0, 1] + R[1, 0]) / s
        qy = 0.25 * s
        qz = (R[1, 2] + R[2, 1]) / s
    else:
        s = math.sqrt(1.0 + R[2, 2] - R[0, 0] - R[1, 1]) * 2.0
        qw = (R[1, 0] - R[0, 1]) / s
        qx = (R[0, 2] + R[2, 0]) / s
        qy = (R[1, 2] + R[2, 1]) / s
        qz = 0.25 * s

    return q_normalize(np.array([qw, qx, qy, qz], dtype=np.float64))
