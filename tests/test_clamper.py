import numpy as np

from motion_privacy.control.clamper import (
    FlatGroundQuery,
    GroundQuery,
    clamp_displacement,
    clamp_position,
)


class _RaisingGround(GroundQuery):
    def height_at(self, position):
        raise RuntimeError("no collider")


class _NoGroundBelow(GroundQuery):
    def height_at(self, position):
        return None


def test_small_displacement_is_unchanged():
    original = np.array([0.0, 1.0, 0.0])
    noisy = np.array([0.02, 1.01, -0.03])
    np.testing.assert_allclose(clamp_position(noisy, original, 0.1), noisy)


def test_large_displacement_is_rescaled_to_exact_radius():
    original = np.array([0.3, 1.0, 0.2])
    noisy = original + np.array([3.0, 0.0, 4.0])
    out = clamp_position(noisy, original, 0.1)
    np.testing.assert_allclose(out - original, [0.06, 0.0, 0.08], atol=1e-12)
    assert abs(np.linalg.norm(out - original) - 0.1) < 1e-12


def test_non_positive_max_displacement_collapses_to_original():
    original = np.array([0.3, 1.0, 0.2])
    for limit in (0.0, -1.0):
        np.testing.assert_allclose(clamp_position(original + 0.05, original, limit), original)


def test_clamp_bound_holds_for_random_inputs():
    rng = np.random.default_rng(3)
    for _ in range(500):
        original = rng.uniform(-2.0, 2.0, size=3)
        noisy = original + rng.normal(scale=rng.uniform(0.0, 2.0), size=3)
        limit = float(rng.uniform(0.0, 0.5))
        out = clamp_displacement(noisy, original, limit)
        assert np.linalg.norm(out - original) <= limit + 1e-9


def test_ground_snap_raises_point_to_buffer_above_floor():
    original = np.array([0.0, 0.12, 0.0])
    noisy = np.array([0.0, 0.0, 0.0])
    out = clamp_position(noisy, original, 0.5, ground_query=FlatGroundQuery(0.0), ground_buffer=0.1)
    np.testing.assert_allclose(out, [0.0, 0.1, 0.0])


def test_ground_snap_happens_after_clamp_and_is_not_reclamped():
    # Truth below the buffer: clamp pulls noise back, then the snap lifts the point.
    original = np.array([0.0, 0.0, 0.0])
    noisy = np.array([0.0, -1.0, 0.0])
    out = clamp_position(noisy, original, 0.05, ground_query=FlatGroundQuery(0.0), ground_buffer=0.1)
    np.testing.assert_allclose(out, [0.0, 0.1, 0.0])


def test_point_above_ground_is_untouched():
    original = np.array([0.0, 1.6, 0.0])
    noisy = np.array([0.01, 1.58, 0.0])
    out = clamp_position(noisy, original, 0.1, ground_query=FlatGroundQuery(0.0))
    np.testing.assert_allclose(out, noisy)


def test_ground_query_failure_or_absence_skips_correction():
    original = np.array([0.0, 0.0, 0.0])
    noisy = np.array([0.0, -0.05, 0.0])
    for ground in (None, _RaisingGround(), _NoGroundBelow()):
        out = clamp_position(noisy, original, 0.1, ground_query=ground)
        np.testing.assert_allclose(out, noisy)


def test_non_finite_noise_falls_back_to_original():
    original = np.array([0.1, 1.0, 0.0])
    out = clamp_position(np.array([np.nan, 1.0, 0.0]), original, 0.1)
    np.testing.assert_allclose(out, original)
