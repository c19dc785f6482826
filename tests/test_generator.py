import math

import numpy as np
import pytest

from spiralzoom.generator import CameraPath, FrameSpec, InvalidParameters, compute_radii


def test_radii_hit_both_endpoints_exactly():
    radii = compute_radii(2.0, 1e-6, 37)
    assert radii[0] == 2.0
    assert radii[-1] == 1e-6


def test_radii_form_a_geometric_progression():
    radii = compute_radii(3.0, 0.01, 25)
    ratios = radii[:-1] / radii[1:]
    np.testing.assert_allclose(ratios, ratios[0], rtol=1e-9)
    assert np.all(np.diff(radii) < 0)


def test_three_frame_zoom_has_geometric_midpoint():
    path = CameraPath(center=-0.5 + 0j, radius_start=2.0, radius_end=0.5, frame_count=3)
    assert path.radius(0) == 2.0
    assert path.radius(1) == pytest.approx(1.0)
    assert path.radius(2) == 0.5


def test_zoom_out_increases_radius():
    radii = compute_radii(0.5, 4.0, 5)
    assert np.all(np.diff(radii) > 0)


def test_static_focus_stays_on_center():
    path = CameraPath(center=-0.75 + 0.1j, radius_start=1.0, radius_end=0.1, frame_count=4)
    assert not path.spiral
    assert all(spec.center == -0.75 + 0.1j for spec in path)


def test_spiral_starts_half_a_radius_away():
    path = CameraPath(center=-0.5 + 0j, radius_start=2.0, radius_end=0.5, frame_count=10, theta_start=0.3, turns=2.0)
    offset = path.focus(0) - path.center
    assert abs(offset) == pytest.approx(1.0)
    expected_angle = 0.3 + 2 * math.pi * 2.0
    assert offset.real == pytest.approx(math.cos(expected_angle))
    assert offset.imag == pytest.approx(math.sin(expected_angle))


def test_spiral_converges_to_center_on_last_frame():
    center = -0.743643887037151 + 0.131825904205330j
    path = CameraPath(center=center, radius_start=1.5, radius_end=1e-5, frame_count=8, theta_start=1.0, turns=3.5)
    assert path.focus(7) == center
    drifts = [abs(path.focus(i) - center) for i in range(8)]
    assert all(a > b for a, b in zip(drifts, drifts[1:]))


def test_frames_are_produced_in_order():
    path = CameraPath(center=0j, radius_start=2.0, radius_end=0.5, frame_count=3)
    specs = list(path)
    assert len(path) == 3
    assert [spec.index for spec in specs] == [0, 1, 2]
    assert specs[2] == FrameSpec(index=2, center=0j, radius=0.5)


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(radius_start=2.0, radius_end=2.0, frame_count=3),
        dict(radius_start=-1.0, radius_end=0.5, frame_count=3),
        dict(radius_start=2.0, radius_end=0.0, frame_count=3),
        dict(radius_start=2.0, radius_end=0.5, frame_count=1),
        dict(radius_start=2.0, radius_end=0.5, frame_count=0),
        dict(radius_start=2.0, radius_end=0.5, frame_count=3, theta_start=0.0),
    ],
)
def test_invalid_paths_are_rejected(kwargs):
    path = CameraPath(center=-0.5 + 0j, **kwargs)
    assert path.problems()
    with pytest.raises(InvalidParameters):
        path.validate()


def test_valid_path_validates_to_itself():
    path = CameraPath(center=0j, radius_start=2.0, radius_end=0.5, frame_count=3)
    assert path.problems() == []
    assert path.validate() is path


def test_out_of_range_frame_index():
    path = CameraPath(center=0j, radius_start=2.0, radius_end=0.5, frame_count=3)
    with pytest.raises(IndexError):
        path.frame(3)
    with pytest.raises(IndexError):
        path.radius(-1)


def test_spiral_intermediate_frames_follow_remaining_fraction():
    path = CameraPath(center=-0.5 + 0j, radius_start=2.0, radius_end=0.5, frame_count=3, theta_start=0.0, turns=1.0)
    x = (3 - 1) / 3
    angle = 2 * math.pi * x
    drift = 0.5 * x * path.radius(1)
    focus = path.focus(1)
    assert focus.real == pytest.approx(-0.5 + drift * math.cos(angle))
    assert focus.imag == pytest.approx(drift * math.sin(angle))
    assert focus.real == pytest.approx(-2.0 / 3.0)
    assert focus.imag == pytest.approx(-math.sqrt(3) / 6)


def test_spiral_first_frame_uses_full_fraction():
    path = CameraPath(center=0j, radius_start=1.0, radius_end=0.1, frame_count=5, theta_start=0.25, turns=0.5)
    for index in range(4):
        x = (5 - index) / 5
        angle = 0.25 + 2 * math.pi * 0.5 * x
        offset = path.focus(index)
        assert abs(offset) == pytest.approx(0.5 * x * path.radius(index))
        assert math.atan2(offset.imag, offset.real) == pytest.approx(math.atan2(math.sin(angle), math.cos(angle)))
