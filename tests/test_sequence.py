from __future__ import annotations

import math

import numpy as np
import pytest

from isetlite.errors import ConstructionError
from isetlite.oi import Composition, ModulationRegion, OISequence, OpticalImage, ois_from_scenes
from isetlite.scene import scene_uniform

from conftest import WAVE_NM


def _pair(make_oi, fixed=10.0, modulated=4.0, **kwargs):
    return make_oi(fixed, name="background", **kwargs), make_oi(modulated, name="stimulus", **kwargs)


def test_scalar_time_axis_is_expanded(make_oi):
    fixed, modulated = _pair(make_oi)
    seq = OISequence(fixed, modulated, [0.001], np.ones(5))

    np.testing.assert_allclose(seq.time_axis, [0.0, 0.001, 0.002, 0.003, 0.004])
    assert len(seq) == 5
    assert seq.time_step() == pytest.approx(0.001)


def test_mismatched_time_axis_is_rejected(make_oi):
    fixed, modulated = _pair(make_oi)
    with pytest.raises(ConstructionError):
        OISequence(fixed, modulated, [0.0, 0.001, 0.002], np.ones(5))


def test_decreasing_time_axis_is_rejected(make_oi):
    fixed, modulated = _pair(make_oi)
    with pytest.raises(ConstructionError):
        OISequence(fixed, modulated, [0.0, 0.002, 0.001], np.ones(3))


def test_add_composition_end_to_end(make_oi):
    fixed, modulated = _pair(make_oi)
    seq = OISequence(fixed, modulated, 0.001, [0.0, 0.5, 1.0], composition="add")

    np.testing.assert_array_equal(seq.frame_at_index(0).photons(), 10.0)
    np.testing.assert_array_equal(seq.frame_at_index(1).photons(), 12.0)
    np.testing.assert_array_equal(seq.frame_at_index(2).photons(), 14.0)


def test_blend_composition(make_oi):
    fixed, modulated = _pair(make_oi)
    seq = OISequence(fixed, modulated, 0.001, [0.0, 0.25, 1.0], composition=Composition.BLEND)

    np.testing.assert_allclose(seq.frame_photons(0), 10.0)
    np.testing.assert_allclose(seq.frame_photons(1), 10.0 * 0.75 + 4.0 * 0.25)
    np.testing.assert_allclose(seq.frame_photons(2), 4.0)


def test_xor_composition_switches_inside_region(make_oi):
    fixed, modulated = _pair(make_oi)
    dx = fixed.sample_size("um")
    seq = OISequence(
        fixed, modulated, 0.001, [0.5, 1.0], composition="XOR", modulation_region=dx
    )

    frame = seq.frame_photons(0)
    inside = seq.modulation_mask > 0
    np.testing.assert_allclose(frame[inside], 2.0)
    np.testing.assert_allclose(frame[~inside], 10.0)


def test_region_mask_covers_centre_pixels(make_oi):
    fixed, modulated = _pair(make_oi)
    dx = fixed.sample_size("um")
    seq = OISequence(
        fixed, modulated, 0.001, [1.0], modulation_region=ModulationRegion(radius_um=dx)
    )

    mask = seq.modulation_mask
    assert mask.sum() == 4
    assert mask[3:5, 3:5].all()

    frame = seq.frame_photons(0)
    np.testing.assert_allclose(frame[3, 3], 14.0)
    np.testing.assert_allclose(frame[0, 0], 10.0)


@pytest.mark.parametrize("radius", [None, float("nan")])
def test_missing_radius_means_whole_frame(make_oi, radius):
    fixed, modulated = _pair(make_oi)
    seq = OISequence(fixed, modulated, 0.001, [1.0], modulation_region=radius)

    assert seq.modulation_region.whole_frame
    assert seq.modulation_mask.all()


def test_custom_composer(make_oi):
    fixed, modulated = _pair(make_oi)

    def multiply(f, m, weight, mask):
        return f * (1.0 + weight * mask[..., np.newaxis] * m)

    seq = OISequence(fixed, modulated, 0.001, [0.0, 0.5], composer=multiply)
    np.testing.assert_allclose(seq.frame_photons(1), 10.0 * 3.0)


def test_unknown_composition(make_oi):
    fixed, modulated = _pair(make_oi)
    with pytest.raises(ConstructionError):
        OISequence(fixed, modulated, 0.001, [1.0], composition="multiply")


def test_construction_validates_inputs(make_oi):
    fixed, modulated = _pair(make_oi)

    with pytest.raises(ConstructionError):
        OISequence(fixed, modulated, 0.001, [])
    with pytest.raises(ConstructionError):
        OISequence(OpticalImage(), modulated, 0.001, [1.0])
    with pytest.raises(ConstructionError):
        OISequence(fixed, make_oi(4.0, wave=np.arange(400.0, 701.0, 20.0)), 0.001, [1.0])
    with pytest.raises(ConstructionError):
        OISequence(fixed, make_oi(4.0, rows=6), 0.001, [1.0])
    with pytest.raises(ConstructionError):
        OISequence(fixed, make_oi(4.0, fov_deg=3.0), 0.001, [1.0])


def test_inputs_are_copied_and_frozen(make_oi):
    fixed, modulated = _pair(make_oi)
    weights = np.array([0.0, 1.0])
    seq = OISequence(fixed, modulated, 0.001, weights)

    fixed.set_photons(np.zeros((8, 8, WAVE_NM.size)))
    weights[1] = 5.0

    np.testing.assert_array_equal(seq.frame_photons(1), 14.0)
    assert weights.flags.writeable
    returned = seq.modulation_function
    returned[0] = 9.0
    assert seq.modulation_function[0] == 0.0
    assert seq.oi_fixed is not seq.oi_fixed


def test_frames_are_independent_optical_images(make_oi):
    fixed, modulated = _pair(make_oi)
    seq = OISequence(fixed, modulated, 0.001, [0.0, 1.0])

    frames = list(seq)
    assert [f.name for f in frames] == ["background-frame0", "background-frame1"]
    frames[0].set_photons(np.zeros((8, 8, WAVE_NM.size)))
    np.testing.assert_array_equal(seq[0].photons(), 10.0)
    assert frames[1].fov() == fixed.fov()


@pytest.mark.parametrize("index", [-1, 3])
def test_frame_index_out_of_range(make_oi, index):
    fixed, modulated = _pair(make_oi)
    seq = OISequence(fixed, modulated, 0.001, [0.0, 0.5, 1.0])
    with pytest.raises(IndexError):
        seq.frame_at_index(index)


def test_eye_movement_count(make_oi):
    fixed, modulated = _pair(make_oi)
    seq = OISequence(fixed, modulated, 0.001, np.ones(5))

    assert seq.duration() == pytest.approx(0.005)
    assert seq.max_eye_movements_num_given_integration_time(0.001) == 5
    assert seq.max_eye_movements_num_given_integration_time(0.002) == 2
    with pytest.raises(ValueError):
        seq.max_eye_movements_num_given_integration_time(0.0)


def test_single_frame_eye_movements(make_oi):
    fixed, modulated = _pair(make_oi)
    seq = OISequence(fixed, modulated, 0.0, [1.0])

    assert seq.max_eye_movements_num_given_integration_time(0.001) == 1
    assert (
        seq.max_eye_movements_num_given_integration_time(0.001, stimulus_sampling_interval=0.01)
        == 10
    )
    with pytest.raises(ValueError):
        seq.time_step()


def test_ois_from_scenes():
    background = scene_uniform(16, wave=WAVE_NM, fov_deg=2.0, mean_luminance=50.0)
    stimulus = scene_uniform(16, wave=WAVE_NM, fov_deg=2.0, mean_luminance=100.0)

    seq, (fixed, modulated) = ois_from_scenes(
        OpticalImage(wave=WAVE_NM), [background, stimulus], "blend", [0.0, 0.5, 1.0]
    )

    np.testing.assert_allclose(seq.time_axis, [0.0, 0.001, 0.002])
    assert fixed.size() == (20, 20)
    assert modulated.mean_illuminance() == pytest.approx(2 * fixed.mean_illuminance(), rel=1e-5)
    assert seq.frame_at_index(2).mean_illuminance() == pytest.approx(
        modulated.mean_illuminance(), rel=1e-5
    )
    assert math.isclose(fixed.fov(), modulated.fov())


def test_ois_from_scenes_requires_two_scenes():
    scene = scene_uniform(8, wave=WAVE_NM)
    with pytest.raises(ValueError):
        ois_from_scenes(OpticalImage(wave=WAVE_NM), [scene], "add", [1.0])
