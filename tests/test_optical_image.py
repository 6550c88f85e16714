from __future__ import annotations

import logging
import math

import numpy as np
import pytest

from isetlite.config import SimulationConfig
from isetlite.errors import InvalidRegionError
from isetlite.oi import OpticalImage
from isetlite.oi.optical_image import pad_size
from isetlite.optics import Lens, Optics
from isetlite.physics import illuminance_from_photons, quanta_to_energy

from conftest import WAVE_NM


def test_geometry_is_derived_from_primitives(uniform_oi):
    width = 2 * 0.004 * math.tan(math.radians(2.0) / 2)

    assert uniform_oi.size() == (8, 8)
    assert uniform_oi.width() == pytest.approx(width)
    assert uniform_oi.width("um") == pytest.approx(width * 1e6)
    assert uniform_oi.sample_size() == pytest.approx(width / 8)
    assert uniform_oi.height() == pytest.approx(width)
    assert uniform_oi.area("mm") == pytest.approx((width * 1e3) ** 2)
    assert uniform_oi.diagonal() == pytest.approx(math.sqrt(2) * width)


def test_geometry_follows_new_fov(uniform_oi):
    before = uniform_oi.width()
    uniform_oi.set_fov(4.0)
    assert uniform_oi.width() > before
    assert uniform_oi.width() == pytest.approx(2 * 0.004 * math.tan(math.radians(2.0)))


def test_rectangular_sizes(sloped_oi):
    assert sloped_oi.size() == (6, 5)
    assert sloped_oi.aspect_ratio() == pytest.approx(6 / 5)
    assert sloped_oi.center_pixel() == (3, 2)
    assert sloped_oi.height() == pytest.approx(sloped_oi.sample_size() * 6)
    h_res, w_res = sloped_oi.spatial_resolution("um")
    assert h_res == pytest.approx(w_res)


def test_square_image_vfov_equals_fov(uniform_oi):
    assert uniform_oi.vfov() == pytest.approx(uniform_oi.fov())
    assert uniform_oi.dfov() == pytest.approx(math.sqrt(2) * uniform_oi.fov())


def test_empty_image_uses_defaults_with_warnings(caplog):
    config = SimulationConfig.from_mapping({"geometry": {"rows": 16, "cols": 24, "fov_deg": 5.0}})
    oi = OpticalImage(config=config)

    with caplog.at_level(logging.WARNING):
        assert oi.size() == (16, 24)
        assert oi.fov() == 5.0

    assert "assuming 16 rows" in caplog.text
    assert "Arbitrary optical image angle" in caplog.text
    assert oi.photons() is None
    assert oi.mean_illuminance() is None
    assert oi.illuminance() is None
    assert oi.xyz() is None


def test_scene_supplies_size_fov_and_distance(companion_scene, caplog):
    oi = OpticalImage()

    with caplog.at_level(logging.WARNING):
        assert oi.size(companion_scene) == (10, 12)
        assert oi.fov(companion_scene) == 4.0
    assert not [r for r in caplog.records if r.levelno >= logging.WARNING]

    expected = oi.optics.image_distance(companion_scene.distance)
    assert oi.distance(scene=companion_scene) == pytest.approx(expected)
    assert oi.distance() == pytest.approx(oi.optics.focal_length)


def test_sample_spacing_pads_scene_size(companion_scene):
    oi = OpticalImage()
    dx, dy = oi.sample_spacing(scene=companion_scene)

    cols = 12 + 2 * pad_size(12)
    rows = 10 + 2 * pad_size(10)
    assert dx == pytest.approx(oi.width(scene=companion_scene) / cols)
    assert dy == pytest.approx(oi.height(scene=companion_scene) / rows)


def test_sample_spacing_without_data_or_scene():
    with pytest.raises(ValueError):
        OpticalImage().sample_spacing()


@pytest.mark.parametrize("n, expected", [(8, 1), (12, 2), (16, 2), (20, 3), (4, 1), (3, 0)])
def test_pad_size_rounds_half_up(n, expected):
    assert pad_size(n) == expected


@pytest.mark.parametrize("fov", [0.0, -1.0, 180.0, 200.0])
def test_invalid_fov_rejected(uniform_oi, fov):
    with pytest.raises(ValueError):
        uniform_oi.set_fov(fov)


def test_invalid_distance_rejected(uniform_oi):
    with pytest.raises(ValueError):
        uniform_oi.set_distance(0.0)


def test_spatial_support_is_centred(uniform_oi):
    support = uniform_oi.spatial_support("um")
    spacing = uniform_oi.sample_size("um")

    assert support.shape == (8, 8, 2)
    assert support[..., 0].mean() == pytest.approx(0.0, abs=1e-9)
    assert support[0, 1, 0] - support[0, 0, 0] == pytest.approx(spacing)
    assert support[1, 0, 1] - support[0, 0, 1] == pytest.approx(spacing)


def test_angular_resolution_and_support(uniform_oi):
    h_deg, w_deg = uniform_oi.angular_resolution()
    assert h_deg == pytest.approx(w_deg)
    assert w_deg * 8 == pytest.approx(2.0, rel=1e-3)

    support_min = uniform_oi.angular_support("min")
    support_deg = uniform_oi.angular_support()
    np.testing.assert_allclose(support_min, support_deg * 60)


def test_frequency_support_cycles_per_degree(uniform_oi):
    res = uniform_oi.frequency_resolution()

    np.testing.assert_allclose(res["fx"], np.arange(-4, 4) / 4 * 2.0)
    assert uniform_oi.max_frequency_resolution() == pytest.approx(1.5, rel=1e-6)
    np.testing.assert_allclose(uniform_oi.frequency_support_col(), [0.0, 0.5, 1.0, 1.5])
    assert uniform_oi.frequency_support().shape == (8, 8, 2)


def test_frequency_support_odd_size(make_oi):
    oi = make_oi(rows=5, cols=5)
    fx = oi.frequency_resolution()["fx"]
    np.testing.assert_allclose(fx, np.arange(-2, 3) / 2 * (2.5 / 2.0))
    np.testing.assert_allclose(oi.frequency_support_row(), [0.0, 0.625, 1.25], rtol=1e-6)


def test_frequency_support_spatial_unit(uniform_oi):
    fx = uniform_oi.frequency_resolution("mm")["fx"]
    assert fx.max() == pytest.approx(0.75 * 4 / uniform_oi.width("mm"))


def test_mean_illuminance_matches_formula(uniform_oi):
    photons = np.full((8, 8, WAVE_NM.size), 1e15)
    expected = illuminance_from_photons(photons, WAVE_NM).mean()
    assert uniform_oi.mean_illuminance() == pytest.approx(expected, rel=1e-6)


def test_set_mean_illuminance_scales_photons(uniform_oi):
    before = uniform_oi.photons()
    current = uniform_oi.mean_illuminance()

    uniform_oi.set_mean_illuminance(2 * current)

    assert uniform_oi.mean_illuminance() == pytest.approx(2 * current, rel=1e-5)
    np.testing.assert_allclose(uniform_oi.photons(), 2 * before, rtol=1e-6)


def test_energy_subset(sloped_oi):
    energy = sloped_oi.energy(550.0)
    full = quanta_to_energy(WAVE_NM, sloped_oi.photons())

    assert energy.shape == (6, 5, 1)
    np.testing.assert_allclose(energy[..., 0], full[:, :, 15])


def test_roi_forwarding(sloped_oi):
    spectra = sloped_oi.roi_photons([[0, 0], [5, 4]])
    assert spectra.shape == (2, WAVE_NM.size)
    np.testing.assert_allclose(sloped_oi.roi_mean_photons([[2, 2]]), sloped_oi.photons()[2, 2])
    with pytest.raises(InvalidRegionError):
        sloped_oi.roi_mean_energy([[6, 0]])


def test_spd_scale_multiply_and_subtract(sloped_oi):
    energy = sloped_oi.energy()
    spd = np.linspace(0.5, 1.5, WAVE_NM.size)

    sloped_oi.spd_scale(spd, "*")
    np.testing.assert_allclose(sloped_oi.energy(), energy * spd, rtol=1e-6)

    sloped_oi.spd_scale(spd, "divide")
    np.testing.assert_allclose(sloped_oi.energy(), energy, rtol=1e-6)

    with pytest.raises(ValueError):
        sloped_oi.spd_scale(spd, "power")


def test_noise_uses_sample_area(uniform_oi):
    dx, dy = uniform_oi.sample_spacing()
    noisy = uniform_oi.photons_noise(integration_time_s=0.01, rng=3)
    mean_counts = 1e15 * dx * dy * 0.01

    assert noisy.shape == (8, 8, WAVE_NM.size)
    assert noisy.mean() == pytest.approx(mean_counts, rel=0.01)
    assert uniform_oi.energy_noise(integration_time_s=0.01, rng=3).shape == noisy.shape


def test_optics_and_lens_forwarding(uniform_oi):
    assert uniform_oi.optics_get() is uniform_oi.optics
    assert uniform_oi.optics_get("focal length", "mm") == pytest.approx(3.9)

    uniform_oi.lens_set("density", 1.0)
    assert uniform_oi.lens_get("density") == 1.0
    assert uniform_oi.lens_get("pigment") is uniform_oi.optics.lens

    replacement = Optics(fnumber=2.0)
    uniform_oi.optics_set(None, replacement)
    assert uniform_oi.optics is replacement

    uniform_oi.lens_set("", Lens(density=0.5))
    assert uniform_oi.optics.lens.density == 0.5

    with pytest.raises(TypeError):
        uniform_oi.optics_set("", "not optics")


def test_depth_map_validation(uniform_oi):
    depth = np.zeros((8, 8))
    depth[2, 3] = 1.5
    uniform_oi.set_depth_map(depth)

    assert uniform_oi.logical_depth_map().sum() == 1
    with pytest.raises(ValueError):
        uniform_oi.set_depth_map(np.zeros((4, 4)))
    uniform_oi.set_depth_map(None)
    assert uniform_oi.depth_map is None


def test_resizing_photons_drops_depth_map(uniform_oi):
    uniform_oi.set_depth_map(np.ones((8, 8)))

    uniform_oi.set_photons(np.full((8, 8, WAVE_NM.size), 2e15))
    assert uniform_oi.depth_map.shape == (8, 8)

    uniform_oi.set_photons(np.ones((4, 4, WAVE_NM.size)))
    assert uniform_oi.size() == (4, 4)
    assert uniform_oi.depth_map is None
    uniform_oi.set_depth_map(np.ones((4, 4)))


def test_diffuser_settings(uniform_oi):
    assert uniform_oi.diffuser_blur() is None
    uniform_oi.set_diffuser_method("blur")
    uniform_oi.set_diffuser_blur(2e-6)

    assert uniform_oi.diffuser.method == "blur"
    assert uniform_oi.diffuser_blur("um") == pytest.approx(2.0)
    with pytest.raises(ValueError):
        uniform_oi.set_diffuser_method("frosted")


def test_psf_struct_created_on_request(uniform_oi):
    assert uniform_oi.psf_struct() is None
    psf = uniform_oi.psf_struct(create=True)
    psf.sample_angles = np.array([0.0, 10.0, 20.0])
    assert uniform_oi.psf_struct().angle_step == 10.0


def test_copy_is_deep(uniform_oi):
    clone = uniform_oi.copy()
    clone.set_photons(np.zeros((8, 8, WAVE_NM.size)))
    clone.optics.fnumber = 8.0
    clone.set_fov(10.0)

    assert uniform_oi.data_max == pytest.approx(1e15)
    assert uniform_oi.optics.fnumber == 4.0
    assert uniform_oi.fov() == 2.0


def test_bit_depth_forwarding(uniform_oi):
    assert uniform_oi.bit_depth == 32
    uniform_oi.bit_depth = 64
    assert uniform_oi.photons().dtype == np.float64
