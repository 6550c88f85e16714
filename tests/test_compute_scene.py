from __future__ import annotations

import math

import numpy as np
import pytest

from isetlite.oi import OpticalImage, oi_compute
from isetlite.oi.compute import camera_equation_factor, pad_photons
from isetlite.optics import Lens, Optics
from isetlite.scene import HarmonicParams, Scene, harmonic_image, scene_harmonic, scene_uniform

from conftest import WAVE_NM


def test_uniform_scene_has_requested_luminance():
    scene = scene_uniform(12, wave=WAVE_NM, mean_luminance=80.0, fov_deg=3.0)

    assert scene.size == (12, 12)
    assert scene.mean_luminance == pytest.approx(80.0, rel=1e-5)
    np.testing.assert_allclose(scene.luminance, 80.0, rtol=1e-5)
    assert scene.width == pytest.approx(2 * 1.2 * math.tan(math.radians(1.5)))


def test_scene_copy_is_independent():
    scene = scene_uniform((4, 6), wave=WAVE_NM)
    clone = scene.copy()
    clone.photons = np.zeros((4, 6, WAVE_NM.size))

    assert scene.size == (4, 6)
    assert scene.mean_luminance > 0


def test_harmonic_image_range_and_orientation():
    image = harmonic_image(HarmonicParams(freq=2, contrast=0.5, rows=16, cols=32))

    assert image.shape == (16, 32)
    assert image.max() <= 1.5 + 1e-12
    assert image.min() >= 0.5 - 1e-12
    # Vertical grating: every row is identical when angle is 0.
    np.testing.assert_allclose(image, np.broadcast_to(image[0], image.shape))


def test_gabor_window_flattens_the_edges():
    params = HarmonicParams(freq=4, contrast=1.0, gabor_flag=0.1, rows=33, cols=33)
    image = harmonic_image(params)
    assert abs(image[0, 0] - 1.0) < abs(image[16, 16] - 1.0)


def test_scene_harmonic_mean_luminance():
    scene = scene_harmonic(HarmonicParams(rows=16, cols=16), wave=WAVE_NM, mean_luminance=20.0)
    assert scene.mean_luminance == pytest.approx(20.0, rel=1e-5)
    assert scene.fov == 1.0


@pytest.mark.parametrize(
    "fnumber, magnification, expected",
    [
        (4.0, 0.0, math.pi / 65.0),
        (2.0, 0.0, math.pi / 17.0),
        (4.0, -1.0, math.pi / (1 + 4 * 16 * 4)),
    ],
)
def test_camera_equation_factor(fnumber, magnification, expected):
    assert camera_equation_factor(fnumber, magnification) == pytest.approx(expected)


def test_pad_photons_fills_with_plane_mean():
    photons = np.zeros((2, 2, 2))
    photons[0, 0] = [4.0, 8.0]
    padded = pad_photons(photons, 1, 2)

    assert padded.shape == (4, 6, 2)
    np.testing.assert_allclose(padded[0, 0], [1.0, 2.0])
    np.testing.assert_allclose(padded[1:3, 2:4], photons)
    assert pad_photons(photons, 0, 0) is photons


def test_oi_compute_uniform_scene():
    scene = scene_uniform(16, wave=WAVE_NM, mean_luminance=100.0, fov_deg=2.0, distance_m=1.2)
    template = OpticalImage(wave=WAVE_NM)

    oi = oi_compute(template, scene)

    assert oi.name == scene.name
    assert oi.consistency is True
    assert oi.size() == (20, 20)
    np.testing.assert_array_equal(oi.wave, WAVE_NM)

    magnification = template.optics.magnification(1.2)
    factor = camera_equation_factor(template.optics.fnumber, magnification)
    photons = oi.photons()
    expected = np.broadcast_to(scene.photons[0, 0] * factor, photons.shape)
    np.testing.assert_allclose(photons, expected, rtol=1e-6)

    expected_fov = math.degrees(2 * math.atan(20 / 16 * math.tan(math.radians(1.0))))
    assert oi.fov() == pytest.approx(expected_fov)
    assert oi.distance() == pytest.approx(template.optics.image_distance(1.2))
    assert not template.data.has_data


def test_oi_compute_without_padding_keeps_fov():
    scene = scene_uniform(8, wave=WAVE_NM, fov_deg=5.0)
    oi = oi_compute(OpticalImage(wave=WAVE_NM), scene, pad=False)

    assert oi.size() == (8, 8)
    assert oi.fov() == pytest.approx(5.0)


def test_oi_compute_takes_scene_wavelengths():
    scene = scene_uniform(8, wave=np.arange(450.0, 651.0, 50.0))
    oi = oi_compute(OpticalImage(wave=WAVE_NM), scene)

    np.testing.assert_array_equal(oi.wave, [450.0, 500.0, 550.0, 600.0, 650.0])
    assert oi.optics.lens.wave.size == 5


def test_lens_density_attenuates_irradiance():
    scene = scene_uniform(8, wave=WAVE_NM)
    clear = oi_compute(OpticalImage(wave=WAVE_NM), scene)
    tinted = oi_compute(OpticalImage(wave=WAVE_NM, optics=Optics(lens=Lens(density=1.0))), scene)

    ratio = tinted.photons()[0, 0] / clear.photons()[0, 0]
    np.testing.assert_allclose(ratio, tinted.optics.transmittance, rtol=1e-5)
    assert ratio[0] < ratio[-1]


def test_oi_compute_rejects_unsupported_inputs():
    scene = scene_uniform(8, wave=WAVE_NM)
    with pytest.raises(NotImplementedError):
        oi_compute(OpticalImage(optics=Optics(model="raytrace")), scene)
    with pytest.raises(ValueError):
        oi_compute(OpticalImage(), Scene(wave=WAVE_NM))
