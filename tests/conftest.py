"""Shared fixtures: synthetic volumes and histogram volume configurations."""

import numpy as np
import pytest

from hvoltf import (
    Axis,
    HistogramVolumeBuilder,
    HistogramVolumeParams,
    IncAbsolute,
    IncRangeRatio,
    Measurement,
    MeasurementKind,
)


def make_sphere(n: int = 32, radius: float = 6.0, width: float = 1.0) -> np.ndarray:
    """Smooth ball: 255 inside, 0 outside, logistic falloff of ``width`` voxels."""
    c = (n - 1) / 2
    x, y, z = np.meshgrid(*(np.arange(n, dtype=np.float64),) * 3, indexing="ij")
    r = np.sqrt((x - c) ** 2 + (y - c) ** 2 + (z - c) ** 2)
    return 255.0 / (1.0 + np.exp((r - radius) / width))


def make_ramp(shape=(8, 9, 10)) -> np.ndarray:
    """Linear field ``2x + 3y - z``."""
    x, y, z = np.meshgrid(*(np.arange(s, dtype=np.float64) for s in shape), indexing="ij")
    return 2 * x + 3 * y - z


@pytest.fixture
def sphere():
    return make_sphere()


@pytest.fixture
def ramp():
    return make_ramp()


@pytest.fixture
def boundary_params():
    """Value x gradient magnitude x second derivative, sized for small volumes."""
    return HistogramVolumeParams(
        axes=(
            Axis(32, Measurement(MeasurementKind.VALUE_POSITIVE), IncAbsolute(0.0, 255.0)),
            Axis(32, Measurement(MeasurementKind.GRAD_MAG), IncRangeRatio(1.0)),
            Axis(33, Measurement(MeasurementKind.SECOND_DD), IncRangeRatio(1.0)),
        ),
    )


@pytest.fixture
def sphere_hvol(sphere, boundary_params):
    """Raw histogram volume of the sphere."""
    return HistogramVolumeBuilder.from_volume(sphere, boundary_params).make_hvol()
