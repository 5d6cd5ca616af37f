"""
Unit tests for opticgraph/core/schemas.py - payloads and geometry
"""
import math

import pytest

from opticgraph.core.schemas import (
    EnergyData,
    FourierData,
    Isometry,
    decode_light_data,
    encode_light_data,
    generate_id,
    is_finite_distance,
)


def test_generate_id_is_unique_hex():
    a, b = generate_id(), generate_id()

    assert a != b
    assert len(a) == 32
    int(a, 16)


def test_light_data_tagged_encoding():
    assert b'"type":"energy"' in encode_light_data(EnergyData(1.5))
    assert decode_light_data(encode_light_data(EnergyData(1.5))) == EnergyData(1.5)
    assert decode_light_data(b'{"type": "fourier"}') == FourierData()


def test_is_finite_distance():
    assert is_finite_distance(0.0)
    assert is_finite_distance(-3)
    assert not is_finite_distance(math.inf)
    assert not is_finite_distance(None)


def test_identity_axis_is_z():
    assert Isometry.identity().local_z_axis() == pytest.approx((0.0, 0.0, 1.0))


def test_translated_along_rotated_axis():
    """
    Validate placement along a rotated optical axis.

    Verifies:
    - A 90 degree rotation about y points the axis along +x
    - The rotation is carried over unchanged
    """
    iso = Isometry(rotation=(0.0, math.pi / 2, 0.0))

    moved = iso.translated_along_axis(2.0)

    assert moved.translation == pytest.approx((2.0, 0.0, 0.0), abs=1e-12)
    assert moved.rotation == iso.rotation


def test_isometry_is_close():
    a = Isometry(translation=(1.0, 2.0, 3.0))

    assert a.is_close(Isometry(translation=(1.0, 2.0, 3.0 + 1e-14)))
    assert not a.is_close(Isometry(translation=(1.0, 2.0, 3.1)))
