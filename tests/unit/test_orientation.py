"""Tests for the three-fold orientation helpers."""

from __future__ import annotations

import math

import pytest

from assembly import AXIS_SPACING, alignment_weight, nearest_axis_offset


def test_weight_is_one_on_a_symmetry_axis() -> None:
    assert alignment_weight(0.0, 0.0, 8.0) == 1.0
    assert alignment_weight(AXIS_SPACING, 0.0, 8.0) == pytest.approx(1.0)
    assert alignment_weight(0.4 + 2 * AXIS_SPACING, 0.4, 3.0) == pytest.approx(1.0)


def test_weight_halfway_between_axes() -> None:
    # 60 degrees from the two nearest axes: cos = 0.5.
    assert alignment_weight(math.pi / 3, 0.0, 1.0) == pytest.approx(0.5)
    assert alignment_weight(math.pi / 3, 0.0, 2.0) == pytest.approx(0.25)


def test_sharpness_narrows_the_peak() -> None:
    loose = alignment_weight(0.3, 0.0, 1.0)
    strict = alignment_weight(0.3, 0.0, 8.0)
    assert 0.0 < strict < loose < 1.0


def test_weight_is_three_fold_symmetric() -> None:
    for angle in (0.1, 0.7, 1.9, -2.5):
        base = alignment_weight(angle, 0.25, 4.0)
        assert alignment_weight(angle + AXIS_SPACING, 0.25, 4.0) == pytest.approx(base)
        assert alignment_weight(angle, 0.25 + AXIS_SPACING, 4.0) == pytest.approx(base)


def test_weight_stays_in_unit_interval() -> None:
    for step in range(72):
        angle = step * math.tau / 72
        for sharpness in (1.0, 2.5, 8.0):
            value = alignment_weight(angle, 1.1, sharpness)
            assert 0.0 <= value <= 1.0


def test_offset_to_nearest_axis() -> None:
    assert nearest_axis_offset(0.1, 0.0) == pytest.approx(0.1)
    assert nearest_axis_offset(-0.1, 0.0) == pytest.approx(-0.1)
    assert nearest_axis_offset(AXIS_SPACING + 0.2, 0.0) == pytest.approx(0.2)
    assert nearest_axis_offset(0.0, 0.3) == pytest.approx(-0.3)


def test_offset_wraps_large_angles() -> None:
    assert nearest_axis_offset(0.2 + 10 * math.pi, 0.0) == pytest.approx(0.2)
    assert nearest_axis_offset(0.2, -12 * math.pi) == pytest.approx(0.2)


def test_offset_range() -> None:
    for step in range(90):
        angle = step * math.tau / 90 - math.pi
        offset = nearest_axis_offset(angle, 0.77)
        assert -math.pi < offset <= math.pi
        assert abs(offset) <= math.pi / 3 + 1e-9
