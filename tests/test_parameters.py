"""Tests for the normalized parameter mapping."""

from __future__ import annotations

import numpy as np
import pytest

from contact_calib.errors import ModelConfigurationError
from contact_calib.parameters import ParameterMapping, contact_name, marker_name


class TestPhysicalValues:
    """ParameterMapping.physical()."""

    def test_lower_bounds_exact(self, mapping) -> None:
        heights, stiffness = mapping.physical(np.zeros(12))
        assert np.all(heights == -0.06)
        assert np.all(stiffness == 0.0)

    def test_upper_bounds_exact(self, mapping) -> None:
        heights, stiffness = mapping.physical(np.ones(12))
        assert np.all(heights == 0.05)
        assert np.all(stiffness == 1.0e8)

    def test_midpoint(self, mapping) -> None:
        heights, stiffness = mapping.physical(np.full(12, 0.5))
        np.testing.assert_allclose(heights, -0.005)
        np.testing.assert_allclose(stiffness, 5.0e7)

    def test_matches_affine_form(self, mapping) -> None:
        x = np.random.default_rng(3).uniform(size=12)
        heights, _ = mapping.physical(x)
        np.testing.assert_allclose(heights, -0.06 + x[:6] * (0.05 - (-0.06)), rtol=0, atol=1e-15)

    def test_wrong_length(self, mapping) -> None:
        with pytest.raises(ValueError, match='Expected 12'):
            mapping.physical(np.zeros(11))

    def test_invalid_construction(self) -> None:
        with pytest.raises(ValueError):
            ParameterMapping(num_contacts=0)
        with pytest.raises(ValueError):
            ParameterMapping(num_contacts=2, height_bounds_m=(0.1, -0.1))

    def test_bounds(self, mapping) -> None:
        assert mapping.num_parameters == 12
        assert mapping.bounds() == [(0.0, 1.0)] * 12


class TestApplyToModel:
    """apply() / read() on a model."""

    def test_read_back_is_bit_exact(self, mapping, foot_model) -> None:
        x = np.random.default_rng(7).uniform(size=12)
        mapping.apply(foot_model, x)
        heights, stiffness = mapping.read(foot_model)
        expected_h, expected_k = mapping.physical(x)
        np.testing.assert_array_equal(heights, expected_h)
        np.testing.assert_array_equal(stiffness, expected_k)

    def test_normalized_recovers_x(self, mapping, foot_model) -> None:
        x = np.random.default_rng(11).uniform(size=12)
        mapping.apply(foot_model, x)
        np.testing.assert_allclose(mapping.normalized(*mapping.read(foot_model)), x, rtol=0, atol=1e-12)

    def test_boundaries_on_model(self, mapping, foot_model) -> None:
        x = np.array([0.0, 1.0] * 3 + [1.0, 0.0] * 3)
        mapping.apply(foot_model, x)
        assert foot_model.marker('marker0').location_m[1] == -0.06
        assert foot_model.marker('marker1').location_m[1] == 0.05
        assert foot_model.contact('marker0_contact').stiffness_n_per_m == 1.0e8
        assert foot_model.contact('marker1_contact').stiffness_n_per_m == 0.0

    def test_x_location_untouched(self, mapping, foot_model) -> None:
        before = [m.location_m[0] for m in foot_model.markers]
        mapping.apply(foot_model, np.full(12, 0.3))
        assert [m.location_m[0] for m in foot_model.markers] == before

    def test_missing_marker(self, foot_model) -> None:
        with pytest.raises(ModelConfigurationError, match='marker6'):
            ParameterMapping(num_contacts=7).apply(foot_model, np.zeros(14))

    def test_naming_convention(self) -> None:
        assert marker_name(3) == 'marker3'
        assert contact_name(3) == 'marker3_contact'

    def test_custom_scaling(self, foot_model) -> None:
        m = ParameterMapping(num_contacts=6, stiffness_scale_factor=2.0, stiffness_base_unit_n_per_m=1e3)
        _, stiffness = m.physical(np.full(12, 0.25))
        np.testing.assert_array_equal(stiffness, np.full(6, 500.0))
