"""Tests for the maximum value tracker."""

import numpy as np
import pytest

from factorized_ep import (
    FactEPRepresBivarPrec,
    FactorizedEPRepresentation,
    InvalidParameterError,
    MaximumValues,
)


class TestMaximumValues:
    def test_for_pi(self):
        rep = FactorizedEPRepresentation([[0, 1], [1, 2]], [[1.0, 1.0], [1.0, 1.0]],
                                         pi=[1.0, 3.0, 2.0, 0.5], num_variables=4)
        tracker = MaximumValues.for_pi(rep)
        np.testing.assert_array_equal(tracker.max_values()[:3], [1.0, 3.0, 0.5])
        assert tracker.get_max_value(3) == -np.inf

    def test_for_a_and_c(self):
        rep = FactEPRepresBivarPrec([[0], [0], [0]], [[1.0]] * 3, [0, 1, 0],
                                    a=[1.0, 2.0, 4.0], c=[3.0, 0.1, 0.2])
        np.testing.assert_array_equal(MaximumValues.for_a(rep).max_values(), [4.0, 2.0])
        np.testing.assert_array_equal(MaximumValues.for_c(rep).max_values(), [3.0, 0.1])

    def test_increase(self):
        tracker = MaximumValues(1, [(0, 0, 1.0), (0, 1, 2.0)])
        tracker.update(0, 0, 5.0)
        assert tracker.get_max_value(0) == 5.0

    def test_holder_decreases(self):
        tracker = MaximumValues(1, [(0, 0, 1.0), (0, 1, 2.0), (0, 2, 1.5)])
        tracker.update(0, 1, 0.2)
        assert tracker.get_max_value(0) == 1.5

    def test_other_decreases(self):
        tracker = MaximumValues(1, [(0, 0, 1.0), (0, 1, 2.0)])
        tracker.update(0, 0, -3.0)
        assert tracker.get_max_value(0) == 2.0

    def test_tied_holder_decreases(self):
        tracker = MaximumValues(1, [(0, 0, 2.0), (0, 1, 2.0)])
        tracker.update(0, 0, 1.0)
        assert tracker.get_max_value(0) == 2.0
        tracker.update(0, 1, 0.5)
        assert tracker.get_max_value(0) == 1.0

    def test_max_values_is_copy(self):
        tracker = MaximumValues(2, [(0, 0, 1.0)])
        tracker.max_values()[0] = 10.0
        assert tracker.get_max_value(0) == 1.0

    def test_out_of_range(self):
        tracker = MaximumValues(2)
        with pytest.raises(InvalidParameterError):
            tracker.get_max_value(2)
        with pytest.raises(InvalidParameterError):
            tracker.update(-1, 0, 1.0)
