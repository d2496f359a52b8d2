from __future__ import annotations
import math
import numpy as np
from numpy.testing import assert_array_equal

from gaitlab.math.rounding import fmt_num, round_array, round_half_up


def test_half_up_differs_from_bankers_rounding():
    assert round(0.25, 1) == 0.2
    assert round_half_up(0.25, 1) == 0.3
    assert round_half_up(2.5, 0) == 3.0
    assert round_half_up(-2.5, 0) == -2.0
    assert math.isnan(round_half_up(float("nan")))


def test_round_array():
    assert_array_equal(round_array([0.25, 1.04, -0.25], 1), [0.3, 1.0, -0.2])


def test_fmt_num_shortest_form():
    assert fmt_num(5.0) == "5"
    assert fmt_num(np.float64(3.0)) == "3"
    assert fmt_num(-0.0) == "0"
    assert fmt_num(2.5) == "2.5"
    assert fmt_num(7) == "7"
    assert fmt_num(0.1) == "0.1"
    assert fmt_num(float("nan")) == "NaN"
