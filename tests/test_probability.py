import math

import numpy as np
import pytest

from splitforest.base import TrainingData
from splitforest.probability import ProbabilitySplittingRule


def _split(x, y, num_classes=2, alpha=0.05, penalty=0.0, vars_=(0,), samples=None):
    data = TrainingData(x=np.asarray(x, dtype=float))
    responses = np.asarray(y, dtype=float).reshape(-1, 1)
    if samples is None:
        samples = range(data.num_rows)
    rule = ProbabilitySplittingRule(num_classes=num_classes, alpha=alpha,
                                    imbalance_penalty=penalty)
    return rule.find_best_split(data, list(samples), list(vars_), responses)


def test_separates_two_classes():
    split = _split([1, 2, 3, 4], [0, 0, 1, 1])
    assert split.var == 0
    assert split.value == 2.0
    assert split.send_missing_left is True


def test_three_classes_split_at_a_class_boundary():
    x = [1, 2, 3, 4, 5, 6]
    y = [0, 0, 1, 1, 2, 2]
    split = _split(x, y, num_classes=3)
    assert split.value in (2.0, 4.0)


def test_constant_covariate_does_not_split():
    assert _split([3, 3, 3, 3], [0, 1, 0, 1]) is None


def test_child_size_limit_prevents_split():
    assert _split([1, 2, 3], [0, 1, 1], alpha=0.5) is None


def test_large_penalty_prevents_split():
    assert _split([1, 2, 3, 4], [0, 0, 1, 1], penalty=1e9) is None


def test_class_label_out_of_range_raises():
    with pytest.raises(ValueError):
        _split([1, 2, 3, 4], [0, 0, 2, 2], num_classes=2)


def test_picks_informative_variable():
    x = [[5, 1], [1, 2], [6, 3], [2, 4]]
    y = [0, 0, 1, 1]
    split = _split(x, y, vars_=(0, 1))
    assert split.var == 1
    assert split.value == 2.0


def test_missing_values_split_on_nan():
    split = _split([np.nan, np.nan, 3, 4], [1, 1, 0, 0])
    assert math.isnan(split.value)
    assert split.send_missing_left is True


def test_sample_order_does_not_matter():
    x = [4, 1, 3, 2, 6, 5]
    y = [1, 0, 1, 0, 1, 0]
    forward = _split(x, y)
    backward = _split(x, y, samples=reversed(range(6)))
    assert forward == backward