"""Utility function tests"""

import numpy as np
import pytest

from onlinerl.common.utils import discount_cumsum, normalize_advantages, parse_hidden_sizes


class TestUtils:

    def test_discount_cumsum(self):
        np.testing.assert_allclose(discount_cumsum([1.0, 1.0, 1.0], 0.5), [1.75, 1.5, 1.0])

    def test_discount_cumsum_empty(self):
        assert discount_cumsum(np.array([]), 0.9).size == 0

    def test_normalize_in_place(self):
        x = np.array([1.0, 2.0, 3.0, 4.0])
        out = normalize_advantages(x)

        assert out is x
        assert x.mean() == pytest.approx(0.0)
        assert x.std(ddof=1) == pytest.approx(1.0)

    def test_parse_hidden_sizes(self):
        assert parse_hidden_sizes("64, 32") == [64, 32]
        assert parse_hidden_sizes("") == []
