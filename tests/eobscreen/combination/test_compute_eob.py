import pytest
import numpy as np

from eobscreen.combination.compute_eob import compute_eob

def test_compute_eob_scalar():

    # f_ab = 0.5 with f_a = f_b = 0.2: Bliss expects 0.36
    value = compute_eob(0.5, 0.2, 0.2)
    assert isinstance(value, float)
    assert np.isclose(value, 0.5 - 0.36)

def test_compute_eob_array():

    out = compute_eob([0.5, 0.1], [0.2, 0.3], [0.2, 0.4])
    assert isinstance(out, np.ndarray)
    assert out.shape == (2,)

def test_compute_eob_symmetric():

    rng = np.random.default_rng(0)
    f_ab, f_a, f_b = rng.uniform(0, 1, size=(3, 100))
    assert np.allclose(compute_eob(f_ab, f_a, f_b), compute_eob(f_ab, f_b, f_a))

def test_compute_eob_zero_under_bliss():

    rng = np.random.default_rng(1)
    f_a, f_b = rng.uniform(0, 1, size=(2, 100))
    f_ab = f_a + f_b - f_a*f_b
    assert np.allclose(compute_eob(f_ab, f_a, f_b), 0.0)

def test_compute_eob_bounds():

    rng = np.random.default_rng(2)
    f_ab, f_a, f_b = rng.uniform(0, 1, size=(3, 1000))
    out = compute_eob(f_ab, f_a, f_b)
    assert np.all(out >= -1)
    assert np.all(out <= 1)

    # corners
    assert compute_eob(1, 0, 0) == 1
    assert compute_eob(0, 1, 1) == -1

@pytest.mark.parametrize("f_ab, f_a, f_b", [(0.0, 0.0, 0.0), (1.0, 1.0, 1.0)])
def test_compute_eob_trivial(f_ab, f_a, f_b):
    assert compute_eob(f_ab, f_a, f_b) == 0
