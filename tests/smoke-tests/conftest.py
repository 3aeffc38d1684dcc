import pytest
import numpy as np
import pandas as pd
import os

def _bliss(f_a, f_b):
    return f_a + f_b - f_a*f_b

@pytest.fixture(scope="session")
def smoke_test_dir():
    """Return the absolute path to the smoke tests directory."""
    return os.path.dirname(os.path.abspath(__file__))

@pytest.fixture(scope="session")
def synergy_measurements():
    """
    Synthetic long-form measurements: two combinations x two stages with
    eight replicates each (32 combination records over 4 cells). Each
    replicate has its own vehicle baseline. Cell eob values are known.
    """

    rng = np.random.default_rng(20240611)

    stages = {"alive": 0.5, "dead_debris": 0.1}
    singles = {"300nM CX": 0.2, "2nM Dina": 0.15, "1uM AZ": 0.1}
    combos = {("300nM CX", "2nM Dina"): {"alive": 0.10, "dead_debris": 0.25},
              ("300nM CX", "1uM AZ"): {"alive": -0.05, "dead_debris": 0.05}}

    rows = []
    for r in range(8):
        rep = f"rep{r + 1}"
        for stage, base in stages.items():

            # replicate-specific vehicle effect, undone by normalization
            vehicle = base*rng.uniform(0.6, 1.0)
            rows.append(["Vehicle", stage, rep, vehicle])
            ratio = vehicle/base

            for label, f in singles.items():
                rows.append([label, stage, rep, f*ratio])

            for (a, b), target in combos.items():
                f_ab = _bliss(singles[a], singles[b]) + target[stage]
                f_ab += rng.normal(0, 0.02)
                rows.append([f"{a} {b}", stage, rep, max(f_ab, 0.0)*ratio])

    return pd.DataFrame(rows, columns=["condition", "stage", "replicate", "value"])

@pytest.fixture(scope="session")
def sparse_cell_records():
    """
    Combination records for six cells clustered near zero (ten observations
    each) and one sparse cell with two observations far from zero.
    """

    rng = np.random.default_rng(7)

    rows = []
    conditions = ["1nM A 1nM B", "1nM A 1nM C", "1nM B 1nM C"]
    stages = ["alive", "dead_debris"]
    for j, condition in enumerate(conditions):
        for k, stage in enumerate(stages):
            for value in rng.normal(0.0, 0.2, size=10):
                rows.append([condition, stage, value, j, k])

    for value in [0.6, 0.8]:
        rows.append(["1nM C 1nM D", "alive", value, 3, 0])

    return pd.DataFrame(rows, columns=["combination_condition",
                                       "stage",
                                       "eob",
                                       "map_condition",
                                       "map_stage"])
