import pytest
import numpy as np
import pandas as pd
import os
from unittest.mock import patch

from eobscreen.errors import ConfigError, DataError, DataWarning
from eobscreen.analysis.hierarchical.analyze_eob import (
    prepare_records,
    estimate_eob,
    analyze_eob,
    main
)
from eobscreen.analysis.hierarchical.summarize_posteriors import summarize_posteriors
from eobscreen.analysis.settings import load_settings

RUN_CHAIN = "eobscreen.analysis.hierarchical.run_inference._run_chain"

def _fake_chain(jax_model, data, priors, chain_key, num_warmup, num_samples,
                target_accept_prob, max_tree_depth):
    rng = np.random.default_rng(np.asarray(chain_key).astype(np.uint64))
    shape = (num_samples, data.num_condition, data.num_stage)
    return {"mu": 0.1 + 0.01*rng.normal(size=shape),
            "mu_eob": 0.1 + 0.01*rng.normal(size=num_samples),
            "sigma_eob": 0.2 + 0.01*rng.normal(size=num_samples),
            "sigma": 0.05 + 0.001*rng.normal(size=num_samples)}, 0

@pytest.fixture
def measurements():
    """
    Vehicle-normalizable measurements for one combination across two stages
    and two replicates. The combination has no dead_debris single-agent
    partner for replicate r2.
    """

    rows = []
    vehicle = {"alive": {"r1": 0.9, "r2": 0.8},
               "dead_debris": {"r1": 0.085, "r2": 0.29}}
    for stage in ["alive", "dead_debris"]:
        for rep in ["r1", "r2"]:
            v = vehicle[stage][rep]
            rows.append(["Vehicle", stage, rep, v])
            rows.append(["300nM CX", stage, rep, v*0.8])
            rows.append(["300nM CX 2nM Dina", stage, rep, v*0.5])
            if not (stage == "dead_debris" and rep == "r2"):
                rows.append(["2nM Dina", stage, rep, v*0.9])

    return pd.DataFrame(rows, columns=["condition", "stage", "replicate", "value"])

def test_prepare_records(measurements):

    settings = load_settings()
    with pytest.warns(DataWarning):
        normalized, records, dropped = prepare_records(measurements, settings)

    assert "Vehicle" not in set(normalized["condition"])
    assert len(records) == 3
    assert len(dropped) == 1
    assert list(dropped["replicate"]) == ["r2"]

def test_estimate_eob(measurements):

    settings = {"parallel": False, "num_chains": 2, "num_samples": 600}
    with patch(RUN_CHAIN, side_effect=_fake_chain):
        with pytest.warns(DataWarning):
            results = estimate_eob(measurements, settings=settings)

    estimates = results["estimates"]
    assert len(estimates) == 2
    assert set(estimates["status"]) == {"ok"}
    assert list(estimates["stage"]) == ["alive", "dead_debris"]
    assert list(estimates["n_observations"]) == [2, 1]

    assert results["converged"]
    assert len(results["comparison"]) == 2
    assert list(results["hyperparameters"]["parameter"]) == ["mu_eob", "sigma_eob", "sigma"]

def test_estimate_eob_config_error_first(measurements):

    # invalid settings fail before the data are read
    with patch("eobscreen.analysis.hierarchical.analyze_eob.read_measurements") as mock_read:
        with pytest.raises(ConfigError):
            estimate_eob(measurements, settings={"num_chains": 1})
        mock_read.assert_not_called()

def test_estimate_eob_all_dropped_cell(measurements):

    # Without the dead_debris Dina rows every dead_debris combination is
    # dropped and the cell is reported as missing.
    df = measurements[~((measurements["condition"] == "2nM Dina") &
                        (measurements["stage"] == "dead_debris"))]

    settings = {"parallel": False, "num_chains": 2, "num_samples": 600}
    with patch(RUN_CHAIN, side_effect=_fake_chain):
        with pytest.warns(DataWarning):
            results = estimate_eob(df, settings=settings)

    estimates = results["estimates"].set_index("stage")
    assert estimates.loc["alive", "status"] == "ok"
    assert estimates.loc["dead_debris", "status"] == "missing"
    assert estimates.loc["dead_debris", "n_observations"] == 0
    assert np.isnan(estimates.loc["dead_debris", "mean"])

def test_estimate_eob_bad_data(measurements):

    df = measurements.copy()
    df.loc[df["condition"] == "Vehicle", "value"] = 0.0
    with pytest.raises(DataError):
        estimate_eob(df, settings={"parallel": False})

def test_estimate_eob_nothing_to_fit(measurements):

    # With no Dina singles every combination record is dropped
    df = measurements[measurements["condition"] != "2nM Dina"]

    with patch(RUN_CHAIN, side_effect=_fake_chain) as mock_chain:
        with pytest.warns(DataWarning):
            with pytest.raises(DataError, match="300nM CX 2nM Dina"):
                estimate_eob(df, settings={"parallel": False})

    # Fails before any sampling
    mock_chain.assert_not_called()

def test_analyze_eob_writes_files(measurements, tmp_path):

    in_file = tmp_path / "measurements.csv"
    measurements.to_csv(in_file, index=False)
    out_root = str(tmp_path / "run")

    with patch(RUN_CHAIN, side_effect=_fake_chain):
        with pytest.warns(DataWarning):
            results = analyze_eob(str(in_file),
                                  out_root=out_root,
                                  num_chains=2,
                                  num_samples=600,
                                  seed=3,
                                  serial=True)

    assert results["settings"]["seed"] == 3
    assert results["settings"]["parallel"] is False

    for suffix in ["normalized.csv", "combinations.csv", "dropped.csv",
                   "estimates.csv", "hyperparameters.csv", "comparison.csv",
                   "posterior.npz", "config.yaml"]:
        assert os.path.isfile(f"{out_root}_{suffix}")

    written = pd.read_csv(f"{out_root}_estimates.csv")
    assert list(written["status"]) == list(results["estimates"]["status"])

    # The summary can be rebuilt from disk
    estimates, hyper = summarize_posteriors(f"{out_root}_posterior.npz",
                                            f"{out_root}_config.yaml",
                                            out_root=str(tmp_path / "summary"))
    assert np.allclose(estimates["mean"], results["estimates"]["mean"])
    assert list(estimates["status"]) == list(results["estimates"]["status"])
    assert os.path.isfile(str(tmp_path / "summary_estimates.csv"))
    assert os.path.isfile(str(tmp_path / "summary_hyperparameters.csv"))

def test_analyze_eob_config_file(measurements, tmp_path):

    cf = tmp_path / "settings.yaml"
    cf.write_text("normalization_policy: scale-to-mean\nnum_chains: 2\n"
                  "num_samples: 600\nparallel: false\n")

    with patch(RUN_CHAIN, side_effect=_fake_chain):
        with pytest.warns(DataWarning):
            results = analyze_eob(measurements,
                                  config_file=str(cf),
                                  out_root=str(tmp_path / "eob"))

    assert results["settings"]["normalization_policy"] == "scale-to-mean"

def test_main(measurements, tmp_path):

    in_file = tmp_path / "measurements.csv"
    measurements.to_csv(in_file, index=False)

    with patch("eobscreen.analysis.hierarchical.analyze_eob.analyze_eob",
               autospec=True) as mock_analyze:
        with patch("sys.argv", ["eob-analyze", str(in_file),
                                "--num_chains", "3",
                                "--chain_timeout", "60",
                                "--serial"]):
            assert main() is None

    kwargs = mock_analyze.call_args.kwargs
    assert kwargs["measurements"] == str(in_file)
    assert kwargs["num_chains"] == 3
    assert kwargs["chain_timeout"] == 60.0
    assert kwargs["serial"] is True
    assert kwargs["seed"] is None
