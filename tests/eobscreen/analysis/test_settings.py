import pytest
import copy

from eobscreen.errors import ConfigError
from eobscreen.analysis.settings import (
    DEFAULT_SETTINGS,
    validate_settings,
    load_settings
)

def test_load_settings_defaults():

    settings = load_settings()
    assert settings == validate_settings(copy.deepcopy(DEFAULT_SETTINGS))
    assert settings["num_chains"] >= 2
    assert settings["num_samples"] >= 1000

    # defaults not mutated
    settings["priors"]["sigma_scale"] = 1.0
    assert DEFAULT_SETTINGS["priors"] == {}

def test_load_settings_from_file(tmp_path):

    cf = tmp_path / "settings.yaml"
    cf.write_text("normalization_policy: scale-to-mean\n"
                  "num_chains: 3\n"
                  "chain_timeout: 60\n"
                  "priors:\n"
                  "  sigma_scale: 1e-1\n")

    settings = load_settings(str(cf))
    assert settings["normalization_policy"] == "scale-to-mean"
    assert settings["num_chains"] == 3
    assert isinstance(settings["num_chains"], int)
    assert settings["chain_timeout"] == 60.0
    assert settings["priors"] == {"sigma_scale": 0.1}

    # untouched keys keep their defaults
    assert settings["seed"] == DEFAULT_SETTINGS["seed"]

def test_load_settings_overrides(tmp_path):

    cf = tmp_path / "settings.yaml"
    cf.write_text("seed: 1\n")

    settings = load_settings(str(cf), override_keys={"seed": 2, "parallel": False})
    assert settings["seed"] == 2
    assert settings["parallel"] is False

def test_load_settings_unknown_key_in_file(tmp_path):

    cf = tmp_path / "settings.yaml"
    cf.write_text("num_chanes: 4\n")
    with pytest.raises(ConfigError, match="num_chanes"):
        load_settings(str(cf))

def test_load_settings_unknown_override():
    with pytest.raises(ConfigError):
        load_settings(override_keys={"bogus": 1})

@pytest.mark.parametrize("key, value", [
    ("normalization_policy", "scale-to-median"),
    ("vehicle_label", ""),
    ("label_parser", "regex"),
    ("label_separator", " "),
    ("index_order", "random"),
    ("cell_means", "fancy"),
    ("priors", [1, 2]),
    ("priors", {"sigma_scale": "big"}),
    ("seed", 1.5),
    ("num_chains", 1),
    ("num_warmup", -1),
    ("num_samples", 0),
    ("target_accept_prob", 1.0),
    ("max_tree_depth", 0),
    ("chain_timeout", 0),
    ("parallel", "yes"),
    ("credible_interval", 0),
    ("credible_interval", 1.5),
    ("max_r_hat", 1.0),
])
def test_validate_settings_rejects(key, value):

    settings = copy.deepcopy(DEFAULT_SETTINGS)
    settings[key] = value
    with pytest.raises(ConfigError):
        validate_settings(settings)

def test_validate_settings_missing_key():

    settings = copy.deepcopy(DEFAULT_SETTINGS)
    settings.pop("seed")
    with pytest.raises(ConfigError, match="Missing"):
        validate_settings(settings)

def test_validate_settings_none_priors():

    settings = copy.deepcopy(DEFAULT_SETTINGS)
    settings["priors"] = None
    assert validate_settings(settings)["priors"] == {}

def test_validate_settings_prior_names():

    settings = copy.deepcopy(DEFAULT_SETTINGS)
    settings["priors"] = {"sigma_eob_scale": 1.0, "sigma_scale": 0.5}
    assert validate_settings(settings)["priors"] == {"sigma_eob_scale": 1.0,
                                                     "sigma_scale": 0.5}

    # sigma_eob only exists when cells are partially pooled
    settings["cell_means"] = "independent"
    with pytest.raises(ConfigError, match="sigma_eob_scale"):
        validate_settings(settings)
