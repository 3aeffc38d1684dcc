"""
Analysis settings: defaults, loading from YAML and validation.

Every setting is validated up front so that a bad configuration fails before
any data are touched.
"""

from eobscreen.errors import ConfigError
from eobscreen.util import (
    check_number,
    check_choice,
    read_yaml
)
from eobscreen.normalize import NORMALIZATION_POLICIES
from eobscreen.process_raw import VEHICLE_LABEL
from eobscreen.analysis.hierarchical.eob_model.registry import model_registry

import copy

DEFAULT_SETTINGS = {
    # normalization
    "normalization_policy":"scale-to-max",
    "vehicle_label":VEHICLE_LABEL,

    # combination records
    "label_parser":"dose_tokens",
    "label_separator":" + ",
    "index_order":"sorted",

    # model
    "cell_means":"hierarchical",
    "priors":{},

    # sampling
    "seed":0,
    "num_chains":4,
    "num_warmup":1000,
    "num_samples":1000,
    "target_accept_prob":0.9,
    "max_tree_depth":10,
    "chain_timeout":None,
    "parallel":True,

    # reporting
    "credible_interval":0.95,
    "max_r_hat":1.1,
}


def validate_settings(settings):
    """
    Check a complete settings dictionary.

    Parameters
    ----------
    settings : dict
        settings with every key in DEFAULT_SETTINGS

    Returns
    -------
    dict
        copy of settings with numbers cast to their proper types

    Raises
    ------
    ConfigError
        if a key is unknown or missing or a value is invalid
    """

    unknown = sorted(set(settings) - set(DEFAULT_SETTINGS))
    if len(unknown) > 0:
        raise ConfigError(
            f"Unrecognized setting(s): {unknown}. Allowed settings are: "
            f"{list(DEFAULT_SETTINGS)}"
        )

    missing = [k for k in DEFAULT_SETTINGS if k not in settings]
    if len(missing) > 0:
        raise ConfigError(f"Missing setting(s): {missing}")

    s = copy.deepcopy(settings)

    check_choice(s["normalization_policy"], "normalization_policy",
                 NORMALIZATION_POLICIES)
    if not isinstance(s["vehicle_label"], str) or s["vehicle_label"].strip() == "":
        raise ConfigError("vehicle_label must be a non-empty string.")

    check_choice(s["label_parser"], "label_parser", ["dose_tokens", "separator"])
    if not isinstance(s["label_separator"], str) or s["label_separator"].strip() == "":
        raise ConfigError("label_separator must be a non-empty string.")
    check_choice(s["index_order"], "index_order", ["sorted", "first_seen"])

    check_choice(s["cell_means"], "cell_means", model_registry["cell_means"])
    if s["priors"] is None:
        s["priors"] = {}
    if not isinstance(s["priors"], dict):
        raise ConfigError("priors must be a mapping of hyperparameter names to values.")
    allowed_priors = list(model_registry["cell_means"][s["cell_means"]].get_hyperparameters())
    allowed_priors += list(model_registry["observe"].get_hyperparameters())
    for k in s["priors"]:
        if k not in allowed_priors:
            raise ConfigError(
                f"prior '{k}' not recognized for cell_means '{s['cell_means']}'. "
                f"It should be one of: {allowed_priors}"
            )
        s["priors"][k] = check_number(s["priors"][k], param_name=f"priors.{k}")

    s["seed"] = check_number(s["seed"], param_name="seed", cast_type=int)
    s["num_chains"] = check_number(s["num_chains"], param_name="num_chains",
                                   cast_type=int, min_allowed=2)
    s["num_warmup"] = check_number(s["num_warmup"], param_name="num_warmup",
                                   cast_type=int, min_allowed=0)
    s["num_samples"] = check_number(s["num_samples"], param_name="num_samples",
                                    cast_type=int, min_allowed=1)
    s["target_accept_prob"] = check_number(s["target_accept_prob"],
                                           param_name="target_accept_prob",
                                           min_allowed=0, max_allowed=1,
                                           inclusive_min=False,
                                           inclusive_max=False)
    s["max_tree_depth"] = check_number(s["max_tree_depth"],
                                       param_name="max_tree_depth",
                                       cast_type=int, min_allowed=1)
    s["chain_timeout"] = check_number(s["chain_timeout"],
                                      param_name="chain_timeout",
                                      min_allowed=0, inclusive_min=False,
                                      allow_none=True)
    if not isinstance(s["parallel"], bool):
        raise ConfigError("parallel must be true or false.")

    s["credible_interval"] = check_number(s["credible_interval"],
                                          param_name="credible_interval",
                                          min_allowed=0, max_allowed=1,
                                          inclusive_min=False,
                                          inclusive_max=False)
    s["max_r_hat"] = check_number(s["max_r_hat"], param_name="max_r_hat",
                                  min_allowed=1, inclusive_min=False)

    return s


def load_settings(cf=None, override_keys=None):
    """
    Build validated settings from the defaults, a YAML file (or dict) and
    explicit overrides, in increasing order of precedence.

    Parameters
    ----------
    cf : str or dict, optional
        path to a YAML settings file, or a dict of settings. Keys not given
        keep their default values.
    override_keys : dict, optional
        settings that take precedence over `cf`

    Returns
    -------
    dict
        validated settings

    Raises
    ------
    ConfigError
        if the file cannot be read or a setting is invalid
    """

    settings = copy.deepcopy(DEFAULT_SETTINGS)

    if cf is not None:
        from_file = read_yaml(cf)
        unknown = sorted(set(from_file) - set(DEFAULT_SETTINGS))
        if len(unknown) > 0:
            raise ConfigError(
                f"Unrecognized setting(s) in '{cf}': {unknown}"
            )
        settings.update(from_file)

    if override_keys is not None:
        settings = read_yaml(settings, override_keys=override_keys)

    return validate_settings(settings)
