from eobscreen.__version__ import __version__
from eobscreen.errors import DataError, ConfigError
from eobscreen.util import (
    check_columns,
    read_dataframe
)

from eobscreen.analysis.hierarchical.diagnostics import (
    get_diagnostics,
    check_diagnostics,
    MIN_TOTAL_DRAWS
)
from eobscreen.analysis.hierarchical.eob_model.model import jax_model
from eobscreen.analysis.hierarchical.eob_model.registry import model_registry
from eobscreen.analysis.hierarchical.eob_model.data_class import (
    EobData,
    PriorsClass
)

import jax
from jax import numpy as jnp
import numpy as np
import pandas as pd
import yaml

from functools import partial
import os
import warnings

# Declare float datatype
FLOAT_DTYPE = jnp.float64 if jax.config.read("jax_enable_x64") else jnp.float32

ESTIMATE_COLUMNS = ["combination_condition",
                    "stage",
                    "mean",
                    "credible_low",
                    "credible_high",
                    "n_observations",
                    "r_hat",
                    "status"]

HYPERPARAMETERS = ["mu_eob", "sigma_eob", "sigma"]


def _get_code_labels(df, code_column, label_column):
    """
    Return labels ordered by their dense integer code, checking that codes
    run 0 ... n-1 and map one-to-one onto labels.
    """

    pairs = df[[code_column, label_column]].drop_duplicates()
    codes = np.sort(pairs[code_column].to_numpy())

    if len(pairs) != pairs[code_column].nunique() or \
       len(pairs) != pairs[label_column].nunique():
        raise DataError(
            f"'{code_column}' must map one-to-one onto '{label_column}'."
        )

    if not np.array_equal(codes, np.arange(len(codes))):
        raise DataError(
            f"'{code_column}' must hold dense integer codes 0 ... {len(codes) - 1}."
        )

    pairs = pairs.sort_values(code_column)

    return [str(v) for v in pairs[label_column]]


def _flatten_draws(samples, num_condition, num_stage):
    """
    Reshape "mu" samples with shape (num_chains, num_draws, J, K) or
    (num_draws, J, K) into (total_draws, J, K).
    """

    mu = np.asarray(samples["mu"])
    if mu.shape[-2:] != (num_condition, num_stage):
        raise ValueError(
            f"'mu' samples have shape {mu.shape}. Expected trailing "
            f"dimensions ({num_condition}, {num_stage})."
        )

    return mu.reshape((-1, num_condition, num_stage))


class EobModel:
    """
    Manages the data wrangling and configuration for the JAX eob model.

    Takes a table of combination records (one eob value per stage, replicate
    and combination), turns it into a JAX pytree indexed on the
    (combination_condition, stage) grid, and assembles the `data`, `priors`
    and `jax_model` objects used for sampling. After sampling, it turns the
    posterior draws back into per-cell estimates.

    Parameters
    ----------
    records_df : pd.DataFrame or str
        combination records (or a path to them) with columns
        `combination_condition`, `stage`, `eob`, `map_condition` and
        `map_stage`. The map columns are dense integer codes.
    cell_means : str, default="hierarchical"
        how cell means are pooled. One of "hierarchical" (partial pooling),
        "independent" (no pooling) or "pooled" (complete pooling).
    priors : dict, optional
        prior hyperparameters that override the component defaults (for
        example {"sigma_scale":1.0}).

    Attributes
    ----------
    data : EobData
        JAX pytree holding the observations.
    priors : PriorsClass
        JAX pytree holding the priors.
    jax_model : function
        top-level model with the selected components baked in.
    settings : dict
        model choices used to build this object.
    condition_labels : list of str
        combination conditions ordered by code.
    stage_labels : list of str
        stages ordered by code.
    counts : np.ndarray
        (num_condition, num_stage) number of observations per cell.
    """

    def __init__(self,
                 records_df,
                 cell_means="hierarchical",
                 priors=None):

        self._records_df = records_df
        self._cell_means = cell_means

        if priors is None:
            priors = {}
        self._prior_overrides = dict(priors)

        self._initialize_data()
        self._initialize_classes()

    def _initialize_data(self):
        """
        Read the records and build the EobData pytree.
        """

        df = read_dataframe(self._records_df)
        check_columns(df, ["combination_condition",
                           "stage",
                           "eob",
                           "map_condition",
                           "map_stage"])

        if len(df) == 0:
            raise DataError("No combination records to fit.")

        eob = pd.to_numeric(df["eob"], errors="coerce").to_numpy(dtype=float)
        if not np.all(np.isfinite(eob)):
            raise DataError("eob values must be finite numbers.")

        self._condition_labels = _get_code_labels(df,
                                                  "map_condition",
                                                  "combination_condition")
        self._stage_labels = _get_code_labels(df, "map_stage", "stage")

        map_condition = df["map_condition"].to_numpy(dtype=int)
        map_stage = df["map_stage"].to_numpy(dtype=int)

        num_condition = len(self._condition_labels)
        num_stage = len(self._stage_labels)

        counts = np.zeros((num_condition, num_stage), dtype=int)
        np.add.at(counts, (map_condition, map_stage), 1)
        self._counts = counts

        self._df = df
        self._data = EobData(eob=jnp.asarray(eob, dtype=FLOAT_DTYPE),
                             map_condition=jnp.asarray(map_condition, dtype=jnp.int32),
                             map_stage=jnp.asarray(map_stage, dtype=jnp.int32),
                             num_obs=len(df),
                             num_condition=num_condition,
                             num_stage=num_stage)

    def _initialize_classes(self):
        """
        Look up the model components, build the priors and bake the
        components into the jax model.
        """

        if self._cell_means not in model_registry["cell_means"]:
            raise ConfigError(
                f"cell_means '{self._cell_means}' not recognized. "
                f"It should be one of: {list(model_registry['cell_means'].keys())}"
            )

        cell_means_module = model_registry["cell_means"][self._cell_means]
        observe_module = model_registry["observe"]

        # Split the prior overrides between the two components
        cell_means_keys = cell_means_module.get_hyperparameters()
        observe_keys = observe_module.get_hyperparameters()
        cell_means_overrides = {}
        observe_overrides = {}
        for k, v in self._prior_overrides.items():
            if k in cell_means_keys:
                cell_means_overrides[k] = float(v)
            elif k in observe_keys:
                observe_overrides[k] = float(v)
            else:
                allowed = list(cell_means_keys) + list(observe_keys)
                raise ConfigError(
                    f"prior '{k}' not recognized for cell_means "
                    f"'{self._cell_means}'. It should be one of: {allowed}"
                )

        self._priors = PriorsClass(
            cell_means=cell_means_module.get_priors(**cell_means_overrides),
            observe=observe_module.get_priors(**observe_overrides)
        )

        self._jax_model = partial(jax_model,
                                  cell_means=cell_means_module.define_model,
                                  observe=observe_module.define_model)

    def extract_estimates(self,
                          posteriors,
                          credible_interval=0.95,
                          diagnostics=None,
                          max_r_hat=1.1,
                          min_total_draws=MIN_TOTAL_DRAWS):
        """
        Summarize the posterior of every (combination_condition, stage) cell.

        Parameters
        ----------
        posteriors : dict or str
            dictionary keying sites to posterior samples, or a path to a .npz
            file holding them. "mu" must have shape
            (num_chains, num_draws, num_condition, num_stage) unless
            `diagnostics` is given, in which case
            (num_draws, num_condition, num_stage) is also accepted.
        credible_interval : float, default=0.95
            width of the two-sided credible interval
        diagnostics : dict, optional
            output of `get_diagnostics`. If None, diagnostics are calculated
            from the chain-grouped samples in `posteriors`.
        max_r_hat : float, default=1.1
            cells with R-hat at or above this are marked "degraded"
        min_total_draws : int, default=1000
            fits with fewer draws are marked "degraded"

        Returns
        -------
        pd.DataFrame
            one row per cell with columns `combination_condition`, `stage`,
            `mean`, `credible_low`, `credible_high`, `n_observations`,
            `r_hat` and `status`. Status is "ok" (observed, diagnostics
            within tolerance), "degraded" (observed, diagnostics out of
            tolerance) or "missing" (no observations; statistics are NaN).
        """

        if not (0 < credible_interval < 1):
            raise ConfigError(
                f"credible_interval must be between 0 and 1. Got {credible_interval}."
            )

        if isinstance(posteriors, str):
            if not os.path.exists(posteriors):
                raise FileNotFoundError(f"Posterior file not found: {posteriors}")
            with np.load(posteriors) as loaded:
                posteriors = {k: loaded[k] for k in loaded.files}

        num_condition = self._data.num_condition
        num_stage = self._data.num_stage

        if diagnostics is None:
            diagnostics = self.get_posterior_diagnostics(posteriors)

        draws = _flatten_draws(posteriors, num_condition, num_stage)

        alpha = (1 - credible_interval)/2
        means = np.mean(draws, axis=0)
        lows = np.quantile(draws, alpha, axis=0)
        highs = np.quantile(draws, 1 - alpha, axis=0)

        r_hat = np.broadcast_to(np.asarray(diagnostics["r_hat"].get("mu", np.nan),
                                           dtype=float),
                                (num_condition, num_stage))

        # Problems that are not specific to a cell degrade every cell
        global_problems = check_diagnostics(diagnostics,
                                            max_r_hat=max_r_hat,
                                            min_total_draws=min_total_draws,
                                            skip_sites=["mu"])
        global_ok = len(global_problems) == 0

        rows = []
        for j, condition in enumerate(self._condition_labels):
            for k, stage in enumerate(self._stage_labels):

                n = int(self._counts[j, k])
                if n == 0:
                    rows.append([condition, stage, np.nan, np.nan, np.nan,
                                 0, np.nan, "missing"])
                    continue

                cell_ok = bool(r_hat[j, k] < max_r_hat)
                status = "ok" if (global_ok and cell_ok) else "degraded"
                rows.append([condition, stage, means[j, k], lows[j, k],
                             highs[j, k], n, r_hat[j, k], status])

        return pd.DataFrame(rows, columns=ESTIMATE_COLUMNS)

    def get_posterior_diagnostics(self, posteriors):
        """
        Calculate convergence diagnostics from chain-grouped posterior samples
        (for example, the contents of a _posterior.npz file). The divergence
        count is read from the "num_divergent" entry if present.
        """

        if np.asarray(posteriors["mu"]).ndim != 4:
            raise ValueError(
                "posteriors must be grouped by chain to calculate diagnostics."
            )

        samples = {k: v for k, v in posteriors.items() if k != "num_divergent"}
        num_divergent = int(np.sum(posteriors.get("num_divergent", 0)))

        return get_diagnostics(samples, num_divergent=num_divergent)

    def extract_hyperparameters(self,
                                posteriors,
                                credible_interval=0.95,
                                diagnostics=None):
        """
        Summarize the scalar parameters present in the posterior (mu_eob,
        sigma_eob and sigma, depending on the cell_means model).

        Returns
        -------
        pd.DataFrame
            columns `parameter`, `mean`, `credible_low`, `credible_high` and
            `r_hat`
        """

        alpha = (1 - credible_interval)/2

        rows = []
        for p in HYPERPARAMETERS:
            if p not in posteriors:
                continue

            x = np.asarray(posteriors[p]).reshape(-1)
            r = np.nan
            if diagnostics is not None and p in diagnostics["r_hat"]:
                r = float(diagnostics["r_hat"][p])

            rows.append([p,
                         float(np.mean(x)),
                         float(np.quantile(x, alpha)),
                         float(np.quantile(x, 1 - alpha)),
                         r])

        return pd.DataFrame(rows, columns=["parameter",
                                           "mean",
                                           "credible_low",
                                           "credible_high",
                                           "r_hat"])

    @property
    def jax_model(self):
        return self._jax_model

    @property
    def data(self):
        return self._data

    @property
    def priors(self):
        return self._priors

    @property
    def counts(self):
        return self._counts

    @property
    def condition_labels(self):
        return list(self._condition_labels)

    @property
    def stage_labels(self):
        return list(self._stage_labels)

    @property
    def settings(self):
        """
        Model choices used to build this object.
        """
        return {
            "cell_means":self._cell_means,
            "priors":dict(self._prior_overrides),
        }

    @staticmethod
    def load_config(config_file):
        """
        Load model configuration from a YAML file.

        Parameters
        ----------
        config_file : str
            Path to the YAML configuration file.

        Returns
        -------
        records_df : str
            Path to the combination records CSV file.
        dropped_df : str or None
            Path to the dropped-records CSV file, if one was written.
        settings : dict
            Dictionary of analysis settings.
        """
        if not os.path.exists(config_file):
            raise FileNotFoundError(f"Configuration file not found: {config_file}")

        with open(config_file, "r") as f:
            config = yaml.safe_load(f)

        required_fields = ["records_df", "settings", "eobscreen_version"]
        for field in required_fields:
            if field not in config:
                raise ConfigError(f"Missing required field: {field}")

        if config["eobscreen_version"] != __version__:
            warnings.warn(f"Configuration file version {config['eobscreen_version']} does not match current eobscreen version {__version__}")

        return config["records_df"], config.get("dropped_df"), config["settings"]

    def write_config(self,
                     records_df_path,
                     settings,
                     out_root,
                     dropped_df_path=None):
        """
        Write model configuration to a YAML file.

        Parameters
        ----------
        records_df_path : str
            Path to the combination records CSV file.
        settings : dict
            analysis settings. The model choices of this object override
            the matching keys.
        out_root : str
            Root filename for the configuration file ({out_root}_config.yaml).
        dropped_df_path : str, optional
            Path to the dropped-records CSV file.

        Returns
        -------
        str
            path to the configuration file
        """

        settings = dict(settings)
        settings.update(self.settings)

        config = {
            "eobscreen_version": __version__,
            "records_df": records_df_path,
            "dropped_df": dropped_df_path,
            "settings": settings
        }

        config_file = f"{out_root}_config.yaml"
        with open(config_file, "w") as f:
            yaml.dump(config, f, default_flow_style=False)

        return config_file
