"""
Reference estimates used to judge how much the hierarchical model pools.

No pooling treats every (combination_condition, stage) cell on its own;
complete pooling treats every record as a draw from one population. The
partially pooled posterior mean of a cell should fall between the two.
"""

from eobscreen.util import (
    check_columns,
    check_number,
    get_group_mean_std
)

import numpy as np
import pandas as pd
from scipy import stats


def _t_interval(mean, std, n, credible_interval):
    """
    Student-t interval for a mean. NaN where n < 2.
    """

    mean = np.atleast_1d(np.asarray(mean, dtype=float))
    std = np.atleast_1d(np.asarray(std, dtype=float))
    n = np.atleast_1d(np.asarray(n, dtype=float))

    low = np.full(mean.shape, np.nan)
    high = np.full(mean.shape, np.nan)

    good = n > 1
    alpha = (1 - credible_interval)/2
    t = stats.t.ppf(1 - alpha, df=n[good] - 1)
    half_width = t*std[good]/np.sqrt(n[good])
    low[good] = mean[good] - half_width
    high[good] = mean[good] + half_width

    return low, high


def no_pooling_estimates(records, credible_interval=0.95):
    """
    Per-cell sample means and Student-t intervals.

    Parameters
    ----------
    records : pandas.DataFrame
        combination records with `combination_condition`, `stage`, `eob`,
        `map_condition` and `map_stage` columns
    credible_interval : float, default=0.95
        interval width

    Returns
    -------
    pandas.DataFrame
        one row per observed cell with columns `combination_condition`,
        `stage`, `mean`, `std`, `interval_low`, `interval_high` and
        `n_observations`. Cells with one observation have NaN std and
        interval.
    """

    check_columns(records, ["combination_condition", "stage", "eob",
                            "map_condition", "map_stage"])
    credible_interval = check_number(credible_interval,
                                     param_name="credible_interval",
                                     min_allowed=0, max_allowed=1,
                                     inclusive_min=False, inclusive_max=False)

    cells = (records[["map_condition", "map_stage",
                      "combination_condition", "stage"]]
             .drop_duplicates(["map_condition", "map_stage"])
             .sort_values(["map_condition", "map_stage"])
             .reset_index(drop=True))
    cells["cell"] = np.arange(len(cells))

    with_cell = records.merge(cells[["map_condition", "map_stage", "cell"]],
                              on=["map_condition", "map_stage"],
                              how="left")

    means, stds, counts = get_group_mean_std(with_cell["eob"].to_numpy(),
                                             with_cell["cell"].to_numpy(),
                                             num_groups=len(cells))
    low, high = _t_interval(means, stds, counts, credible_interval)

    out = cells[["combination_condition", "stage"]].copy()
    out["mean"] = means
    out["std"] = stds
    out["interval_low"] = low
    out["interval_high"] = high
    out["n_observations"] = counts

    return out


def complete_pooling_estimate(records, credible_interval=0.95):
    """
    Grand mean of every eob record with a Student-t interval.

    Returns
    -------
    dict
        keys `mean`, `std`, `interval_low`, `interval_high` and
        `n_observations`
    """

    check_columns(records, ["eob"])
    credible_interval = check_number(credible_interval,
                                     param_name="credible_interval",
                                     min_allowed=0, max_allowed=1,
                                     inclusive_min=False, inclusive_max=False)

    eob = records["eob"].to_numpy(dtype=float)
    means, stds, counts = get_group_mean_std(eob,
                                             np.zeros(len(eob), dtype=int),
                                             num_groups=1)
    low, high = _t_interval(means, stds, counts, credible_interval)

    return {"mean":float(means[0]),
            "std":float(stds[0]),
            "interval_low":float(low[0]),
            "interval_high":float(high[0]),
            "n_observations":int(counts[0])}


def compare_pooling(estimates, records, credible_interval=0.95):
    """
    Put the partially pooled estimates beside the no-pooling and
    complete-pooling reference estimates.

    Parameters
    ----------
    estimates : pandas.DataFrame
        output of EobModel.extract_estimates
    records : pandas.DataFrame
        combination records used for the fit
    credible_interval : float, default=0.95
        interval width for the reference estimates

    Returns
    -------
    pandas.DataFrame
        one row per cell in `estimates` with columns
        `combination_condition`, `stage`, `status`, `pooled_mean` (partial
        pooling), `no_pooling_mean`, `complete_pooling_mean` and
        `shrinkage`, the fraction of the distance from the no-pooling mean
        to the complete-pooling mean covered by the partially pooled mean.
    """

    unpooled = no_pooling_estimates(records, credible_interval)
    grand = complete_pooling_estimate(records, credible_interval)

    keys = ["combination_condition", "stage"]
    left = estimates[keys + ["status", "mean"]].copy()
    left["stage"] = left["stage"].astype(str)
    right = unpooled[keys + ["mean"]].copy()
    right["stage"] = right["stage"].astype(str)

    out = left.merge(right, on=keys, how="left", suffixes=("", "_unpooled"))
    out = out.rename(columns={"mean":"pooled_mean",
                              "mean_unpooled":"no_pooling_mean"})
    out["complete_pooling_mean"] = grand["mean"]

    distance = out["no_pooling_mean"] - out["complete_pooling_mean"]
    with np.errstate(divide="ignore", invalid="ignore"):
        out["shrinkage"] = (out["no_pooling_mean"] - out["pooled_mean"])/distance

    return out.reset_index(drop=True)
