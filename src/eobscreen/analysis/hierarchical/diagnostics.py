from numpyro.diagnostics import (
    split_gelman_rubin,
    effective_sample_size
)

import numpy as np

# Fewer post-warm-up draws than this (summed over chains) are not enough for
# stable quantile estimates.
MIN_TOTAL_DRAWS = 1000

# Split-chain R-hat needs two halves of at least two draws from each chain.
_MIN_DRAWS_FOR_RHAT = 4


def get_diagnostics(samples, num_divergent=0):
    """
    Calculate convergence diagnostics from posterior samples grouped by chain.

    Parameters
    ----------
    samples : dict
        dictionary keying site names to arrays with shape
        (num_chains, num_draws, ...)
    num_divergent : int, default=0
        number of divergent transitions summed over all chains

    Returns
    -------
    dict
        - r_hat: dict of site -> split-chain R-hat array (site shape). NaN
          when there are fewer than 2 chains or 4 draws per chain.
        - n_eff: dict of site -> effective sample size array (site shape)
        - num_divergent: int
        - num_chains: int
        - num_draws: int, draws per chain
    """

    r_hat = {}
    n_eff = {}
    num_chains = 0
    num_draws = 0
    for site in samples:

        x = np.asarray(samples[site])
        if x.ndim < 2:
            raise ValueError(
                f"samples for '{site}' must have shape (num_chains, num_draws, ...)"
            )

        num_chains, num_draws = x.shape[:2]
        if num_chains >= 2 and num_draws >= _MIN_DRAWS_FOR_RHAT:
            r_hat[site] = np.asarray(split_gelman_rubin(x))
            n_eff[site] = np.asarray(effective_sample_size(x))
        else:
            r_hat[site] = np.full(x.shape[2:], np.nan)
            n_eff[site] = np.full(x.shape[2:], np.nan)

    return {"r_hat":r_hat,
            "n_eff":n_eff,
            "num_divergent":int(num_divergent),
            "num_chains":int(num_chains),
            "num_draws":int(num_draws)}


def check_diagnostics(diagnostics,
                      max_r_hat=1.1,
                      min_total_draws=MIN_TOTAL_DRAWS,
                      skip_sites=None):
    """
    Describe every way the diagnostics fall out of tolerance.

    Parameters
    ----------
    diagnostics : dict
        output of `get_diagnostics`
    max_r_hat : float, default=1.1
        R-hat values at or above this, or undefined R-hat values, fail
    min_total_draws : int, default=1000
        minimum number of post-warm-up draws summed over chains
    skip_sites : list of str, optional
        sites whose R-hat should not be checked

    Returns
    -------
    list of str
        human-readable problems. Empty if everything is within tolerance.
    """

    if skip_sites is None:
        skip_sites = []

    problems = []
    for site, r in diagnostics["r_hat"].items():

        if site in skip_sites:
            continue

        r = np.atleast_1d(r)
        bad = ~(r < max_r_hat)
        if np.any(bad):
            if np.all(np.isnan(r[bad])):
                worst = "undefined"
            else:
                worst = f"{np.nanmax(r[bad]):.3f}"
            problems.append(
                f"R-hat for '{site}' is >= {max_r_hat} or undefined for "
                f"{int(np.sum(bad))} of {r.size} element(s) (worst: {worst})"
            )

    if diagnostics["num_divergent"] > 0:
        problems.append(
            f"{diagnostics['num_divergent']} divergent transition(s)"
        )

    total_draws = diagnostics["num_chains"]*diagnostics["num_draws"]
    if total_draws < min_total_draws:
        problems.append(
            f"only {total_draws} post-warm-up draws (need at least {min_total_draws})"
        )

    return problems
